import pytest

from tareas.mapfile import (
    Enemy,
    GameMap,
    MapFormatError,
    MapNode,
    Player,
    Room,
    Upgrade,
    apply_effect,
    load_map,
    parse_map,
)

SAMPLE = """HABITACIONES
3
0 Entrada (INICIO)
Una sala oscura.
1 Pasillo (COMBATE)
Huele mal.
2 Altar (EVENTO)
Brilla algo.
ARCOS
2
0 -> 1
0 -> 2
ENEMIGOS
2
Rata | Vida 5 | Ataque 2 | Precision 0.8 | Probabilidad 0.6
Lobo | Vida 12 | Ataque 4 | Precision 0.7 | Probabilidad 0.4
EVENTOS
2
&
Fuente
Probabilidad 0.5
Una fuente.
A) Beber
Te sientes mejor.
+5 Vida
B) Ignorar
Sigues.
Nada
&
Trampa
Probabilidad 0.5
Un cable.
A) Saltar
Caes.
-3 Vida
MEJORAS DE COMBATE
+4 Vida
+0.1 Precision
+2 Ataque
+1 Recuperacion
FIN DE ARCHIVO
"""


@pytest.fixture
def game_map():
    return parse_map(SAMPLE)


def test_rooms_are_parsed(game_map):
    rooms = [node.room for node in game_map.rooms]
    assert rooms[0] == Room(0, "Entrada", "Una sala oscura.", "INICIO")
    assert [r.kind for r in rooms] == ["INICIO", "COMBATE", "EVENTO"]
    assert rooms[1].title == "1 Pasillo (COMBATE)"


def test_arcs_link_children(game_map):
    start = game_map.start
    assert [child.room.name for child in start.children] == ["Pasillo", "Altar"]
    assert game_map.rooms[1].children == []


def test_enemies_are_parsed(game_map):
    assert game_map.enemies == [
        Enemy("Rata", 5, 2, 0.8, 0.6),
        Enemy("Lobo", 12, 4, 0.7, 0.4),
    ]


def test_events_are_parsed(game_map):
    names = [event.name for event in game_map.events]
    assert names == ["Fuente", "Trampa"]
    fountain = game_map.events[0]
    assert fountain.probability == 0.5
    assert fountain.description == "Una fuente."
    assert [o.action for o in fountain.options] == ["Beber", "Ignorar"]
    assert fountain.options[0].effect == "+5 Vida"
    assert game_map.events[1].options[0].description == "Caes."


def test_upgrades_are_parsed(game_map):
    assert game_map.upgrades == [
        Upgrade("Vida", "4"),
        Upgrade("Precision", "0.1"),
        Upgrade("Ataque", "2"),
        Upgrade("Recuperacion", "1"),
    ]


def test_load_map_reads_file(tmp_path):
    path = tmp_path / "data.map"
    path.write_text(SAMPLE, encoding="utf-8")
    loaded = load_map(path)
    assert [n.room.number for n in loaded.rooms] == [0, 1, 2]
    assert len(loaded.upgrades) == 4


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_map(tmp_path / "absent.map")


def test_empty_map_has_no_start():
    with pytest.raises(MapFormatError):
        GameMap().start


def test_bad_room_line_raises():
    with pytest.raises(MapFormatError):
        parse_map("HABITACIONES\n1\nsin parentesis\ndesc\n")


def test_arc_to_unknown_room_raises():
    text = "HABITACIONES\n1\n0 Entrada (INICIO)\nd\nARCOS\n1\n0 -> 5\n"
    with pytest.raises(MapFormatError):
        parse_map(text)


def test_missing_end_of_upgrades_raises():
    with pytest.raises(MapFormatError):
        parse_map("MEJORAS DE COMBATE\n+4 Vida\n")


def test_too_many_upgrades_raises():
    text = "MEJORAS DE COMBATE\n" + "+1 Vida\n" * 21 + "FIN DE ARCHIVO\n"
    with pytest.raises(MapFormatError):
        parse_map(text)


def test_add_child_replaces_third_when_full():
    nodes = [MapNode(Room(i, f"R{i}", "", "EVENTO")) for i in range(5)]
    parent = nodes[0]
    for child in nodes[1:]:
        parent.add_child(child)
    assert parent.children == [nodes[1], nodes[2], nodes[4]]


def test_upgrade_parse_and_describe():
    life = Upgrade.parse("+4 Vida")
    attack = Upgrade.parse("+2 Ataque")
    assert life.describe(0) == "0. Recuperar 4 de vida."
    assert attack.describe(2) == "2. Aumentar ataque en 2."


def test_upgrade_parse_rejects_malformed():
    with pytest.raises(MapFormatError):
        Upgrade.parse("+4Vida")
    with pytest.raises(MapFormatError):
        Upgrade.parse("+x Vida")


def test_upgrade_apply_changes_player():
    player = Player()
    assert Upgrade("Vida", "4").apply(player) == "Recuperaste 4 de vida!"
    assert player.health == Player().health + 4
    assert Upgrade("Precision", "0.01").apply(player) == "Tu precisión aumento en 0.01!"
    assert player.accuracy == pytest.approx(Player().accuracy + 0.01)
    assert Upgrade("Ataque", "2").apply(player) == "Tu Ataque aumento en 2!"
    assert player.attack == Player().attack + 2
    Upgrade("Recuperacion", "1").apply(player)
    assert player.recovery == Player().recovery + 1


def test_effect_without_sign_has_no_consequence():
    player = Player()
    assert apply_effect(player, "Nada") == "Ninguna consecuencia."
    assert player == Player()


def test_effect_changes_health():
    player = Player(health=10)
    assert apply_effect(player, "+5 Vida") == "Tu vida aumento en 5"
    assert player.health == 15
    assert apply_effect(player, "-3 Vida") == "Tu vida disminuyo en 3"
    assert player.health == 12


def test_effect_can_kill():
    player = Player(health=3)
    apply_effect(player, "-5 Vida")
    assert player.health <= 0


def test_effect_changes_attack_and_recovery():
    player = Player()
    apply_effect(player, "-2 Ataque")
    apply_effect(player, "+4 Recuperacion")
    assert player.attack == Player().attack - 2
    assert player.recovery == Player().recovery + 4


def test_precision_effect_is_clamped():
    player = Player(accuracy=0.95)
    assert apply_effect(player, "+0.1 Precision") == "Tu precision aumento en 0.1"
    assert player.accuracy == 1.0
    apply_effect(player, "-2 Precision")
    assert player.accuracy == 0.0


def test_unknown_statistic_changes_nothing():
    player = Player()
    assert apply_effect(player, "+3 Suerte") is None
    assert player == Player()


def test_malformed_effect_raises():
    with pytest.raises(MapFormatError):
        apply_effect(Player(), "+abc Vida")