"""Dungeon map files: rooms, the arcs between them, enemies, events and combat upgrades."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

__all__ = [
    "MAX_CHILDREN",
    "MAX_OPTIONS",
    "MAX_UPGRADES",
    "MapFormatError",
    "Option",
    "Event",
    "Room",
    "MapNode",
    "Enemy",
    "Player",
    "Upgrade",
    "GameMap",
    "parse_map",
    "load_map",
    "apply_effect",
]

MAX_CHILDREN = 3
MAX_OPTIONS = 10
MAX_UPGRADES = 20

_EVENT_SEPARATOR = "&"
_UPGRADES_HEADER = "MEJORAS DE COMBATE"
_END_OF_FILE = "FIN DE ARCHIVO"


class MapFormatError(ValueError):
    """Raised when a map file or an effect string cannot be understood."""


@dataclass
class Option:
    """One choice offered by an event."""

    action: str
    description: str
    effect: str


@dataclass
class Event:
    """A random event with its chance of appearing and the options it offers."""

    name: str
    probability: float
    description: str
    options: list[Option] = field(default_factory=list)


@dataclass
class Room:
    """A room of the map; ``kind`` is e.g. INICIO, COMBATE, EVENTO or FIN."""

    number: int
    name: str
    description: str
    kind: str

    @property
    def title(self) -> str:
        """The heading shown on entering the room."""
        return f"{self.number} {self.name} ({self.kind})"


@dataclass(eq=False)
class MapNode:
    """A room in the map tree with at most three rooms reachable from it."""

    room: Room
    children: list[MapNode] = field(default_factory=list)

    def add_child(self, node: MapNode) -> None:
        """Link ``node`` as reachable; once three are linked, the third is replaced."""
        if len(self.children) < MAX_CHILDREN:
            self.children.append(node)
        else:
            self.children[MAX_CHILDREN - 1] = node


@dataclass
class Enemy:
    """An enemy type; ``probability`` is its share of enemy appearances."""

    name: str
    health: int
    attack: int
    accuracy: float
    probability: float


@dataclass
class Player:
    """The player's statistics."""

    health: int = 30
    attack: int = 7
    accuracy: float = 0.95
    recovery: int = 3


def _truncated_int(text: str) -> int:
    return int(float(text))


@dataclass(frozen=True)
class Upgrade:
    """A combat reward such as ``+4 Vida`` or ``+0.1 Precision``."""

    attribute: str
    amount: str

    @classmethod
    def parse(cls, line: str) -> Upgrade:
        """Parse a ``<sign><amount> <attribute>`` line."""
        space = line.find(" ")
        if space < 0:
            raise MapFormatError(f"malformed upgrade line: {line!r}")
        amount = line[1:space]
        attribute = line[space + 1 :]
        try:
            float(amount)
        except ValueError as exc:
            raise MapFormatError(f"malformed upgrade amount: {line!r}") from exc
        if not attribute:
            raise MapFormatError(f"upgrade line names no attribute: {line!r}")
        return cls(attribute, amount)

    def describe(self, index: int) -> str:
        """Return the menu entry offering this upgrade as choice ``index``."""
        if self.attribute == "Vida":
            return f"{index}. Recuperar {self.amount} de vida."
        attribute = self.attribute[0].lower() + self.attribute[1:]
        return f"{index}. Aumentar {attribute} en {self.amount}."

    def apply(self, player: Player) -> str:
        """Apply the upgrade to ``player`` and return the message announcing it."""
        key = self.attribute.lower()
        if key == "precision":
            player.accuracy += float(self.amount)
            return f"Tu precisión aumento en {self.amount}!"
        if key == "vida":
            player.health += _truncated_int(self.amount)
            return f"Recuperaste {self.amount} de vida!"
        if key == "ataque":
            player.attack += _truncated_int(self.amount)
        elif key == "recuperacion":
            player.recovery += _truncated_int(self.amount)
        return f"Tu {self.attribute} aumento en {self.amount}!"


@dataclass
class GameMap:
    """Everything a map file describes."""

    rooms: list[MapNode] = field(default_factory=list)
    enemies: list[Enemy] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    upgrades: list[Upgrade] = field(default_factory=list)

    @property
    def start(self) -> MapNode:
        """The first room, where the game begins."""
        if not self.rooms:
            raise MapFormatError("the map has no rooms")
        return self.rooms[0]


class _Lines:
    """Line reader that raises MapFormatError when the text ends too soon."""

    def __init__(self, text: str) -> None:
        self._lines = iter(text.splitlines())

    def __iter__(self) -> _Lines:
        return self

    def __next__(self) -> str:
        return next(self._lines)

    def take(self, what: str) -> str:
        line = next(self._lines, None)
        if line is None:
            raise MapFormatError(f"unexpected end of file while reading {what}")
        return line

    def count(self, what: str) -> int:
        line = self.take(f"the number of {what}")
        try:
            value = int(line)
        except ValueError as exc:
            raise MapFormatError(f"invalid number of {what}: {line!r}") from exc
        if value < 0:
            raise MapFormatError(f"negative number of {what}: {value}")
        return value


def _parse_room(header: str, description: str) -> Room:
    space = header.find(" ")
    opening = header.find("(")
    closing = header.find(")")
    if space < 0 or opening <= space or closing < opening:
        raise MapFormatError(f"malformed room line: {header!r}")
    try:
        number = int(header[:space])
    except ValueError as exc:
        raise MapFormatError(f"malformed room number: {header!r}") from exc
    name = header[space + 1 : opening - 1]
    kind = header[opening + 1 : closing]
    return Room(number, name, description, kind)


def _parse_rooms(lines: _Lines) -> list[MapNode]:
    total = lines.count("rooms")
    rooms = []
    for _ in range(total):
        header = lines.take("a room")
        description = lines.take("a room description")
        rooms.append(MapNode(_parse_room(header, description)))
    return rooms


def _parse_arcs(lines: _Lines, rooms: list[MapNode]) -> None:
    total = lines.count("arcs")
    for _ in range(total):
        line = lines.take("an arc")
        space = line.find(" ")
        arrow = line.find("->")
        if space < 0 or arrow < 0:
            raise MapFormatError(f"malformed arc line: {line!r}")
        try:
            origin = int(line[:space])
            destination = int(line[arrow + 2 :])
        except ValueError as exc:
            raise MapFormatError(f"malformed arc line: {line!r}") from exc
        if not (0 <= origin < len(rooms) and 0 <= destination < len(rooms)):
            raise MapFormatError(f"arc refers to an unknown room: {line!r}")
        rooms[origin].add_child(rooms[destination])


def _parse_enemy(line: str) -> Enemy:
    fields = line.split("|")
    if len(fields) < 5:
        raise MapFormatError(f"malformed enemy line: {line!r}")
    try:
        values = [part.split()[-1] for part in fields[1:5]]
        return Enemy(
            name=fields[0].strip(),
            health=int(values[0]),
            attack=int(values[1]),
            accuracy=float(values[2]),
            probability=float(values[3]),
        )
    except (IndexError, ValueError) as exc:
        raise MapFormatError(f"malformed enemy line: {line!r}") from exc


def _parse_enemies(lines: _Lines) -> list[Enemy]:
    total = lines.count("enemies")
    return [_parse_enemy(lines.take("an enemy")) for _ in range(total)]


def _parse_events(lines: _Lines) -> tuple[list[Event], str]:
    """Parse the events; also return the last line read, which ends the section."""
    total = lines.count("events")
    line = lines.take("the event separator")
    events = []
    for _ in range(total):
        name = lines.take("an event name")
        probability_line = lines.take("an event probability")
        try:
            probability = float(probability_line[probability_line.find(" ") + 1 :])
        except ValueError as exc:
            raise MapFormatError(
                f"malformed event probability: {probability_line!r}"
            ) from exc
        description = lines.take("an event description")
        event = Event(name, probability, description)
        line = lines.take("an event option")
        while True:
            if len(event.options) == MAX_OPTIONS:
                raise MapFormatError(f"event {name!r} has more than {MAX_OPTIONS} options")
            action = line[3:]
            option_description = lines.take("an option description")
            effect = lines.take("an option effect")
            event.options.append(Option(action, option_description, effect))
            line = lines.take("the end of an event")
            if line in (_EVENT_SEPARATOR, _UPGRADES_HEADER):
                break
        events.append(event)
    return events, line


def _parse_upgrades(lines: _Lines) -> list[Upgrade]:
    upgrades = []
    while (line := lines.take("combat upgrades")) != _END_OF_FILE:
        if len(upgrades) == MAX_UPGRADES:
            raise MapFormatError(f"more than {MAX_UPGRADES} combat upgrades")
        upgrades.append(Upgrade.parse(line))
    return upgrades


def parse_map(text: str) -> GameMap:
    """Parse the text of a map file."""
    lines = _Lines(text)
    game_map = GameMap()
    for line in lines:
        if line == "HABITACIONES":
            game_map.rooms = _parse_rooms(lines)
        elif line == "ARCOS":
            _parse_arcs(lines, game_map.rooms)
        elif line == "ENEMIGOS":
            game_map.enemies = _parse_enemies(lines)
        elif line == "EVENTOS":
            game_map.events, line = _parse_events(lines)
        if line == _UPGRADES_HEADER:
            game_map.upgrades = _parse_upgrades(lines)
    return game_map


def load_map(path: str | os.PathLike) -> GameMap:
    """Read and parse a map file."""
    with open(path, encoding="utf-8") as handle:
        return parse_map(handle.read())


def apply_effect(player: Player, effect: str) -> str | None:
    """Apply an option's effect such as ``-3 Vida`` to ``player``.

    Returns the message describing the change, or None when the effect names
    a statistic that is not known.
    """
    sign = effect[:1]
    if sign not in ("+", "-"):
        return "Ninguna consecuencia."
    space = effect.find(" ")
    amount_text = effect[1:space] if space >= 0 else effect[1:]
    try:
        value = float(amount_text)
    except ValueError as exc:
        raise MapFormatError(f"malformed effect: {effect!r}") from exc
    statistic = effect[space + 1 :]
    increase = sign == "+"
    verb = "aumento" if increase else "disminuyo"
    whole = int(value)
    delta = whole if increase else -whole

    if statistic == "Vida":
        player.health += delta
        return f"Tu vida {verb} en {whole}"
    if statistic == "Ataque":
        player.attack += delta
        return f"Tu ataque {verb} en {whole}"
    if statistic == "Recuperacion":
        player.recovery += delta
        return f"Tu recuperacion {verb} en {whole}"
    if statistic == "Precision":
        player.accuracy += value if increase else -value
        player.accuracy = min(max(player.accuracy, 0.0), 1.0)
        return f"Tu precision {verb} en {amount_text}"
    return None