"""Turn-based exploration of a dungeon map: choosing rooms, fighting enemies and facing events."""

from __future__ import annotations

import argparse
import dataclasses
import random
import sys
import time
from collections import deque
from typing import Generic, TextIO, TypeVar

from tareas.mapfile import (
    Enemy,
    Event,
    GameMap,
    MapFormatError,
    MapNode,
    Player,
    Room,
    apply_effect,
    load_map,
)

__all__ = ["TurnQueue", "Game", "main"]

T = TypeVar("T")

_PERCENT_SCALE = 10000
_DEATH_MESSAGE = "Has muerto, FIN. (git gud)"


class TurnQueue(Generic[T]):
    """First-in, first-out queue of whoever acts next in a fight."""

    def __init__(self) -> None:
        self._items: deque[T] = deque()

    def enqueue(self, item: T) -> None:
        """Put ``item`` at the back of the queue."""
        self._items.append(item)

    def dequeue(self) -> T:
        """Remove and return the item at the front; raises IndexError when empty."""
        if not self._items:
            raise IndexError("dequeue from an empty turn queue")
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)


class Game:
    """One play-through of a map, reading choices from ``stdin`` and narrating to ``stdout``."""

    def __init__(
        self,
        game_map: GameMap,
        player: Player | None = None,
        rng: random.Random | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        delay: float = 0.025,
    ) -> None:
        self.game_map = game_map
        self.player = player if player is not None else Player()
        self.rng = rng if rng is not None else random.Random()
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.delay = delay
        self._pending: list[str] = []

    # ----- input and output -------------------------------------------------

    def _say(self, text: str, newline: bool = True) -> None:
        """Write text one character at a time, like a role-playing game dialogue."""
        for char in text:
            self.stdout.write(char)
            if self.delay > 0:
                self.stdout.flush()
                time.sleep(self.delay)
        if newline:
            self.stdout.write("\n")
        self.stdout.flush()

    def _read_token(self) -> str:
        while not self._pending:
            line = self.stdin.readline()
            if not line:
                raise EOFError("no more input")
            self._pending = line.split()
        return self._pending.pop(0)

    def _show_room(self, room: Room) -> None:
        self._say(room.title)
        self._say(room.description)

    # ----- random choices ---------------------------------------------------

    def roll_enemy_count(self) -> int:
        """Return how many enemies a fight has: 1 to 4, fewer being likelier."""
        roll = self.rng.randint(0, 100)
        if roll <= 35:
            return 1
        if roll <= 70:
            return 2
        if roll <= 90:
            return 3
        return 4

    def pick_enemy(self) -> Enemy:
        """Draw an enemy type by its probability and return a fresh copy of it."""
        enemies = self.game_map.enemies
        if not enemies:
            raise MapFormatError("the map defines no enemies")
        roll = self.rng.randint(0, _PERCENT_SCALE)
        accumulated = 0
        for enemy in enemies:
            share = enemy.probability * _PERCENT_SCALE
            if accumulated < roll < accumulated + share:
                return dataclasses.replace(enemy)
            accumulated = int(accumulated + share)
        return dataclasses.replace(enemies[-1])

    def pick_event(self) -> Event:
        """Draw an event by its probability."""
        events = self.game_map.events
        if not events:
            raise MapFormatError("the map defines no events")
        roll = self.rng.randint(0, _PERCENT_SCALE)
        accumulated = 0
        for event in events:
            accumulated = int(accumulated + event.probability * _PERCENT_SCALE)
            if roll < accumulated:
                return event
        return events[-1]

    # ----- combat -----------------------------------------------------------

    @staticmethod
    def _announce(enemies: list[Enemy]) -> str:
        names = [enemy.name for enemy in enemies]
        if len(names) == 1:
            return f"{names[0]}!"
        return ", ".join(names[:-1]) + " y " + names[-1] + "!"

    def _show_status(self, enemies: list[Enemy], player_health: str) -> None:
        self._say("Jugador" + "".join(f" | {enemy.name}" for enemy in enemies))
        healths = "".join(
            f" | {enemy.health if enemy.health > 0 else 'X'}" for enemy in enemies
        )
        self._say(player_health + healths)

    def _hits(self, accuracy: float) -> bool:
        return self.rng.randint(0, _PERCENT_SCALE) <= accuracy * _PERCENT_SCALE

    def _player_turn(self, enemies: list[Enemy]) -> None:
        player = self.player
        if not self._hits(player.accuracy):
            self._say("Jugador falla!")
            return
        target = next((enemy for enemy in enemies if enemy.health > 0), None)
        if target is not None:
            target.health -= player.attack
            self._say(f"Jugador golpea a {target.name} por {player.attack} de daño!")

    def _enemy_turn(self, enemy: Enemy) -> None:
        if not self._hits(enemy.accuracy):
            self._say(f"{enemy.name} falla!")
            return
        self.player.health -= enemy.attack
        self._say(f"{enemy.name} golpea a Jugador por {enemy.attack} de daño!")

    def _choose_upgrade(self) -> None:
        upgrades = self.game_map.upgrades
        if not upgrades:
            return
        self._say("Debes decidir: ")
        for index, upgrade in enumerate(upgrades):
            self._say("\t" + upgrade.describe(index))
        while True:
            choice = self._read_token()
            if choice.isdigit() and int(choice) < len(upgrades):
                break
            self._say("Ingresa una opcion valida.")
        self._say(upgrades[int(choice)].apply(self.player))

    def fight(self) -> bool:
        """Fight a random group of enemies; return True if the player survives."""
        enemies = [self.pick_enemy() for _ in range(self.roll_enemy_count())]
        self._say(self._announce(enemies))

        queue: TurnQueue[Player | Enemy] = TurnQueue()
        queue.enqueue(self.player)
        for enemy in enemies:
            queue.enqueue(enemy)

        while len(queue) > 1 and self.player.health > 0:
            self._show_status(enemies, str(self.player.health))
            fighter = queue.dequeue()
            if fighter is self.player:
                self._player_turn(enemies)
                queue.enqueue(fighter)
            elif fighter.health > 0:
                self._enemy_turn(fighter)
                queue.enqueue(fighter)

        if self.player.health > 0:
            self._say("Has sobrevivido el combate!")
            self.player.health += self.player.recovery
            self._say(f"Recuperas {self.player.recovery} de vida tras el combate.")
            self._choose_upgrade()
            return True
        self._show_status(enemies, "X")
        return False

    # ----- events -----------------------------------------------------------

    def run_event(self) -> bool:
        """Play a random event; return True if the player is still alive afterwards."""
        event = self.pick_event()
        self._say(event.description)
        for index, option in enumerate(event.options):
            self._say(f"{chr(ord('A') + index)}){option.action}")
        while True:
            self._say("Elige una opcion: ")
            choice = self._read_token()
            if len(choice) == 1:
                index = ord(choice.upper()) - ord("A")
                if 0 <= index < len(event.options):
                    break
            self._say("Ingresa una opcion valida.")
        option = event.options[index]
        self._say(option.description)
        message = apply_effect(self.player, option.effect)
        if message is not None:
            self._say(message)
        return self.player.health > 0

    # ----- navigation -------------------------------------------------------

    def choose_next_room(self, node: MapNode) -> MapNode:
        """Ask which of the rooms reachable from ``node`` to enter and return it."""
        if not node.children:
            raise ValueError(f"room {node.room.number} leads nowhere")
        menu = "".join(
            f"\n{number}. {child.room.name}"
            for number, child in enumerate(node.children, start=1)
        )
        self._say("A donde quieres ir?" + menu)
        valid = {str(number) for number in range(1, len(node.children) + 1)}
        while (choice := self._read_token()) not in valid:
            self._say("Por favor elija una opción valida")
        return node.children[int(choice) - 1]

    def play(self) -> bool:
        """Walk the map from its first room; return True if the player reaches an end alive."""
        node = self.game_map.start
        self._show_room(node.room)
        if self.delay > 0:
            time.sleep(self.delay * 20)
        while node.children:
            node = self.choose_next_room(node)
            self._show_room(node.room)
            if node.room.kind == "COMBATE":
                survived = self.fight()
            elif node.room.kind == "EVENTO":
                survived = self.run_event()
            else:
                survived = True
            if not survived:
                self._say(_DEATH_MESSAGE)
                return False
        return True


def main(argv: list[str] | None = None) -> int:
    """Load a map file and play it in the terminal."""
    parser = argparse.ArgumentParser(prog="tareas-game", description="Explore a dungeon map.")
    parser.add_argument("map", nargs="?", default="data.map")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--no-delay", action="store_true", help="print text at once")
    args = parser.parse_args(argv)

    try:
        game_map = load_map(args.map)
    except OSError:
        print("No se pudo abrir el archivo")
        return 1
    except MapFormatError as exc:
        print(exc, file=sys.stderr)
        return 1

    game = Game(
        game_map,
        rng=random.Random(args.seed),
        delay=0.0 if args.no_delay else 0.025,
    )
    try:
        game.play()
    except EOFError:
        return 1
    return 0