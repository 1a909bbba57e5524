"""Game-state gateway for Skirmish.

The orchestration engine reads the world through `snapshot()` and asks for
changes through `apply(intent)`. The host game implements the gateway;
`InMemoryGameState` is a self-contained implementation used by the CLI and
the tests.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from ..core.intents import (
    AddCharacter,
    AddItem,
    AdvanceTurn,
    ApplyDamage,
    ChangeDirection,
    Intent,
    LoadMap,
    MoveAlongPath,
    OpenDialogue,
)
from ..core.types import ControllerId
from ..core.world import WorldSnapshot
from ..services.geometry import direction_towards

logger = logging.getLogger(__name__)


class GameStateGateway(Protocol):
    """Read access to the world plus an intent sink.

    `apply` returns once the intent has taken effect (movement settled,
    dialogue opened), which is the suspension point the engine waits on.
    """

    def snapshot(self) -> WorldSnapshot: ...

    async def apply(self, intent: Intent) -> None: ...


class InMemoryGameState:
    """Applies intents to an in-memory snapshot, one at a time."""

    def __init__(self, snapshot: WorldSnapshot):
        self._snapshot = snapshot
        self.applied: list[Intent] = []
        self.dialogues: list[OpenDialogue] = []
        self.terrain: str | None = None
        self._turn_callbacks: list[Callable[[ControllerId], None]] = []

    def snapshot(self) -> WorldSnapshot:
        return self._snapshot

    def on_turn_change(self, callback: Callable[[ControllerId], None]) -> None:
        """Register a callback invoked with the new controller on every turn change."""
        self._turn_callbacks.append(callback)

    async def apply(self, intent: Intent) -> None:
        self.applied.append(intent)
        handler = {
            "move_along_path": self._apply_move,
            "change_direction": self._apply_direction,
            "apply_damage": self._apply_damage,
            "add_character": self._apply_add_character,
            "add_item": self._apply_add_item,
            "open_dialogue": self._apply_dialogue,
            "advance_turn": self._apply_advance_turn,
            "load_map": self._apply_load_map,
        }[intent.type]
        handler(intent)
        logger.debug(f"Applied intent {intent.type}")

    def begin_turn(self, controller: ControllerId) -> None:
        """Hand the turn to `controller` and refill its characters' points."""
        snapshot = self._snapshot.with_turn(controller)
        for character in snapshot.characters_of(controller):
            snapshot = snapshot.with_character(character.with_fresh_points())
        self._snapshot = snapshot
        for callback in self._turn_callbacks:
            callback(controller)

    # --- Handlers ---

    def _require(self, name: str):
        character = self._snapshot.get_character(name)
        if character is None:
            raise KeyError(f"Unknown character: {name}")
        return character

    def _apply_move(self, intent: MoveAlongPath) -> None:
        character = self._require(intent.character)
        previous = intent.path[-2] if len(intent.path) > 1 else character.position
        moved = (
            character.with_position(intent.destination)
            .with_points(character.points_left - intent.points_spent)
            .with_direction(direction_towards(previous, intent.destination))
        )
        self._snapshot = self._snapshot.with_character(moved)

    def _apply_direction(self, intent: ChangeDirection) -> None:
        character = self._require(intent.character)
        self._snapshot = self._snapshot.with_character(character.with_direction(intent.direction))

    def _apply_damage(self, intent: ApplyDamage) -> None:
        attacker = self._require(intent.attacker)
        self._snapshot = self._snapshot.with_character(
            attacker.with_points(attacker.points_left - intent.points_spent)
        )
        target = self._require(intent.target)
        self._snapshot = self._snapshot.with_character(
            target.with_health(target.health - intent.amount)
        )

    def _apply_add_character(self, intent: AddCharacter) -> None:
        self._snapshot = self._snapshot.with_character(intent.character)

    def _apply_add_item(self, intent: AddItem) -> None:
        grid = self._snapshot.map
        cell = grid.get_cell(intent.position)
        updated = cell.model_copy(update={"items": cell.items + (intent.name,)})
        self._snapshot = self._snapshot.with_map(grid.with_cell(updated))

    def _apply_dialogue(self, intent: OpenDialogue) -> None:
        self.dialogues.append(intent)

    def _apply_advance_turn(self, intent: AdvanceTurn) -> None:
        self.begin_turn(intent.next)

    def _apply_load_map(self, intent: LoadMap) -> None:
        self.terrain = intent.terrain
