"""Mutation intents for Skirmish.

The orchestration engine never mutates the world itself. It emits intents
that the surrounding game-state system applies atomically between
orchestration steps.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field

from .character import Character
from .types import CharacterName, ControllerId, Facing, ItemKind, Position, WeaponCategory


class BaseIntent(BaseModel):
    model_config = ConfigDict(frozen=True)


class MoveAlongPath(BaseIntent):
    """Walk a character along cells, paying `points_spent` action points."""

    type: Literal["move_along_path"] = "move_along_path"
    character: CharacterName
    path: tuple[Position, ...]
    points_spent: int

    @property
    def destination(self) -> Position:
        return self.path[-1]


class ChangeDirection(BaseIntent):
    type: Literal["change_direction"] = "change_direction"
    character: CharacterName
    direction: Facing


class ApplyDamage(BaseIntent):
    """Resolve an attack. The combat system decides hit/miss and projectiles."""

    type: Literal["apply_damage"] = "apply_damage"
    attacker: CharacterName
    target: CharacterName
    category: WeaponCategory
    amount: int
    points_spent: int


class AddCharacter(BaseIntent):
    type: Literal["add_character"] = "add_character"
    character: Character


class AddItem(BaseIntent):
    type: Literal["add_item"] = "add_item"
    name: str
    kind: ItemKind
    position: Position
    description: str | None = None


class OpenDialogue(BaseIntent):
    """Open the player-facing dialogue for a line of speech."""

    type: Literal["open_dialogue"] = "open_dialogue"
    speaker: CharacterName
    listener: CharacterName
    content: str
    answers: tuple[str, ...] = ()
    overheard: bool = False


class AdvanceTurn(BaseIntent):
    type: Literal["advance_turn"] = "advance_turn"
    previous: ControllerId
    next: ControllerId


class LoadMap(BaseIntent):
    type: Literal["load_map"] = "load_map"
    terrain: str
    buildings: tuple[dict[str, Any], ...] = Field(default_factory=tuple)


Intent = Annotated[
    Union[
        MoveAlongPath,
        ChangeDirection,
        ApplyDamage,
        AddCharacter,
        AddItem,
        OpenDialogue,
        AdvanceTurn,
        LoadMap,
    ],
    Discriminator("type"),
]
