"""Foundational types for Skirmish.

This module defines the core types used throughout the system:
- Position: Continuous map coordinates (x, y)
- Facing: Eight-way facing directions
- Enumerations for the closed value domains of the command protocol
- Type aliases for domain identifiers
"""

from __future__ import annotations

import math
from enum import Enum
from typing import NewType, NamedTuple

# Type aliases for domain identifiers
CharacterName = NewType("CharacterName", str)
ControllerId = NewType("ControllerId", str)
RoomName = NewType("RoomName", str)

# Well-known controller ids
HUMAN_CONTROLLER = ControllerId("human")
AI_CONTROLLER = ControllerId("ai")


class Position(NamedTuple):
    """A position on the map.

    Coordinates are continuous; x grows to the right and y grows downward,
    matching the map's row/column layout. A character standing on a cell
    has integer coordinates.
    """

    x: float
    y: float

    @property
    def cell(self) -> Position:
        """The integer cell this position falls in."""
        return Position(int(round(self.x)), int(round(self.y)))

    def distance_to(self, other: Position) -> float:
        """Euclidean distance to another position."""
        return math.hypot(other.x - self.x, other.y - self.y)

    def manhattan_to(self, other: Position) -> float:
        """Manhattan distance to another position."""
        return abs(other.x - self.x) + abs(other.y - self.y)

    def neighbors(self) -> list[Position]:
        """The four cardinal neighbor cells."""
        x, y = self.cell
        return [
            Position(x, y - 1),
            Position(x + 1, y),
            Position(x, y + 1),
            Position(x - 1, y),
        ]

    def __str__(self) -> str:
        return f"{_fmt(self.x)},{_fmt(self.y)}"


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


class Facing(Enum):
    """Eight-way facing direction of a character."""

    TOP = "top"
    TOP_RIGHT = "top-right"
    RIGHT = "right"
    BOTTOM_RIGHT = "bottom-right"
    BOTTOM = "bottom"
    BOTTOM_LEFT = "bottom-left"
    LEFT = "left"
    TOP_LEFT = "top-left"


# --- Protocol value domains ---


class Race(str, Enum):
    HUMAN = "human"
    ALIEN = "alien"
    ROBOT = "robot"


class Faction(str, Enum):
    """Factions the protocol may assign when spawning characters."""

    PLAYER = "player"
    ENEMY = "enemy"
    NEUTRAL = "neutral"


class Speed(str, Enum):
    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"


class Orientation(str, Enum):
    """Initial facing of a spawned character."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class ItemKind(str, Enum):
    WEAPON = "weapon"
    CONSUMABLE = "consumable"
    KEY = "key"
    ARTIFACT = "artifact"


class AttackKind(str, Enum):
    MELEE = "melee"
    HOLD = "hold"
    KILL = "kill"
    RETREAT = "retreat"


class WeaponCategory(str, Enum):
    MELEE = "melee"
    RANGED = "ranged"


class Relation(str, Enum):
    """How one character's faction regards another's."""

    ALLIED = "allied"
    HOSTILE = "hostile"
    NEUTRAL = "neutral"
