"""Command protocol for Skirmish.

Commands are the oracle's decisions. Each command variant is a frozen
Pydantic model with a `type` discriminator; the `Command` union is decoded
at the oracle boundary and everything downstream works on the typed variant.

Movement and spawn locations are room names or character names. Literal
coordinates and directional tokens are structural errors; internally
generated follow-up movements bypass the protocol and never pass through
these models.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, field_validator
from pydantic_core import PydanticCustomError

from .types import AttackKind, Faction, ItemKind, Orientation, Race, Speed

COORDINATE_PATTERN = re.compile(r"^\s*-?\d+(\.\d+)?\s*,\s*-?\d+(\.\d+)?\s*$")

DIRECTION_TOKENS = frozenset({
    "north", "south", "east", "west",
    "up", "down", "left", "right",
    "northeast", "northwest", "southeast", "southwest",
    "north-east", "north-west", "south-east", "south-west",
    "forward", "backward", "forwards", "backwards",
})

COORDINATES_FORBIDDEN = "Coordinates are not allowed. Use room names or character names"
DIRECTIONS_FORBIDDEN = "Directions are not allowed. Use room names or character names"


def is_coordinate(value: str) -> bool:
    return bool(COORDINATE_PATTERN.match(value))


def is_direction(value: str) -> bool:
    return value.strip().lower() in DIRECTION_TOKENS


def check_location(value: str) -> str:
    """Reject literal coordinates and directional tokens as locations."""
    if not value.strip():
        raise PydanticCustomError("empty_location", "Location must not be empty")
    if is_coordinate(value):
        raise PydanticCustomError("coordinates_forbidden", COORDINATES_FORBIDDEN)
    if is_direction(value):
        raise PydanticCustomError("directions_forbidden", DIRECTIONS_FORBIDDEN)
    return value.strip()


class BaseCommand(BaseModel):
    """Base class for all commands."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# --- Movement ---


class MovementOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    location: str

    @field_validator("location")
    @classmethod
    def _location_is_named(cls, value: str) -> str:
        return check_location(value)


class MovementCommand(BaseCommand):
    """Move one or more characters to a room or next to a character."""

    type: Literal["movement"] = "movement"
    characters: list[MovementOrder] = Field(min_length=1)


# --- Attack ---


class AttackOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    target: str = Field(min_length=1)
    attack: AttackKind | None = None


class AttackCommand(BaseCommand):
    """Attack a target character. Out-of-range attacks turn into movement."""

    type: Literal["attack"] = "attack"
    characters: list[AttackOrder] = Field(min_length=1)


# --- Speech ---


class SpeechCommand(BaseCommand):
    """Say something to a nearby character.

    Without a `target`, the line is addressed to the nearest human-controlled
    character in conversation range. With a `target` naming an AI character,
    the line is an AI-to-AI exchange.
    """

    type: Literal["speech"] = "speech"
    source: str = Field(min_length=1)
    content: str = Field(min_length=1)
    answers: list[str] = Field(default_factory=list)
    target: str | None = None


# --- Spawning ---


class CharacterSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    race: Race
    description: str = Field(min_length=1)
    location: str
    faction: Faction = Faction.NEUTRAL
    speed: Speed = Speed.MEDIUM
    orientation: Orientation = Orientation.BOTTOM
    palette: dict[str, str] | None = None

    @field_validator("location")
    @classmethod
    def _location_is_named(cls, value: str) -> str:
        return check_location(value)


class CharacterSpawnCommand(BaseCommand):
    """Bring new characters into the scene."""

    type: Literal["character"] = "character"
    characters: list[CharacterSpec] = Field(min_length=1)


class ItemSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    type: ItemKind
    location: str
    description: str | None = None

    @field_validator("location")
    @classmethod
    def _location_is_named(cls, value: str) -> str:
        return check_location(value)


class ItemSpawnCommand(BaseCommand):
    """Place items on the map."""

    type: Literal["item"] = "item"
    items: list[ItemSpec] = Field(min_length=1)


# --- Map transition ---


class MapPalette(BaseModel):
    model_config = ConfigDict(frozen=True)

    terrain: str = Field(min_length=1)


class MapTransitionCommand(BaseCommand):
    """Move the scene to a new map. Generation of the map happens elsewhere."""

    type: Literal["map"] = "map"
    palette: MapPalette
    buildings: list[dict[str, Any]]


# --- Command union ---


Command = Annotated[
    Union[
        MovementCommand,
        AttackCommand,
        SpeechCommand,
        CharacterSpawnCommand,
        ItemSpawnCommand,
        MapTransitionCommand,
    ],
    Discriminator("type"),
]

COMMAND_TYPES = ("movement", "attack", "speech", "character", "item", "map")
