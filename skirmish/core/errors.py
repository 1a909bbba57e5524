"""Errors for Skirmish.

Recoverable problems travel as values (lists of ValidationError, outcome
objects); the exceptions here mark failures at module boundaries.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ValidationError(BaseModel):
    """One problem found in a candidate command.

    Feeds the correction prompt sent back to the oracle, so `suggestions`
    holds real values from the live world (room names, character names,
    enum members).
    """

    model_config = ConfigDict(frozen=True)

    field: str
    value: Any = None
    reason: str
    suggestions: tuple[str, ...] = Field(default_factory=tuple)

    def describe(self) -> str:
        text = f"{self.field}: {self.reason} (got {self.value!r})"
        if self.suggestions:
            text += f" - valid options: {', '.join(self.suggestions)}"
        return text


class SkirmishError(Exception):
    """Base class for Skirmish errors."""


class CommandParseError(SkirmishError):
    """A candidate command could not be decoded into a typed Command."""

    def __init__(self, errors: list[ValidationError]):
        self.errors = errors
        summary = "; ".join(e.describe() for e in errors[:3])
        super().__init__(f"Invalid command ({len(errors)} error(s)): {summary}")


class LocationResolutionError(SkirmishError):
    """A textual location names no room, character or known landmark."""

    def __init__(
        self,
        location: str,
        message: str,
        rooms: list[str] | None = None,
        characters: list[str] | None = None,
    ):
        self.location = location
        self.rooms = rooms or []
        self.characters = characters or []
        super().__init__(message)

    @property
    def suggestions(self) -> list[str]:
        return [*self.rooms, *self.characters]


class OracleTransportError(SkirmishError):
    """The decision service could not be reached or returned garbage.

    Raised by transports and absorbed by the oracle client's retry loop.
    """
