"""Command validation for Skirmish.

Two passes, both pure:
- `parse` decodes an untyped oracle reply into a typed Command, turning every
  schema problem into a ValidationError with suggestions from the live world.
- `validate` checks a typed Command against the snapshot: named characters
  and locations must exist, spawned names must be new.

Every problem is collected; nothing is coerced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from ..core.character import Character
from ..core.commands import (
    COMMAND_TYPES,
    AttackCommand,
    CharacterSpawnCommand,
    Command,
    ItemSpawnCommand,
    MapTransitionCommand,
    MovementCommand,
    SpeechCommand,
)
from ..core.errors import CommandParseError, ValidationError
from ..core.types import AttackKind, Faction, ItemKind, Orientation, Race, Speed
from ..core.world import WorldSnapshot
from .locations import LocationResolver

logger = logging.getLogger(__name__)

CommandAdapter: TypeAdapter[Command] = TypeAdapter(Command)

# Enumerated domains by field name (item `type` is handled separately)
_ENUM_FIELDS: dict[str, type[Enum]] = {
    "race": Race,
    "faction": Faction,
    "speed": Speed,
    "orientation": Orientation,
    "attack": AttackKind,
}

_LOCATION_ERROR_TYPES = frozenset({
    "coordinates_forbidden",
    "directions_forbidden",
    "empty_location",
})


@dataclass
class ParseOutcome:
    """Result of decoding an oracle reply."""

    command: Command | None
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.command is not None and not self.errors

    def unwrap(self) -> Command:
        if self.command is None:
            raise CommandParseError(self.errors)
        return self.command


def format_field(loc: Sequence[str | int]) -> str:
    """Render a pydantic location tuple as `characters[0].location`."""
    text = ""
    for part in loc:
        if isinstance(part, int):
            text += f"[{part}]"
        else:
            text += f".{part}" if text else str(part)
    return text


class CommandValidator:
    """Structural and semantic validation of oracle commands."""

    def __init__(self, locations: LocationResolver | None = None):
        self._locations = locations or LocationResolver()

    # -------------------------------------------------------------------------
    # Structural pass
    # -------------------------------------------------------------------------

    def parse(self, raw: Any, snapshot: WorldSnapshot) -> ParseOutcome:
        if not isinstance(raw, dict):
            return ParseOutcome(
                command=None,
                errors=[
                    ValidationError(
                        field="command",
                        value=raw,
                        reason="Command must be a JSON object",
                        suggestions=COMMAND_TYPES,
                    )
                ],
            )

        try:
            command = CommandAdapter.validate_python(raw)
        except SchemaError as e:
            errors = [self._convert(err, raw, snapshot) for err in e.errors(include_url=False)]
            logger.debug(f"Structural validation failed | type={raw.get('type')!r} | errors={len(errors)}")
            return ParseOutcome(command=None, errors=errors)

        return ParseOutcome(command=command)

    def _convert(
        self, err: dict[str, Any], raw: dict[str, Any], snapshot: WorldSnapshot
    ) -> ValidationError:
        kind = err["type"]
        loc = list(err["loc"])

        if kind == "union_tag_not_found":
            return ValidationError(
                field="type",
                value=None,
                reason="Missing command type",
                suggestions=COMMAND_TYPES,
            )
        if kind == "union_tag_invalid":
            return ValidationError(
                field="type",
                value=raw.get("type"),
                reason="Unknown command type",
                suggestions=COMMAND_TYPES,
            )

        # Discriminated unions prefix the location with the tag
        if loc and loc[0] == raw.get("type"):
            loc = loc[1:]
        field_name = format_field(loc) or "command"
        value = None if kind == "missing" else err.get("input")
        last = loc[-1] if loc else None

        suggestions: tuple[str, ...] = ()
        if kind in _LOCATION_ERROR_TYPES or last == "location":
            suggestions = tuple(self._locations.available_locations(snapshot))
        elif kind == "enum" and last == "type":
            suggestions = tuple(k.value for k in ItemKind)
        elif kind == "enum" and isinstance(last, str) and last in _ENUM_FIELDS:
            suggestions = tuple(m.value for m in _ENUM_FIELDS[last])

        return ValidationError(
            field=field_name,
            value=value,
            reason=err["msg"],
            suggestions=suggestions,
        )

    # -------------------------------------------------------------------------
    # Semantic pass
    # -------------------------------------------------------------------------

    def validate(
        self,
        command: Command,
        snapshot: WorldSnapshot,
        actor: Character | None = None,
    ) -> list[ValidationError]:
        """Check a typed command against the live snapshot.

        With an `actor`, movement and attack orders may only name characters
        the actor's controller owns.
        """
        if isinstance(command, MovementCommand):
            return self._validate_movement(command, snapshot, actor)
        if isinstance(command, AttackCommand):
            return self._validate_attack(command, snapshot, actor)
        if isinstance(command, SpeechCommand):
            return self._validate_speech(command, snapshot)
        if isinstance(command, CharacterSpawnCommand):
            return self._validate_character_spawn(command, snapshot)
        if isinstance(command, ItemSpawnCommand):
            return self._validate_item_spawn(command, snapshot)
        if isinstance(command, MapTransitionCommand):
            return []
        return [
            ValidationError(field="type", value=getattr(command, "type", None), reason="Unsupported command type")
        ]

    def _validate_movement(
        self, command: MovementCommand, snapshot: WorldSnapshot, actor: Character | None
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        for i, order in enumerate(command.characters):
            errors.extend(self._check_own_character(f"characters[{i}].name", order.name, snapshot, actor))
            if not self._locations.is_known(order.location, snapshot):
                errors.append(
                    ValidationError(
                        field=f"characters[{i}].location",
                        value=order.location,
                        reason="Location does not exist",
                        suggestions=tuple(self._locations.available_locations(snapshot)),
                    )
                )
        return errors

    def _validate_attack(
        self, command: AttackCommand, snapshot: WorldSnapshot, actor: Character | None
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        for i, order in enumerate(command.characters):
            errors.extend(self._check_own_character(f"characters[{i}].name", order.name, snapshot, actor))
            target = snapshot.get_character(order.target)
            living = tuple(c.name for c in snapshot.living() if c.name.lower() != order.name.lower())
            if target is None:
                errors.append(
                    ValidationError(
                        field=f"characters[{i}].target",
                        value=order.target,
                        reason="Target character does not exist",
                        suggestions=living,
                    )
                )
            elif not target.is_alive:
                errors.append(
                    ValidationError(
                        field=f"characters[{i}].target",
                        value=order.target,
                        reason="Target character is already dead",
                        suggestions=living,
                    )
                )
        return errors

    def _validate_speech(
        self, command: SpeechCommand, snapshot: WorldSnapshot
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        names = tuple(snapshot.character_names())
        if snapshot.get_character(command.source) is None:
            errors.append(
                ValidationError(
                    field="source",
                    value=command.source,
                    reason="Speaker does not exist",
                    suggestions=names,
                )
            )
        if command.target is not None and snapshot.get_character(command.target) is None:
            errors.append(
                ValidationError(
                    field="target",
                    value=command.target,
                    reason="Listener does not exist",
                    suggestions=names,
                )
            )
        return errors

    def _validate_character_spawn(
        self, command: CharacterSpawnCommand, snapshot: WorldSnapshot
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        seen: set[str] = set()
        for i, spec in enumerate(command.characters):
            lowered = spec.name.lower()
            if snapshot.get_character(spec.name) is not None or lowered in seen:
                errors.append(
                    ValidationError(
                        field=f"characters[{i}].name",
                        value=spec.name,
                        reason="Character already exists",
                    )
                )
            seen.add(lowered)
            if not self._locations.is_known(spec.location, snapshot):
                errors.append(
                    ValidationError(
                        field=f"characters[{i}].location",
                        value=spec.location,
                        reason="Location does not exist",
                        suggestions=tuple(self._locations.available_locations(snapshot)),
                    )
                )
        return errors

    def _validate_item_spawn(
        self, command: ItemSpawnCommand, snapshot: WorldSnapshot
    ) -> list[ValidationError]:
        errors: list[ValidationError] = []
        for i, item in enumerate(command.items):
            if not self._locations.is_known(item.location, snapshot):
                errors.append(
                    ValidationError(
                        field=f"items[{i}].location",
                        value=item.location,
                        reason="Location does not exist",
                        suggestions=tuple(self._locations.available_locations(snapshot)),
                    )
                )
        return errors

    def _check_own_character(
        self,
        field_name: str,
        name: str,
        snapshot: WorldSnapshot,
        actor: Character | None,
    ) -> list[ValidationError]:
        character = snapshot.get_character(name)
        if character is None:
            return [
                ValidationError(
                    field=field_name,
                    value=name,
                    reason="Character does not exist",
                    suggestions=tuple(snapshot.character_names()),
                )
            ]
        if actor is not None and character.controller != actor.controller:
            return [
                ValidationError(
                    field=field_name,
                    value=name,
                    reason="Character is not under your control",
                    suggestions=tuple(c.name for c in snapshot.characters_of(actor.controller)),
                )
            ]
        return []
