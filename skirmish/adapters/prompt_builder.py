"""Prompt builder for Skirmish.

Renders the protocol description, the situational brief for one decision
and the correction request sent after a failed validation.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..core.errors import ValidationError
    from ..services.context_builder import DecisionContext


# =============================================================================
# Protocol Description
# =============================================================================

PROTOCOL_DESCRIPTION = """You decide what one character in a turn-based tactical game does next.
Reply with exactly ONE JSON object and nothing else. Valid shapes:

{"type": "movement", "characters": [{"name": "<your character>", "location": "<room name or character name>"}]}
{"type": "attack", "characters": [{"name": "<your character>", "target": "<character name>"}]}
{"type": "speech", "source": "<your character>", "content": "<what you say>", "answers": ["<reply option>", "..."]}
{"type": "character", "characters": [{"name": "<new name>", "race": "human|alien|robot", "faction": "player|enemy|neutral", "speed": "slow|medium|fast", "orientation": "top|right|bottom|left", "description": "<who they are>", "location": "<room or character name>"}]}
{"type": "item", "items": [{"name": "<item>", "type": "weapon|consumable|key|artifact", "location": "<room or character name>", "description": "<optional>"}]}
{"type": "map", "palette": {"terrain": "<terrain>"}, "buildings": [...]}

Rules:
- Locations are room names or character names. Never coordinates like "12,7".
- Never use directions such as "north" or "left"; the world has no reliable forward.
- Only order your own characters. Only target characters that exist.
- Speech only reaches characters within 8 cells with no wall in between; otherwise you will walk toward them first."""


def get_protocol_description() -> str:
    return PROTOCOL_DESCRIPTION


# =============================================================================
# Situational Brief
# =============================================================================


def build_context_prompt(context: "DecisionContext") -> str:
    """Render a DecisionContext as the user message for a decision."""
    me = context.character
    lines = [
        f"You are {me.name} ({me.faction}) in {me.room} at {me.position}.",
        f"Health {me.health}/{me.max_health}. Action points {me.points_left} "
        f"(moving costs {me.move_cost} per cell). Weapon: {me.weapon}"
        f"{' (ranged)' if me.has_ranged_weapon else ''}. Facing {me.direction}.",
        f"Current turn: {context.turn}.",
    ]

    if context.visible:
        lines.append("")
        lines.append("Characters you can see:")
        for v in context.visible:
            flags = []
            if v.is_adjacent:
                flags.append("adjacent")
            if v.can_reach_this_turn:
                flags.append("reachable this turn")
            if v.can_converse:
                flags.append("can talk")
            if v.is_in_cover:
                flags.append("in cover")
            if not v.has_line_of_sight:
                flags.append("line of fire blocked")
            flag_text = f" [{', '.join(flags)}]" if flags else ""
            lines.append(
                f"- {v.name} ({v.faction}, {v.relation.value}) {v.distance} cells away, "
                f"health {v.health}/{v.max_health}, threat {v.threat_level}{flag_text}"
            )
    else:
        lines.append("")
        lines.append("You see no one.")

    if context.in_conversation_range:
        lines.append(f"Within talking range: {', '.join(context.in_conversation_range)}")
    if context.hostiles:
        lines.append(f"Hostile: {', '.join(context.hostiles)}")
    if context.allies:
        lines.append(f"Allied: {', '.join(context.allies)}")
    if context.rooms:
        lines.append(f"Rooms: {', '.join(context.rooms)}")

    if context.mission:
        lines.append("")
        lines.append(f"Mission: {context.mission}")
    if context.story_flags:
        flags = ", ".join(f"{k}={'yes' if v else 'no'}" for k, v in context.story_flags.items())
        lines.append(f"Story flags: {flags}")
    if context.narrative:
        lines.append(f"Story so far: {context.narrative}")

    if context.recent_events:
        lines.append("")
        lines.append("Recent events:")
        lines.extend(f"- {event}" for event in context.recent_events)

    if context.conversation:
        lines.append("")
        lines.append("Recent conversation:")
        for line in context.conversation:
            lines.append(f"- {line.speaker}: {line.content}")

    if context.blockage is not None:
        b = context.blockage
        relation = "ally" if b.is_ally else "not an ally"
        lines.append("")
        lines.append(
            f"BLOCKED: {b.message} {b.blocker} ({relation}, health {b.health}/{b.max_health}) "
            f"stands {b.distance} cells away at {b.position} on the way to {b.original_target}. "
            "Attack them, wait, or choose another destination."
        )

    lines.append("")
    lines.append("What do you do? Reply with one JSON command.")
    return "\n".join(lines)


# =============================================================================
# Correction Request
# =============================================================================


def format_error_feedback(errors: list["ValidationError"]) -> str:
    """List validation errors one block per error."""
    blocks = []
    for i, error in enumerate(errors, start=1):
        block = [
            f"{i}. Field: {error.field}",
            f"   Current value: {json.dumps(error.value, default=str)}",
            f"   Error: {error.reason}",
        ]
        if error.suggestions:
            block.append(f"   Valid options: {', '.join(error.suggestions)}")
        blocks.append("\n".join(block))
    return "\n".join(blocks)


def build_correction_prompt(
    original: Any,
    errors: list["ValidationError"],
    attempt: int,
    max_attempts: int,
) -> str:
    """Ask the oracle to fix a command, quoting it and every error."""
    return (
        "Your previous command could not be executed.\n\n"
        f"Command:\n{json.dumps(original, indent=2, default=str)}\n\n"
        f"Errors:\n{format_error_feedback(errors)}\n\n"
        f"This is correction attempt {attempt} of {max_attempts}. "
        "Reply with one corrected JSON command using only the valid options listed."
    )
