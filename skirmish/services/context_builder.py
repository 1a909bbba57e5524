"""Context builder for Skirmish.

Assembles the situational summary handed to the oracle for one character's
decision: who it can see, who it can talk to, what happened recently and
what the story wants.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..core.character import Character
from ..core.types import CharacterName, Position, Relation
from ..core.world import WorldSnapshot
from .factions import FactionService
from .geometry import distance, has_line_of_sight, is_in_cover
from .locations import LocationResolver

if TYPE_CHECKING:
    from ..config import OrchestratorConfig

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Context Models
# -----------------------------------------------------------------------------


class CharacterSummary(BaseModel):
    """The deciding character, as it sees itself."""

    model_config = ConfigDict(frozen=True)

    name: CharacterName
    faction: str
    position: Position
    room: str
    health: int
    max_health: int
    points_left: int
    move_cost: int
    weapon: str
    has_ranged_weapon: bool
    direction: str


class VisibleCharacter(BaseModel):
    """Another character in view."""

    model_config = ConfigDict(frozen=True)

    name: CharacterName
    faction: str
    controller: str
    relation: Relation
    position: Position
    distance: float
    health: int
    max_health: int
    is_adjacent: bool
    has_line_of_sight: bool
    is_in_cover: bool
    can_converse: bool
    can_reach_this_turn: bool
    threat_level: int


class BlockageInfo(BaseModel):
    """A character standing in the way of the previous movement."""

    model_config = ConfigDict(frozen=True)

    blocker: CharacterName
    is_ally: bool
    health: int
    max_health: int
    position: Position
    distance: float
    original_target: str
    message: str


class ConversationLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    speaker: str
    content: str
    listener: str | None = None


class DecisionContext(BaseModel):
    """Per-decision snapshot. Built fresh for every request; never stored."""

    model_config = ConfigDict(frozen=True)

    character: CharacterSummary
    turn: str
    visible: tuple[VisibleCharacter, ...] = ()
    in_conversation_range: tuple[CharacterName, ...] = ()
    allies: tuple[CharacterName, ...] = ()
    hostiles: tuple[CharacterName, ...] = ()
    rooms: tuple[str, ...] = ()
    recent_events: tuple[str, ...] = ()
    conversation: tuple[ConversationLine, ...] = ()
    mission: str | None = None
    story_flags: dict[str, bool] = Field(default_factory=dict)
    narrative: str | None = None
    blockage: BlockageInfo | None = None

    def get_visible(self, name: str) -> VisibleCharacter | None:
        for entry in self.visible:
            if entry.name.lower() == name.lower():
                return entry
        return None


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------


def threat_level(
    observer: Character, other: Character, dist: float, relation: Relation
) -> int:
    """Rough 0-100 danger estimate of `other` for `observer`."""
    if relation == Relation.ALLIED:
        return 0
    score = 50.0 + other.health_ratio * 20
    if dist <= 2:
        score += 30
    elif dist <= 5:
        score += 20
    elif dist <= 10:
        score += 10
    if other.weapon.is_ranged:
        score += 20
    return int(max(0, min(100, round(score))))


class ContextBuilder:
    """Builds DecisionContexts and keeps the bounded history logs.

    The builder never touches the snapshot. Its only state is its own event
    and conversation ring buffers, oldest entries dropped first.
    """

    def __init__(
        self,
        config: "OrchestratorConfig",
        factions: FactionService | None = None,
        locations: LocationResolver | None = None,
    ):
        self._config = config
        self._factions = factions or FactionService()
        self._locations = locations or LocationResolver(config.empty_cell_search_radius)
        self._events: deque[str] = deque(maxlen=config.event_history_size)
        self._conversation: deque[ConversationLine] = deque(
            maxlen=config.conversation_history_size
        )

    # --- History ---

    def record_event(self, text: str) -> None:
        self._events.append(text)

    def record_conversation(
        self, speaker: str, content: str, listener: str | None = None
    ) -> None:
        self._conversation.append(
            ConversationLine(speaker=speaker, content=content, listener=listener)
        )

    @property
    def events(self) -> list[str]:
        return list(self._events)

    @property
    def conversation(self) -> list[ConversationLine]:
        return list(self._conversation)

    # --- Building ---

    def build(
        self,
        character: Character,
        snapshot: WorldSnapshot,
        blockage: BlockageInfo | None = None,
    ) -> DecisionContext:
        cfg = self._config
        visible: list[VisibleCharacter] = []
        in_range: list[CharacterName] = []
        allies: list[CharacterName] = []
        hostiles: list[CharacterName] = []

        for other in snapshot.living():
            if other.name == character.name:
                continue

            dist = distance(character.position, other.position)
            relation = self._factions.relation(character, other, snapshot.factions)
            if relation == Relation.ALLIED:
                allies.append(other.name)
            elif relation == Relation.HOSTILE:
                hostiles.append(other.name)

            wall_sight = has_line_of_sight(
                character.position, other.position, snapshot.map, ignore_characters=True
            )
            can_converse = dist <= cfg.conversation_radius and wall_sight
            if can_converse:
                in_range.append(other.name)

            if dist > cfg.view_radius or not wall_sight:
                continue
            clear_sight = has_line_of_sight(
                character.position, other.position, snapshot.map, snapshot.characters
            )

            visible.append(
                VisibleCharacter(
                    name=other.name,
                    faction=other.faction,
                    controller=other.controller,
                    relation=relation,
                    position=other.position,
                    distance=round(dist, 2),
                    health=other.health,
                    max_health=other.max_health,
                    is_adjacent=dist <= cfg.adjacency_threshold,
                    has_line_of_sight=clear_sight,
                    is_in_cover=is_in_cover(other.position, snapshot.map),
                    can_converse=can_converse,
                    can_reach_this_turn=dist <= character.cells_affordable,
                    threat_level=threat_level(character, other, dist, relation),
                )
            )

        visible.sort(key=lambda v: v.distance)
        conversation = list(self._conversation)[-cfg.conversation_lines_in_context:]

        context = DecisionContext(
            character=CharacterSummary(
                name=character.name,
                faction=character.faction,
                position=character.position,
                room=self._locations.current_room_name(character.position, snapshot),
                health=character.health,
                max_health=character.max_health,
                points_left=character.points_left,
                move_cost=character.move_cost,
                weapon=character.weapon.name,
                has_ranged_weapon=character.weapon.is_ranged,
                direction=character.direction.value,
            ),
            turn=snapshot.turn,
            visible=tuple(visible),
            in_conversation_range=tuple(in_range),
            allies=tuple(allies),
            hostiles=tuple(hostiles),
            rooms=tuple(snapshot.map.room_names()),
            recent_events=tuple(self._events),
            conversation=tuple(conversation),
            mission=snapshot.story.mission,
            story_flags=dict(snapshot.story.flags),
            narrative=snapshot.story.narrative,
            blockage=blockage,
        )
        logger.debug(
            f"[{character.name}] Context built | visible={len(visible)} | "
            f"in_range={len(in_range)} | blockage={blockage is not None}"
        )
        return context
