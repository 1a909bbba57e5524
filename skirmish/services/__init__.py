"""Orchestration services for Skirmish."""

from .geometry import (
    Blockage,
    GridPathService,
    PathService,
    angle_to_direction,
    bresenham_line,
    detect_blocking_entity,
    distance,
    find_nearest_empty_cell,
    find_positions_with_line_of_sight,
    has_line_of_sight,
)
from .factions import FactionService
from .locations import LocationResolver, UNKNOWN_LOCATION
from .context_builder import (
    BlockageInfo,
    CharacterSummary,
    ContextBuilder,
    DecisionContext,
    VisibleCharacter,
)
from .validator import CommandValidator, ParseOutcome
from .executor import CommandExecutor, ExecutionOutcome, PendingSpeech

__all__ = [
    # Geometry
    "Blockage",
    "GridPathService",
    "PathService",
    "angle_to_direction",
    "bresenham_line",
    "detect_blocking_entity",
    "distance",
    "find_nearest_empty_cell",
    "find_positions_with_line_of_sight",
    "has_line_of_sight",
    # Relations and locations
    "FactionService",
    "LocationResolver",
    "UNKNOWN_LOCATION",
    # Context
    "BlockageInfo",
    "CharacterSummary",
    "ContextBuilder",
    "DecisionContext",
    "VisibleCharacter",
    # Commands
    "CommandValidator",
    "ParseOutcome",
    "CommandExecutor",
    "ExecutionOutcome",
    "PendingSpeech",
]
