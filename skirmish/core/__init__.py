"""Core domain types for Skirmish."""

from .types import (
    AI_CONTROLLER,
    HUMAN_CONTROLLER,
    AttackKind,
    CharacterName,
    ControllerId,
    Facing,
    Faction,
    ItemKind,
    Orientation,
    Position,
    Race,
    Relation,
    RoomName,
    Speed,
    WeaponCategory,
)
from .character import Character, Weapon
from .world import Cell, FactionRelations, MapGrid, StoryState, WorldSnapshot
from .commands import (
    AttackCommand,
    AttackOrder,
    CharacterSpawnCommand,
    CharacterSpec,
    Command,
    ItemSpawnCommand,
    ItemSpec,
    MapTransitionCommand,
    MovementCommand,
    MovementOrder,
    SpeechCommand,
)
from .errors import (
    CommandParseError,
    LocationResolutionError,
    OracleTransportError,
    SkirmishError,
    ValidationError,
)
from .intents import (
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

__all__ = [
    # Types
    "AI_CONTROLLER",
    "HUMAN_CONTROLLER",
    "AttackKind",
    "CharacterName",
    "ControllerId",
    "Facing",
    "Faction",
    "ItemKind",
    "Orientation",
    "Position",
    "Race",
    "Relation",
    "RoomName",
    "Speed",
    "WeaponCategory",
    # World
    "Character",
    "Weapon",
    "Cell",
    "FactionRelations",
    "MapGrid",
    "StoryState",
    "WorldSnapshot",
    # Commands
    "AttackCommand",
    "AttackOrder",
    "CharacterSpawnCommand",
    "CharacterSpec",
    "Command",
    "ItemSpawnCommand",
    "ItemSpec",
    "MapTransitionCommand",
    "MovementCommand",
    "MovementOrder",
    "SpeechCommand",
    # Errors
    "CommandParseError",
    "LocationResolutionError",
    "OracleTransportError",
    "SkirmishError",
    "ValidationError",
    # Intents
    "AddCharacter",
    "AddItem",
    "AdvanceTurn",
    "ApplyDamage",
    "ChangeDirection",
    "Intent",
    "LoadMap",
    "MoveAlongPath",
    "OpenDialogue",
]
