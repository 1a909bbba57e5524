"""World snapshot for Skirmish.

The snapshot is the read-only view of the shared game state that the
orchestration engine reasons over: the map grid, the characters on it,
and turn/faction metadata.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .character import Character
from .types import CharacterName, ControllerId, Position

# Location tags that describe a cell's material, never a room
GENERIC_LOCATION_TAGS = frozenset({"floor", "wall", "terrain"})


class Cell(BaseModel):
    """A single map cell.

    `locations` is ordered: the first tag is the most specific room or
    building name the cell belongs to.
    """

    model_config = ConfigDict(frozen=True)

    position: Position
    locations: tuple[str, ...] = ()
    blocker: bool = False
    items: tuple[str, ...] = ()

    @property
    def room(self) -> str | None:
        """The room this cell is tagged with, if any."""
        for tag in self.locations:
            if tag.lower() not in GENERIC_LOCATION_TAGS:
                return tag
        return None


class MapGrid(BaseModel):
    """Sparse map grid.

    Cells not present in `cells` are open floor with no location tags.
    Positions outside the bounds are treated as blocked.
    """

    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    cells: dict[Position, Cell] = Field(default_factory=dict)

    def in_bounds(self, pos: Position) -> bool:
        x, y = pos.cell
        return 0 <= x < self.width and 0 <= y < self.height

    def get_cell(self, pos: Position) -> Cell:
        cell_pos = pos.cell
        return self.cells.get(cell_pos) or Cell(position=cell_pos)

    def is_blocked(self, pos: Position) -> bool:
        if not self.in_bounds(pos):
            return True
        cell = self.cells.get(pos.cell)
        return cell is not None and cell.blocker

    def room_names(self) -> list[str]:
        """Sorted, de-duplicated room names tagged anywhere on the map."""
        rooms = {cell.room for cell in self.cells.values() if cell.room}
        return sorted(rooms)

    @property
    def center(self) -> Position:
        return Position(self.width // 2, self.height // 2)

    def with_cell(self, cell: Cell) -> MapGrid:
        cells = dict(self.cells)
        cells[cell.position.cell] = cell
        return self.model_copy(update={"cells": cells})


class FactionRelations(BaseModel):
    """Explicit faction relations.

    When a faction appears in neither list of another, relations fall back
    to faction equality (same faction is allied, different is hostile).
    """

    model_config = ConfigDict(frozen=True)

    allied: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    hostile: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    configured: bool = False


class StoryState(BaseModel):
    """Free-text story context supplied by the narrative simulation."""

    model_config = ConfigDict(frozen=True)

    mission: str | None = None
    flags: dict[str, bool] = Field(default_factory=dict)
    narrative: str | None = None


class WorldSnapshot(BaseModel):
    """Read-only view of the game state for one orchestration step."""

    model_config = ConfigDict(frozen=True)

    map: MapGrid
    characters: tuple[Character, ...] = ()
    turn: ControllerId
    players: tuple[ControllerId, ...] = ()
    story: StoryState = StoryState()
    factions: FactionRelations = FactionRelations()

    # --- Character queries ---

    def get_character(self, name: str) -> Character | None:
        """Look up a character by name, ignoring case."""
        wanted = name.strip().lower()
        for character in self.characters:
            if character.name.lower() == wanted:
                return character
        return None

    def living(self) -> list[Character]:
        return [c for c in self.characters if c.is_alive]

    def characters_of(self, controller: ControllerId) -> list[Character]:
        return [c for c in self.characters if c.controller == controller]

    def character_names(self) -> list[str]:
        return [c.name for c in self.characters]

    def occupant_at(
        self, pos: Position, exclude: CharacterName | None = None
    ) -> Character | None:
        """The living character standing on a cell, if any."""
        cell = pos.cell
        for character in self.characters:
            if exclude is not None and character.name == exclude:
                continue
            if character.is_alive and character.position.cell == cell:
                return character
        return None

    def is_occupied(self, pos: Position, exclude: CharacterName | None = None) -> bool:
        return self.occupant_at(pos, exclude) is not None

    # --- Copy helpers ---

    def with_character(self, character: Character) -> WorldSnapshot:
        """Replace (or add) a character by name."""
        others = tuple(c for c in self.characters if c.name != character.name)
        if len(others) == len(self.characters):
            return self.model_copy(update={"characters": self.characters + (character,)})
        updated = tuple(
            character if c.name == character.name else c for c in self.characters
        )
        return self.model_copy(update={"characters": updated})

    def with_turn(self, turn: ControllerId) -> WorldSnapshot:
        return self.model_copy(update={"turn": turn})

    def with_map(self, grid: MapGrid) -> WorldSnapshot:
        return self.model_copy(update={"map": grid})
