"""Geometry services for Skirmish.

Distance, grid raycasts for line of sight and blockage classification,
path computation and free-cell searches. Everything here is a pure function
of the snapshot, so the context builder, the validator and the executor all
agree on what a character can see and reach.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Literal, Protocol, Sequence

from ..core.character import Character
from ..core.types import Facing, Position
from ..core.world import MapGrid

ADJACENCY_THRESHOLD = 1.5
MAX_PATH_SEARCH = 20_000


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two positions."""
    return a.distance_to(b)


def is_adjacent(a: Position, b: Position, threshold: float = ADJACENCY_THRESHOLD) -> bool:
    """Cardinal and diagonal neighbors on a unit grid count as adjacent."""
    return distance(a, b) <= threshold


# -----------------------------------------------------------------------------
# Raycasting
# -----------------------------------------------------------------------------


def bresenham_line(start: Position, end: Position) -> list[Position]:
    """Cells on the straight line from start to end, both included."""
    x0, y0 = (int(v) for v in start.cell)
    x1, y1 = (int(v) for v in end.cell)
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    cells = [Position(x0, y0)]
    while (x0, y0) != (x1, y1):
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy
        cells.append(Position(x0, y0))
    return cells


@dataclass(frozen=True)
class Blockage:
    """What, if anything, stands on the straight line between two cells."""

    kind: Literal["none", "wall", "character"]
    position: Position | None = None
    character: Character | None = None

    @property
    def is_clear(self) -> bool:
        return self.kind == "none"


def detect_blocking_entity(
    start: Position,
    end: Position,
    grid: MapGrid,
    characters: Iterable[Character] = (),
) -> Blockage:
    """Classify the first obstruction between start and end.

    The start cell (the observer) and the end cell (the target) never block.
    Walls are checked before characters on each cell.
    """
    line = bresenham_line(start, end)
    occupants = {c.position.cell: c for c in characters if c.is_alive}
    for cell in line[1:-1]:
        if grid.is_blocked(cell):
            return Blockage(kind="wall", position=cell)
        occupant = occupants.get(cell)
        if occupant is not None:
            return Blockage(kind="character", position=cell, character=occupant)
    return Blockage(kind="none")


def is_in_cover(pos: Position, grid: MapGrid) -> bool:
    """Whether a wall or other blocker stands on one of the eight cells around `pos`."""
    x, y = (int(v) for v in pos.cell)
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            cell = Position(x + dx, y + dy)
            if grid.in_bounds(cell) and grid.is_blocked(cell):
                return True
    return False


def has_line_of_sight(
    start: Position,
    end: Position,
    grid: MapGrid,
    characters: Iterable[Character] = (),
    ignore_characters: bool = False,
) -> bool:
    """Whether nothing obstructs the straight line between two cells.

    With `ignore_characters`, only static obstacles block; this is the rule
    for conversation, where a crowd never prevents dialogue.
    """
    blockers = () if ignore_characters else characters
    return detect_blocking_entity(start, end, grid, blockers).is_clear


# -----------------------------------------------------------------------------
# Facing
# -----------------------------------------------------------------------------

# Sectors clockwise from "right", matching screen coordinates (y down)
_SECTORS = (
    Facing.RIGHT,
    Facing.BOTTOM_RIGHT,
    Facing.BOTTOM,
    Facing.BOTTOM_LEFT,
    Facing.LEFT,
    Facing.TOP_LEFT,
    Facing.TOP,
    Facing.TOP_RIGHT,
)


def angle_to_direction(angle: float) -> Facing:
    """Map an angle in radians (atan2 of dy, dx) onto eight facings."""
    sector = int(round(angle / (math.pi / 4))) % 8
    return _SECTORS[sector]


def direction_towards(start: Position, end: Position) -> Facing:
    return angle_to_direction(math.atan2(end.y - start.y, end.x - start.x))


# -----------------------------------------------------------------------------
# Paths
# -----------------------------------------------------------------------------


class PathService(Protocol):
    """Path computation contract.

    The returned path excludes the start and includes the goal. An empty
    list means there is no path or the character is already there.
    """

    def compute_path(
        self,
        start: Position,
        goal: Position,
        grid: MapGrid,
        characters: Sequence[Character],
        exclude: str | None = None,
    ) -> list[Position]: ...


class GridPathService:
    """Breadth-first search over the four cardinal neighbors.

    Blocked cells and cells occupied by living characters (other than
    `exclude`) are impassable.
    """

    def compute_path(
        self,
        start: Position,
        goal: Position,
        grid: MapGrid,
        characters: Sequence[Character],
        exclude: str | None = None,
    ) -> list[Position]:
        origin = start.cell
        target = goal.cell
        if origin == target or grid.is_blocked(target):
            return []

        occupied = {
            c.position.cell
            for c in characters
            if c.is_alive and c.name != exclude
        }
        if target in occupied:
            return []

        came_from: dict[Position, Position | None] = {origin: None}
        frontier = deque([origin])
        while frontier and len(came_from) < MAX_PATH_SEARCH:
            current = frontier.popleft()
            if current == target:
                break
            for nxt in current.neighbors():
                if nxt in came_from or grid.is_blocked(nxt) or nxt in occupied:
                    continue
                came_from[nxt] = current
                frontier.append(nxt)

        if target not in came_from:
            return []

        path: list[Position] = []
        step: Position | None = target
        while step is not None and step != origin:
            path.append(step)
            step = came_from[step]
        path.reverse()
        return path


# -----------------------------------------------------------------------------
# Free-cell searches
# -----------------------------------------------------------------------------


def _is_free(
    pos: Position, grid: MapGrid, characters: Sequence[Character], exclude: str | None
) -> bool:
    if grid.is_blocked(pos):
        return False
    for c in characters:
        if c.is_alive and c.name != exclude and c.position.cell == pos:
            return False
    return True


def find_nearest_empty_cell(
    center: Position,
    grid: MapGrid,
    characters: Sequence[Character],
    from_position: Position | None = None,
    max_radius: int = 10,
    exclude: str | None = None,
) -> Position | None:
    """Nearest free cell on expanding Manhattan rings around `center`.

    Rings run from radius 1 to `max_radius`; within the first ring that has
    candidates, the one closest to `from_position` (or to the center) wins.
    """
    cx, cy = (int(v) for v in center.cell)
    reference = from_position or center
    for radius in range(1, max_radius + 1):
        ring: list[Position] = []
        for dx in range(-radius, radius + 1):
            remaining = radius - abs(dx)
            for dy in {remaining, -remaining}:
                pos = Position(cx + dx, cy + dy)
                if grid.in_bounds(pos) and _is_free(pos, grid, characters, exclude):
                    ring.append(pos)
        if ring:
            ring.sort(key=lambda p: (distance(reference, p), p.y, p.x))
            return ring[0]
    return None


def find_positions_with_line_of_sight(
    target: Position,
    speaker: Position,
    grid: MapGrid,
    characters: Sequence[Character],
    radius: float,
    exclude: str | None = None,
) -> list[Position]:
    """Free cells within `radius` of target that see it past walls.

    Sorted by distance from the speaker, so the first entry is the cheapest
    place to stand in order to talk to the target.
    """
    tx, ty = (int(v) for v in target.cell)
    span = math.ceil(radius)
    found: list[Position] = []
    for y in range(ty - span, ty + span + 1):
        for x in range(tx - span, tx + span + 1):
            pos = Position(x, y)
            if pos == target.cell or not grid.in_bounds(pos):
                continue
            if distance(pos, target) > radius:
                continue
            if not _is_free(pos, grid, characters, exclude):
                continue
            if has_line_of_sight(pos, target, grid, ignore_characters=True):
                found.append(pos)
    found.sort(key=lambda p: (distance(speaker, p), p.y, p.x))
    return found
