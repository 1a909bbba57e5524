"""Location resolution for Skirmish.

Turns the textual locations used by the command protocol (room names,
character names, "center") into map positions.
"""

from __future__ import annotations

import logging
import math

from ..core.commands import is_coordinate, is_direction
from ..core.errors import LocationResolutionError
from ..core.types import Position
from ..core.world import WorldSnapshot
from .geometry import find_nearest_empty_cell

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown Location"
COORDINATE_LIMIT = 1000


class LocationResolver:
    """Resolve textual locations against a world snapshot."""

    def __init__(self, search_radius: int = 10):
        self._search_radius = search_radius

    def resolve(
        self,
        location: str,
        snapshot: WorldSnapshot,
        *,
        mover: str | None = None,
        allow_coordinates: bool = False,
    ) -> Position:
        """Resolve a location to the position a character should head for.

        Rooms resolve to their centroid. Characters resolve to the nearest
        free cell around them (seen from `mover`, when given). Literal
        "x,y" coordinates are accepted only when `allow_coordinates` is set,
        which is reserved for internally generated follow-up movements.

        Raises:
            LocationResolutionError: For directions, forbidden or
                out-of-bounds coordinates, and unknown names.
        """
        text = location.strip()
        lowered = text.lower()

        if is_direction(text):
            raise self._error(
                text, f"Directions are not allowed: '{text}'", snapshot
            )

        if lowered == "center":
            return snapshot.map.center

        if is_coordinate(text):
            if not allow_coordinates:
                raise self._error(
                    text, f"Coordinates are not allowed: '{text}'", snapshot
                )
            x_text, y_text = text.split(",")
            pos = Position(float(x_text), float(y_text))
            if abs(pos.x) > COORDINATE_LIMIT or abs(pos.y) > COORDINATE_LIMIT:
                raise self._error(
                    text, f"Coordinates outside sanity bounds: '{text}'", snapshot
                )
            if not snapshot.map.in_bounds(pos):
                raise self._error(
                    text, f"Coordinates out of bounds: '{text}'", snapshot
                )
            return pos.cell

        target = snapshot.get_character(text)
        if target is not None:
            if mover is not None and target.name.lower() == mover.lower():
                return target.position
            mover_char = snapshot.get_character(mover) if mover else None
            start = mover_char.position if mover_char else None
            free = find_nearest_empty_cell(
                target.position,
                snapshot.map,
                snapshot.characters,
                from_position=start,
                max_radius=self._search_radius,
                exclude=mover,
            )
            if free is None:
                logger.debug(f"No free cell around {target.name}, using their position")
                return target.position
            return free

        room_center = self.find_room_center(text, snapshot)
        if room_center is not None:
            return room_center

        raise self._error(text, f"Location '{text}' does not exist", snapshot)

    def find_room_center(self, room: str, snapshot: WorldSnapshot) -> Position | None:
        """Floor of the average position of the cells tagged with `room`.

        Accepts "building/room" to pick a room inside a named building.
        Matching is case-insensitive on the cell's first location tag.
        """
        building, _, name = room.rpartition("/")
        name = name.strip().lower()
        building = building.strip().lower()
        if not name:
            return None

        xs: list[float] = []
        ys: list[float] = []
        for cell in snapshot.map.cells.values():
            if not cell.locations:
                continue
            first = cell.locations[0].lower()
            if building:
                tags = [t.lower() for t in cell.locations]
                if name not in first or building not in tags:
                    continue
            elif name not in first:
                continue
            xs.append(cell.position.x)
            ys.append(cell.position.y)

        if not xs:
            return None
        return Position(math.floor(sum(xs) / len(xs)), math.floor(sum(ys) / len(ys)))

    def current_room_name(self, position: Position, snapshot: WorldSnapshot) -> str:
        return snapshot.map.get_cell(position).room or UNKNOWN_LOCATION

    def is_known(self, location: str, snapshot: WorldSnapshot) -> bool:
        """Whether a protocol location names something on this map."""
        text = location.strip()
        if text.lower() == "center":
            return True
        if snapshot.get_character(text) is not None:
            return True
        return self.find_room_center(text, snapshot) is not None

    def available_locations(self, snapshot: WorldSnapshot) -> list[str]:
        return [*snapshot.map.room_names(), *snapshot.character_names()]

    def _error(
        self, location: str, message: str, snapshot: WorldSnapshot
    ) -> LocationResolutionError:
        return LocationResolutionError(
            location,
            message,
            rooms=snapshot.map.room_names(),
            characters=snapshot.character_names(),
        )
