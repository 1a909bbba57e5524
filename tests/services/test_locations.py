"""Tests for skirmish.services.locations module."""

import pytest

from skirmish.core import ControllerId, LocationResolutionError, Position, WorldSnapshot
from skirmish.services.locations import UNKNOWN_LOCATION, LocationResolver
from tests.fixtures import make_character, make_map


@pytest.fixture
def ship() -> WorldSnapshot:
    grid = make_map(
        rooms={
            "Bridge": (8, 8, 12, 12),
            "Engine Room": (14, 2, 17, 5),
            "Cargo": (0, 0, 3, 3),
        },
        buildings={"Engine Room": "Lower Deck"},
    )
    return WorldSnapshot(
        map=grid,
        characters=(
            make_character("Guard", 2, 16),
            make_character("Hero", 10, 10, controller="human"),
        ),
        turn=ControllerId("ai"),
    )


class TestResolveRooms:
    """Room names resolve to the floor of their centroid."""

    def test_room_centroid(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.resolve("Bridge", ship) == Position(10, 10)

    def test_centroid_is_floored(self, locations: LocationResolver, ship: WorldSnapshot):
        # Cargo spans 0..3: average 1.5
        assert locations.resolve("Cargo", ship) == Position(1, 1)

    def test_case_insensitive(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.resolve("bridge", ship) == Position(10, 10)

    def test_building_qualified_room(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.resolve("Lower Deck/Engine Room", ship) == Position(15, 3)

    def test_wrong_building(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.find_room_center("Upper Deck/Engine Room", ship) is None

    def test_center(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.resolve("center", ship) == Position(10, 10)


class TestResolveCharacters:
    """Character names resolve to a free cell next to the character."""

    def test_nearest_free_cell_seen_from_mover(self, locations: LocationResolver, ship: WorldSnapshot):
        found = locations.resolve("Hero", ship, mover="Guard")
        assert found == Position(9, 10)

    def test_never_the_occupied_cell(self, locations: LocationResolver, ship: WorldSnapshot):
        found = locations.resolve("Hero", ship)
        assert found != Position(10, 10)
        assert found.distance_to(Position(10, 10)) == 1

    def test_self_resolves_to_own_position(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.resolve("Guard", ship, mover="Guard") == Position(2, 16)


class TestResolveRejections:
    """Directions, coordinates and unknown names raise with suggestions."""

    @pytest.mark.parametrize("location", ["north", "left", "forward"])
    def test_directions(self, locations: LocationResolver, ship: WorldSnapshot, location):
        with pytest.raises(LocationResolutionError, match="Directions are not allowed"):
            locations.resolve(location, ship)

    def test_coordinates_forbidden_by_default(self, locations: LocationResolver, ship: WorldSnapshot):
        with pytest.raises(LocationResolutionError, match="Coordinates are not allowed"):
            locations.resolve("12,7", ship)

    def test_coordinates_for_internal_moves(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.resolve("12,7", ship, allow_coordinates=True) == Position(12, 7)

    def test_coordinates_out_of_map(self, locations: LocationResolver, ship: WorldSnapshot):
        with pytest.raises(LocationResolutionError, match="out of bounds"):
            locations.resolve("25,3", ship, allow_coordinates=True)

    def test_coordinates_outside_sanity_bounds(self, locations: LocationResolver, ship: WorldSnapshot):
        with pytest.raises(LocationResolutionError, match="sanity bounds"):
            locations.resolve("5000,3", ship, allow_coordinates=True)

    def test_unknown_location(self, locations: LocationResolver, ship: WorldSnapshot):
        with pytest.raises(LocationResolutionError) as info:
            locations.resolve("Armory", ship)
        assert "Location 'Armory' does not exist" in str(info.value)
        assert info.value.suggestions == ["Bridge", "Cargo", "Engine Room", "Guard", "Hero"]


class TestLocationQueries:
    def test_current_room(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.current_room_name(Position(9, 9), ship) == "Bridge"
        assert locations.current_room_name(Position(6, 6), ship) == UNKNOWN_LOCATION

    def test_is_known(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.is_known("Bridge", ship)
        assert locations.is_known("hero", ship)
        assert locations.is_known("center", ship)
        assert not locations.is_known("Armory", ship)

    def test_available_locations(self, locations: LocationResolver, ship: WorldSnapshot):
        assert locations.available_locations(ship) == ["Bridge", "Cargo", "Engine Room", "Guard", "Hero"]
