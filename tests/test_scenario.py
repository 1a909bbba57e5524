"""Tests for skirmish.scenario module."""

from pathlib import Path

import pytest
import yaml

from skirmish.core import Position, Relation, WeaponCategory
from skirmish.scenario import load_scenario, scenario_from_dict
from skirmish.services.factions import FactionService
from skirmish.services.locations import LocationResolver

BRIDGE = Path(__file__).parents[1] / "scenarios" / "bridge.yaml"


class TestBundledScenario:
    """The bridge scenario shipped with the CLI."""

    def test_characters(self):
        snapshot = load_scenario(BRIDGE)
        assert snapshot.character_names() == ["Captain", "Guard", "Sentry"]
        captain = snapshot.get_character("Captain")
        assert captain.is_human_controlled
        assert captain.is_main
        assert captain.weapon.category == WeaponCategory.RANGED
        assert snapshot.get_character("Guard").position == Position(3, 10)

    def test_rooms_and_walls(self):
        snapshot = load_scenario(BRIDGE)
        assert snapshot.map.room_names() == ["Bridge", "Brig", "Corridor", "Engine Room"]
        assert snapshot.map.is_blocked(Position(10, 8))
        assert not snapshot.map.is_blocked(Position(15, 4))

    def test_building_rooms_resolve(self):
        snapshot = load_scenario(BRIDGE)
        resolver = LocationResolver()
        assert resolver.resolve("Lower Deck/Engine Room", snapshot) == resolver.resolve("Engine Room", snapshot)
        assert resolver.resolve("Bridge", snapshot) == Position(18, 4)

    def test_turn_and_story(self):
        snapshot = load_scenario(BRIDGE)
        assert snapshot.turn == "ai"
        assert snapshot.players == ("ai", "human")
        assert snapshot.story.flags == {"alarm_raised": False}
        assert not snapshot.factions.configured


class TestScenarioFromDict:
    """Tests for scenario_from_dict."""

    def test_minimal(self):
        snapshot = scenario_from_dict(
            {
                "map": {"width": 5, "height": 5},
                "characters": [{"name": "Solo", "faction": "enemy", "position": [1, 1]}],
            }
        )
        assert snapshot.get_character("Solo").controller == "ai"
        assert snapshot.turn == "ai"

    def test_wall_list_and_rect(self):
        snapshot = scenario_from_dict(
            {"map": {"width": 5, "height": 5, "walls": [[0, 0], {"rect": [2, 0, 2, 2]}]}}
        )
        assert snapshot.map.is_blocked(Position(0, 0))
        assert snapshot.map.is_blocked(Position(2, 1))
        assert not snapshot.map.is_blocked(Position(1, 1))

    def test_faction_table(self):
        snapshot = scenario_from_dict(
            {
                "map": {"width": 5, "height": 5},
                "factions": {"hostile": {"enemy": ["player"]}},
                "characters": [
                    {"name": "A", "faction": "enemy", "position": [0, 0]},
                    {"name": "B", "faction": "player", "controller": "human", "position": [1, 0]},
                    {"name": "C", "faction": "neutral", "controller": "human", "position": [2, 0]},
                ],
            }
        )
        factions = FactionService()
        a, b, c = snapshot.characters
        assert snapshot.factions.configured
        assert factions.relation(a, b, snapshot.factions) == Relation.HOSTILE
        assert factions.relation(a, c, snapshot.factions) == Relation.NEUTRAL

    def test_missing_map(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text(yaml.safe_dump({"characters": []}))
        with pytest.raises(ValueError, match="no map"):
            load_scenario(path)
