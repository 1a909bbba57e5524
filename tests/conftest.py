"""Shared pytest fixtures for Skirmish tests."""

import pytest

from skirmish.adapters.gateway import InMemoryGameState
from skirmish.adapters.oracle import OracleClient
from skirmish.config import OrchestratorConfig
from skirmish.core import (
    Character,
    ControllerId,
    MapGrid,
    StoryState,
    Weapon,
    WeaponCategory,
    WorldSnapshot,
)
from skirmish.services.context_builder import ContextBuilder
from skirmish.services.executor import CommandExecutor
from skirmish.services.locations import LocationResolver
from skirmish.services.validator import CommandValidator
from tests.fixtures import ScriptedTransport, make_character, make_map


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (skipped by default, run with --run-slow)")


def pytest_addoption(parser):
    """Add --run-slow option to pytest."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (skipped by default)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is passed."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="Slow test (use --run-slow to run)")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# =============================================================================
# World Fixtures
# =============================================================================


@pytest.fixture
def config() -> OrchestratorConfig:
    """Default thresholds, no delays."""
    return OrchestratorConfig(transport_backoff=0.0, settle_delay=0.0)


@pytest.fixture
def deck_map() -> MapGrid:
    """20x20 map with a Bridge (centroid 10,10), a Brig and a short wall at x=5."""
    return make_map(
        rooms={
            "Bridge": (8, 8, 12, 12),
            "Brig": (0, 15, 3, 18),
        },
        walls=[(5, y) for y in range(0, 4)],
    )


@pytest.fixture
def guard() -> Character:
    return make_character("Guard", 2, 2, weapon=Weapon(name="baton", damage=12, cost=25))


@pytest.fixture
def sniper() -> Character:
    return make_character(
        "Sniper",
        2,
        6,
        weapon=Weapon(name="rifle", category=WeaponCategory.RANGED, damage=20, cost=40),
    )


@pytest.fixture
def hero() -> Character:
    return make_character("Hero", 10, 10, controller="human", is_main=True)


@pytest.fixture
def snapshot(deck_map: MapGrid, guard: Character, sniper: Character, hero: Character) -> WorldSnapshot:
    """AI turn: Guard and Sniper (enemy, ai) against Hero (player, human)."""
    return WorldSnapshot(
        map=deck_map,
        characters=(guard, sniper, hero),
        turn=ControllerId("ai"),
        players=(ControllerId("ai"), ControllerId("human")),
        story=StoryState(mission="Hold the bridge", flags={"alarm": False}),
    )


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def game_state(snapshot: WorldSnapshot) -> InMemoryGameState:
    return InMemoryGameState(snapshot)


@pytest.fixture
def locations() -> LocationResolver:
    return LocationResolver()


@pytest.fixture
def validator(locations: LocationResolver) -> CommandValidator:
    return CommandValidator(locations)


@pytest.fixture
def context_builder(config: OrchestratorConfig) -> ContextBuilder:
    return ContextBuilder(config)


@pytest.fixture
def executor(
    game_state: InMemoryGameState,
    config: OrchestratorConfig,
    context_builder: ContextBuilder,
) -> CommandExecutor:
    return CommandExecutor(game_state, config, context_builder)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def oracle(transport: ScriptedTransport) -> OracleClient:
    return OracleClient(transport, max_retries=3, backoff=0.0)
