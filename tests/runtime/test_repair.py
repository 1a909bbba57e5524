"""Tests for skirmish.runtime.repair module."""

import pytest

from skirmish.adapters.oracle import OracleClient
from skirmish.core import MovementCommand, OracleTransportError, WorldSnapshot
from skirmish.runtime.repair import RepairController, RepairState
from skirmish.services.context_builder import ContextBuilder, DecisionContext
from skirmish.services.validator import CommandValidator
from tests.fixtures import ScriptedTransport


def _move(location: str, name: str = "Guard") -> dict:
    return {"type": "movement", "characters": [{"name": name, "location": location}]}


@pytest.fixture
def context(context_builder: ContextBuilder, snapshot: WorldSnapshot) -> DecisionContext:
    return context_builder.build(snapshot.get_character("Guard"), snapshot)


@pytest.fixture
def repair(oracle: OracleClient, validator: CommandValidator) -> RepairController:
    return RepairController(oracle, validator, max_attempts=3)


class TestCheck:
    """check() is pure validation."""

    def test_valid(self, repair: RepairController, snapshot: WorldSnapshot):
        command, errors = repair.check(_move("Bridge"), snapshot, snapshot.get_character("Guard"))
        assert isinstance(command, MovementCommand)
        assert errors == []

    def test_idempotent(self, repair: RepairController, snapshot: WorldSnapshot):
        candidate = _move("12,7")
        first = repair.check(candidate, snapshot)
        second = repair.check(candidate, snapshot)
        assert first == second
        assert first[0] is None

    def test_semantic_errors(self, repair: RepairController, snapshot: WorldSnapshot):
        command, errors = repair.check(_move("Bridge", name="Hero"), snapshot, snapshot.get_character("Guard"))
        assert command is None
        assert errors[0].reason == "Character is not under your control"


class TestResolve:
    """The ATTEMPT / REPAIR / EXHAUSTED loop."""

    async def test_valid_first_time(self, repair: RepairController, transport: ScriptedTransport, context, snapshot):
        result = await repair.resolve(_move("Bridge"), context, snapshot)

        assert result.success
        assert result.attempts == 1
        assert result.errors == ()
        assert transport.requests == []

    async def test_repaired_on_second_attempt(
        self, repair: RepairController, transport: ScriptedTransport, context, snapshot
    ):
        transport.queue(_move("Bridge"))

        result = await repair.resolve(_move("12,7"), context, snapshot)

        assert result.success
        assert result.attempts == 2
        assert result.command.characters[0].location == "Bridge"
        assert len(result.errors) == 1

        correction = transport.requests[0][-1]["content"]
        assert '"location": "12,7"' in correction
        assert "Field: characters[0].location" in correction
        assert "Valid options: Bridge, Brig, Guard, Sniper, Hero" in correction
        assert "correction attempt 1 of 3" in correction

    async def test_budget_exhausted(self, repair: RepairController, transport: ScriptedTransport, context, snapshot):
        transport.queue(_move("north"), _move("0,0"), _move("Bridge"))

        result = await repair.resolve(_move("12,7"), context, snapshot)

        assert not result.success
        assert result.command is None
        assert result.attempts == 3
        assert len(transport.requests) == 2
        assert [attempt[0].value for attempt in result.errors] == ["12,7", "north", "0,0"]
        assert len(result.all_errors) == 3
        assert repair.state == RepairState.EXHAUSTED

    async def test_single_attempt_budget(self, oracle, validator, transport: ScriptedTransport, context, snapshot):
        controller = RepairController(oracle, validator, max_attempts=1)

        result = await controller.resolve(_move("12,7"), context, snapshot)

        assert not result.success
        assert result.attempts == 1
        assert transport.requests == []

    async def test_missing_correction(self, repair: RepairController, transport: ScriptedTransport, context, snapshot):
        transport.queue(*[OracleTransportError("down")] * 3, _move("Bridge"))

        result = await repair.resolve(_move("12,7"), context, snapshot)

        assert result.success
        assert result.attempts == 3
        assert result.errors[1][0].field == "command"
        assert result.errors[1][0].value is None

    async def test_candidate_is_not_modified(self, repair: RepairController, transport: ScriptedTransport, context, snapshot):
        candidate = _move("12,7")
        transport.queue(_move("Bridge"))
        await repair.resolve(candidate, context, snapshot)
        assert candidate == _move("12,7")
