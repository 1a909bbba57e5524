"""Tests for skirmish.adapters.tracer module."""

from pathlib import Path

import pytest

from skirmish.adapters.tracer import DecisionTracer, TraceEvent
from skirmish.core import MovementCommand, MovementOrder, ValidationError
from skirmish.runtime.repair import RepairResult
from skirmish.runtime.sequencer import TurnReport
from skirmish.services.executor import ExecutionOutcome


@pytest.fixture
def tracer(tmp_path: Path) -> DecisionTracer:
    return DecisionTracer(tmp_path / "traces" / "decisions.jsonl")


class TestDecisionTracer:
    """Tests for the JSONL decision trace."""

    async def test_empty_trace(self, tracer: DecisionTracer):
        assert await tracer.read_all() == []

    async def test_append_and_read(self, tracer: DecisionTracer):
        await tracer.turn_start("ai", ["Guard", "Sniper"])
        await tracer.decision("ai", "Guard", {"type": "speech"})

        events = await tracer.read_all()
        assert [e.type for e in events] == ["turn_start", "decision"]
        assert events[0].data == {"roster": ["Guard", "Sniper"]}
        assert events[1].character == "Guard"
        assert tracer.path.exists()

    async def test_repair_keeps_every_error(self, tracer: DecisionTracer):
        error = ValidationError(field="characters[0].location", value="12,7", reason="Coordinates", suggestions=("Bridge",))
        result = RepairResult(success=False, command=None, attempts=2, errors=((error,), (error,)))

        await tracer.repair("ai", "Guard", result)

        event = (await tracer.read_all())[0]
        assert event.data["success"] is False
        assert len(event.data["errors"]) == 2
        assert event.data["errors"][0][0]["value"] == "12,7"

    async def test_execution_and_turn_end(self, tracer: DecisionTracer):
        command = MovementCommand(characters=[MovementOrder(name="Guard", location="Bridge")])
        await tracer.execution("ai", "Guard", command, ExecutionOutcome.ended("Guard is already at Bridge"))
        await tracer.turn_end("ai", TurnReport(controller="ai", next_controller="human"))

        execution, turn_end = await tracer.read_all()
        assert execution.data["command"]["type"] == "movement"
        assert execution.data["status"] == "ended"
        assert turn_end.data["next_controller"] == "human"

    async def test_tail(self, tracer: DecisionTracer):
        for i in range(5):
            await tracer.decision("ai", f"C{i}", None)
        tail = await tracer.tail(2)
        assert [e.character for e in tail] == ["C3", "C4"]

    async def test_callbacks(self, tracer: DecisionTracer):
        received: list[TraceEvent] = []
        tracer.register_callback(received.append)
        await tracer.turn_start("ai", [])
        tracer.unregister_callback(received.append)
        await tracer.turn_start("ai", [])
        assert len(received) == 1

    async def test_failing_callback_does_not_break_trace(self, tracer: DecisionTracer):
        def broken(event: TraceEvent) -> None:
            raise RuntimeError("boom")

        tracer.register_callback(broken)
        await tracer.turn_start("ai", [])
        assert len(await tracer.read_all()) == 1

    async def test_clear(self, tracer: DecisionTracer):
        await tracer.turn_start("ai", [])
        tracer.clear()
        assert not tracer.path.exists()
