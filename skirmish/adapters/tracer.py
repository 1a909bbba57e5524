"""Decision tracer for Skirmish.

Append-only JSONL trace of every orchestration step, for debugging and for
replaying what an NPC was told and what it decided. Each line is one
TraceEvent:
- turn_start: a controller's turn begins, with its roster
- decision: the raw candidate returned by the oracle
- repair: the outcome of validation/repair, with every error
- execution: the accepted command and what executing it did
- turn_end: cycles, interrupt and hand-off

Registered callbacks receive each event as it is written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import aiofiles
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from ..core.commands import Command
    from ..runtime.repair import RepairResult
    from ..runtime.sequencer import TurnReport
    from ..services.executor import ExecutionOutcome

logger = logging.getLogger(__name__)


class TraceEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    controller: str
    character: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = Field(default_factory=dict)


class DecisionTracer:
    """JSONL decision trace.

    Usage:
        tracer = DecisionTracer(Path("data/traces/decisions.jsonl"))
        await tracer.turn_start("ai", ["Guard"])

        # For debugging
        events = await tracer.tail(50)
    """

    def __init__(self, path: Path):
        self.path = path
        self._callbacks: list[Callable[[TraceEvent], None]] = []

    def register_callback(self, callback: Callable[[TraceEvent], None]) -> None:
        self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[TraceEvent], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    # --- Event helpers ---

    async def turn_start(self, controller: str, roster: list[str]) -> None:
        await self.append(TraceEvent(type="turn_start", controller=controller, data={"roster": roster}))

    async def decision(self, controller: str, character: str, candidate: Any) -> None:
        await self.append(
            TraceEvent(
                type="decision",
                controller=controller,
                character=character,
                data={"candidate": candidate},
            )
        )

    async def repair(self, controller: str, character: str, result: "RepairResult") -> None:
        await self.append(
            TraceEvent(
                type="repair",
                controller=controller,
                character=character,
                data={
                    "success": result.success,
                    "attempts": result.attempts,
                    "command": result.command.model_dump(mode="json") if result.command else None,
                    "errors": [
                        [e.model_dump(mode="json") for e in attempt] for attempt in result.errors
                    ],
                },
            )
        )

    async def execution(
        self,
        controller: str,
        character: str,
        command: "Command",
        outcome: "ExecutionOutcome",
    ) -> None:
        await self.append(
            TraceEvent(
                type="execution",
                controller=controller,
                character=character,
                data={
                    "command": command.model_dump(mode="json"),
                    "status": outcome.status,
                    "message": outcome.message,
                    "intents": [i.model_dump(mode="json") for i in outcome.intents],
                },
            )
        )

    async def turn_end(self, controller: str, report: "TurnReport") -> None:
        await self.append(
            TraceEvent(
                type="turn_end",
                controller=controller,
                data={
                    "cycles": report.cycles,
                    "interrupted": report.interrupted,
                    "interrupt_reason": report.interrupt_reason,
                    "next_controller": report.next_controller,
                },
            )
        )

    # --- Storage ---

    async def append(self, event: TraceEvent) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = event.model_dump_json() + "\n"
        async with aiofiles.open(self.path, "a") as f:
            await f.write(line)

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Trace callback error: {e}")

    async def read_all(self) -> list[TraceEvent]:
        if not self.path.exists():
            return []
        events = []
        async with aiofiles.open(self.path, "r") as f:
            async for line in f:
                line = line.strip()
                if line:
                    events.append(TraceEvent.model_validate_json(line))
        return events

    async def tail(self, n: int = 100) -> list[TraceEvent]:
        events = await self.read_all()
        return events[-n:]

    def clear(self) -> None:
        """Delete the trace file. Use only in tests."""
        if self.path.exists():
            self.path.unlink()
