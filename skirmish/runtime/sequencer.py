"""Turn sequencer for Skirmish.

Drives a controller's characters through repeated decide / validate /
execute cycles within one game turn:

    IDLE -> ACTIVE(controller)
         -> per character: DECIDE -> VALIDATE/REPAIR -> EXECUTE
            -> continue | interrupted | out of points
         -> TURN-END

Characters act strictly one after another. A dialogue interrupt stops the
whole controller at once and hands the turn on; further turns are refused
until the surrounding game clears the interrupt.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..core.intents import AdvanceTurn
from ..core.types import CharacterName, ControllerId
from ..logging_config import log_command, log_decision, log_turn
from ..services.factions import FactionService
from .cursor import TurnCursor

if TYPE_CHECKING:
    from ..adapters.gateway import GameStateGateway
    from ..adapters.oracle import OracleClient
    from ..adapters.tracer import DecisionTracer
    from ..config import OrchestratorConfig
    from ..services.context_builder import BlockageInfo, ContextBuilder
    from ..services.executor import CommandExecutor, ExecutionOutcome
    from .repair import RepairController

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Reports
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionRecord:
    """One decision cycle of one character."""

    character: CharacterName
    command: str | None
    status: str
    message: str


@dataclass
class TurnReport:
    """What happened during one controller's turn."""

    controller: ControllerId
    actions: list[ActionRecord] = field(default_factory=list)
    cycles: dict[CharacterName, int] = field(default_factory=dict)
    interrupted: bool = False
    interrupt_reason: str | None = None
    next_controller: ControllerId | None = None

    def actions_of(self, name: str) -> list[ActionRecord]:
        return [a for a in self.actions if a.character == name]

    @property
    def acted(self) -> list[CharacterName]:
        seen: list[CharacterName] = []
        for action in self.actions:
            if action.character not in seen:
                seen.append(action.character)
        return seen


# -----------------------------------------------------------------------------
# Sequencer
# -----------------------------------------------------------------------------


class TurnSequencer:
    """Runs one controller's characters through their turn."""

    def __init__(
        self,
        gateway: "GameStateGateway",
        context_builder: "ContextBuilder",
        oracle: "OracleClient",
        repair: "RepairController",
        executor: "CommandExecutor",
        config: "OrchestratorConfig",
        factions: FactionService | None = None,
        tracer: "DecisionTracer | None" = None,
    ):
        self._gateway = gateway
        self._context = context_builder
        self._oracle = oracle
        self._repair = repair
        self._executor = executor
        self._config = config
        self._factions = factions or FactionService()
        self._tracer = tracer
        self.cursor: TurnCursor | None = None

    @property
    def is_busy(self) -> bool:
        return self.cursor is not None and self.cursor.in_flight

    @property
    def interrupt_pending(self) -> bool:
        return self.cursor is not None and self.cursor.interrupted

    # -------------------------------------------------------------------------
    # Turn lifecycle
    # -------------------------------------------------------------------------

    async def process_turn(self, controller: ControllerId) -> TurnReport | None:
        """Let every character of `controller` act, then pass the turn on.

        Returns None without doing anything when a cycle is already in
        flight or an earlier interrupt has not been cleared yet.
        """
        if self.is_busy:
            logger.debug(f"Turn for {controller} ignored: a cycle is already in flight")
            return None
        if self.interrupt_pending:
            logger.debug(f"Turn for {controller} ignored: interrupt not cleared yet")
            return None

        snapshot = self._gateway.snapshot()
        roster = [c.name for c in snapshot.characters_of(controller)]
        cursor = TurnCursor.begin(controller, roster)
        cursor.in_flight = True
        self.cursor = cursor
        report = TurnReport(controller=controller)

        for name in roster:
            self._executor.drop_pending_speech(name)

        log_turn(logger, controller, "start", f"roster={roster}")
        if self._tracer:
            await self._tracer.turn_start(controller, roster)

        try:
            while (name := cursor.next_character()) is not None:
                current = self._gateway.snapshot()
                if current.turn != controller:
                    logger.info(f"Turn moved to {current.turn} while {controller} was acting")
                    break
                character = current.get_character(name)
                if character is None or not character.is_alive:
                    continue

                try:
                    await self._process_character(name, cursor, report)
                except Exception:
                    # A failing character does nothing this turn
                    logger.exception(f"[{name}] Unexpected error during turn")
                    report.actions.append(
                        ActionRecord(character=name, command=None, status="error", message="Unexpected error")
                    )
        finally:
            cursor.in_flight = False

        report.cycles = dict(cursor.cycles)
        report.interrupted = cursor.interrupted
        report.interrupt_reason = cursor.interrupt_reason

        # Dialogue takes the turn away at once; the interrupt flag stays set
        report.next_controller = await self.end_turn(force=cursor.interrupted)

        log_turn(
            logger,
            controller,
            "end",
            f"cycles={cursor.total_cycles} interrupted={cursor.interrupted} "
            f"next={report.next_controller}",
        )
        if self._tracer:
            await self._tracer.turn_end(controller, report)
        return report

    async def end_turn(self, force: bool = False) -> ControllerId | None:
        """Hand the turn to the next controller, round-robin.

        Does nothing while an interrupt is pending (unless `force`), or when
        the active controller is no longer the one this cursor belongs to.
        A forced hand-off keeps the interrupt flag set until `clear_interrupt`.
        """
        cursor = self.cursor
        if cursor is None:
            return None
        if cursor.interrupted and not force:
            logger.debug(f"End of turn for {cursor.controller} suppressed by interrupt")
            return None

        snapshot = self._gateway.snapshot()
        if snapshot.turn != cursor.controller:
            logger.debug(
                f"Turn already moved from {cursor.controller} to {snapshot.turn}; not advancing"
            )
            if not cursor.interrupted:
                self.cursor = None
            return None

        players = list(snapshot.players) or [cursor.controller]
        index = players.index(cursor.controller) if cursor.controller in players else -1
        next_controller = players[(index + 1) % len(players)]

        await self._gateway.apply(AdvanceTurn(previous=cursor.controller, next=next_controller))
        if not cursor.interrupted:
            self.cursor = None
        logger.info(f"Turn passed from {cursor.controller} to {next_controller}")
        return next_controller

    def clear_interrupt(self) -> None:
        """Called by the game once the dialogue is over and a new turn began."""
        if self.cursor is not None and self.cursor.interrupted:
            logger.debug(f"Interrupt cleared for {self.cursor.controller}")
            self.cursor = None

    # -------------------------------------------------------------------------
    # Character loop
    # -------------------------------------------------------------------------

    async def _process_character(
        self, name: CharacterName, cursor: TurnCursor, report: TurnReport
    ) -> None:
        cfg = self._config
        actions = 0
        blockage: "BlockageInfo | None" = None

        while cursor.cycles_for(name) < cfg.max_cycles_per_character:
            snapshot = self._gateway.snapshot()
            character = snapshot.get_character(name)
            if character is None or not character.is_alive:
                break
            if snapshot.turn != cursor.controller:
                break
            if character.points_left <= 0:
                break
            if actions > 0 and character.points_left < cfg.min_action_cost:
                break

            cursor.record_cycle(name)

            delivered = await self._executor.deliver_pending_speech(character)
            if delivered is not None:
                self._record(report, name, "speech", delivered)
                if delivered.is_interrupt:
                    cursor.interrupt(delivered.message)
                    return
                actions += 1
                continue

            if not self._factions.living_hostiles(character, snapshot):
                logger.debug(f"[{name}] No living hostiles, standing by")
                break

            context = self._context.build(character, snapshot, blockage)
            blockage = None

            candidate = await self._oracle.request_decision(context)
            log_decision(logger, name, candidate.get("type") if candidate else None)
            if self._tracer:
                await self._tracer.decision(cursor.controller, name, candidate)
            if candidate is None:
                logger.info(f"[{name}] No decision available, ending turn")
                report.actions.append(
                    ActionRecord(character=name, command=None, status="no_decision", message="No decision available")
                )
                break

            result = await self._repair.resolve(candidate, context, snapshot, character)
            if self._tracer:
                await self._tracer.repair(cursor.controller, name, result)
            if not result.success or result.command is None:
                report.actions.append(
                    ActionRecord(
                        character=name,
                        command=candidate.get("type") if isinstance(candidate.get("type"), str) else None,
                        status="rejected",
                        message=f"Rejected after {result.attempts} attempts",
                    )
                )
                continue

            outcome = await self._executor.execute(character, result.command)
            actions += 1
            self._record(report, name, result.command.type, outcome)
            if self._tracer:
                await self._tracer.execution(cursor.controller, name, result.command, outcome)

            if outcome.status == "interrupted":
                cursor.interrupt(outcome.message)
                return
            if outcome.status == "blocked":
                blockage = outcome.blockage
                continue
            if outcome.status == "ended":
                break
            if cfg.settle_delay > 0:
                await asyncio.sleep(cfg.settle_delay)

        await self._settle_pending_speech(name, cursor, report)

    async def _settle_pending_speech(
        self, name: CharacterName, cursor: TurnCursor, report: TurnReport
    ) -> None:
        """Deliver queued speech if a listener came into range, else drop it."""
        if cursor.interrupted or name not in self._executor.pending_speech:
            return
        character = self._gateway.snapshot().get_character(name)
        if character is None or not character.is_alive:
            self._executor.drop_pending_speech(name)
            return

        outcome = await self._executor.deliver_pending_speech(character)
        if outcome is None:
            logger.debug(f"[{name}] Pending speech dropped at end of turn")
            self._executor.drop_pending_speech(name)
            return
        self._record(report, name, "speech", outcome)
        if outcome.is_interrupt:
            cursor.interrupt(outcome.message)

    def _record(
        self,
        report: TurnReport,
        name: CharacterName,
        command_type: str,
        outcome: "ExecutionOutcome",
    ) -> None:
        log_command(logger, name, command_type, outcome.status, outcome.message)
        report.actions.append(
            ActionRecord(
                character=name,
                command=command_type,
                status=outcome.status,
                message=outcome.message,
            )
        )
