"""Game session for Skirmish.

Wires the orchestration services for one game session. Every service is
constructed here and handed to the ones that need it; nothing is shared
across sessions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .adapters.oracle import OracleClient, OracleTransport
from .config import OrchestratorConfig
from .core.types import ControllerId
from .runtime.repair import RepairController
from .runtime.sequencer import TurnReport, TurnSequencer
from .services.context_builder import ContextBuilder
from .services.executor import CommandExecutor
from .services.factions import FactionService
from .services.geometry import GridPathService, PathService
from .services.locations import LocationResolver
from .services.validator import CommandValidator

if TYPE_CHECKING:
    from .adapters.gateway import GameStateGateway
    from .adapters.tracer import DecisionTracer

logger = logging.getLogger(__name__)


class GameSession:
    """One game's orchestration engine.

    Usage:
        session = GameSession(gateway, HttpOracleTransport(url))
        report = await session.process_turn(ControllerId("ai"))
    """

    def __init__(
        self,
        gateway: "GameStateGateway",
        transport: OracleTransport,
        config: OrchestratorConfig | None = None,
        path_service: PathService | None = None,
        tracer: "DecisionTracer | None" = None,
    ):
        self.config = config or OrchestratorConfig()
        self.gateway = gateway
        self.tracer = tracer

        cfg = self.config
        self.factions = FactionService()
        self.locations = LocationResolver(cfg.empty_cell_search_radius)
        self.context_builder = ContextBuilder(cfg, self.factions, self.locations)
        self.validator = CommandValidator(self.locations)
        self.oracle = OracleClient(
            transport,
            max_retries=cfg.transport_retries,
            backoff=cfg.transport_backoff,
        )
        self.repair = RepairController(
            self.oracle,
            self.validator,
            max_attempts=cfg.max_repair_attempts,
        )
        self.executor = CommandExecutor(
            gateway,
            cfg,
            self.context_builder,
            path_service=path_service or GridPathService(),
            locations=self.locations,
            factions=self.factions,
        )
        self.sequencer = TurnSequencer(
            gateway,
            self.context_builder,
            self.oracle,
            self.repair,
            self.executor,
            cfg,
            factions=self.factions,
            tracer=tracer,
        )
        logger.debug(f"GameSession created | config={cfg.model_dump()}")

    async def process_turn(self, controller: ControllerId | str) -> TurnReport | None:
        return await self.sequencer.process_turn(ControllerId(controller))

    async def end_turn(self, force: bool = False) -> ControllerId | None:
        return await self.sequencer.end_turn(force=force)

    def clear_interrupt(self) -> None:
        self.sequencer.clear_interrupt()

    def record_event(self, text: str) -> None:
        """Feed an event from the wider game into the NPCs' recent history."""
        self.context_builder.record_event(text)
