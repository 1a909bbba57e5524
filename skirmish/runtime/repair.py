"""Retry/repair controller for Skirmish.

Validates a candidate command against the live world and, when it is
invalid, asks the oracle for a corrected one. The loop is a small state
machine:

    ATTEMPT  -- valid -------------------------------> success
    ATTEMPT  -- invalid, attempts left --> REPAIR --> ATTEMPT
    ATTEMPT  -- invalid, budget spent ---> EXHAUSTED -> failure

Validation is pure, so repeated attempts are safe; only the accepted
command ever reaches the executor.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..adapters.prompt_builder import build_correction_prompt, format_error_feedback
from ..core.commands import Command
from ..core.errors import ValidationError
from ..logging_config import log_repair

if TYPE_CHECKING:
    from ..adapters.oracle import OracleClient
    from ..core.character import Character
    from ..core.world import WorldSnapshot
    from ..services.context_builder import DecisionContext
    from ..services.validator import CommandValidator

logger = logging.getLogger(__name__)


class RepairState(Enum):
    ATTEMPT = "attempt"
    REPAIR = "repair"
    EXHAUSTED = "exhausted"


@dataclass
class RetryState:
    """Bookkeeping for one decision's validation attempts."""

    max_attempts: int
    original: Any
    attempt: int = 0
    errors: list[list[ValidationError]] = field(default_factory=list)

    @property
    def attempts_left(self) -> int:
        return self.max_attempts - self.attempt


@dataclass(frozen=True)
class RepairResult:
    """Outcome of resolving a candidate command.

    Attributes:
        success: A valid command was found
        command: The accepted command (None on failure)
        attempts: Validation attempts made
        errors: Errors per failed attempt, in order
    """

    success: bool
    command: Command | None
    attempts: int
    errors: tuple[tuple[ValidationError, ...], ...] = ()

    @property
    def all_errors(self) -> list[ValidationError]:
        return [e for attempt in self.errors for e in attempt]


class RepairController:
    """Drives the ATTEMPT / REPAIR / EXHAUSTED loop for one decision."""

    def __init__(
        self,
        oracle: "OracleClient",
        validator: "CommandValidator",
        max_attempts: int = 3,
        retry_delay: float = 0.0,
    ):
        self._oracle = oracle
        self._validator = validator
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay
        self.state = RepairState.ATTEMPT

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def check(
        self,
        candidate: Any,
        snapshot: "WorldSnapshot",
        actor: "Character | None" = None,
    ) -> tuple[Command | None, list[ValidationError]]:
        """Structural then semantic validation. Pure."""
        parsed = self._validator.parse(candidate, snapshot)
        if not parsed.ok:
            return None, parsed.errors
        command = parsed.unwrap()
        errors = self._validator.validate(command, snapshot, actor)
        if errors:
            return None, errors
        return command, []

    async def resolve(
        self,
        candidate: Any,
        context: "DecisionContext",
        snapshot: "WorldSnapshot",
        actor: "Character | None" = None,
    ) -> RepairResult:
        retry = RetryState(max_attempts=self._max_attempts, original=candidate)
        name = context.character.name
        self.state = RepairState.ATTEMPT
        missing_reply: list[ValidationError] | None = None

        while True:
            # ATTEMPT
            retry.attempt += 1
            if missing_reply is not None:
                command, errors = None, missing_reply
                missing_reply = None
            else:
                command, errors = self.check(candidate, snapshot, actor)
            if command is not None:
                logger.debug(f"[{name}] Command accepted on attempt {retry.attempt}")
                return RepairResult(
                    success=True,
                    command=command,
                    attempts=retry.attempt,
                    errors=tuple(tuple(e) for e in retry.errors),
                )

            retry.errors.append(errors)
            log_repair(logger, name, retry.attempt, retry.max_attempts, len(errors))
            logger.debug(f"[{name}] Rejected command errors:\n{format_error_feedback(errors)}")

            if retry.attempts_left <= 0:
                self.state = RepairState.EXHAUSTED
                logger.warning(f"[{name}] Repair budget exhausted after {retry.attempt} attempts")
                return RepairResult(
                    success=False,
                    command=None,
                    attempts=retry.attempt,
                    errors=tuple(tuple(e) for e in retry.errors),
                )

            # REPAIR
            self.state = RepairState.REPAIR
            if self._retry_delay > 0:
                await asyncio.sleep(self._retry_delay)
            prompt = build_correction_prompt(
                candidate, errors, attempt=retry.attempt, max_attempts=retry.max_attempts
            )
            corrected = await self._oracle.request_correction(context, candidate, prompt)
            self.state = RepairState.ATTEMPT
            if corrected is None:
                missing_reply = [
                    ValidationError(
                        field="command",
                        value=None,
                        reason="No corrected command was received from the decision service",
                    )
                ]
            else:
                candidate = corrected
