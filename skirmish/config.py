"""Configuration for Skirmish.

Thresholds and budgets are fixed per session. Defaults match the tuned
values of the game; environment variables (SKIRMISH_*) and YAML files can
override them.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "SKIRMISH_"


class OrchestratorConfig(BaseModel):
    """Session-wide thresholds, budgets and oracle settings."""

    model_config = ConfigDict(frozen=True)

    # Geometry thresholds (cells)
    view_radius: float = 15.0
    conversation_radius: float = 8.0
    eavesdrop_radius: float = 15.0
    adjacency_threshold: float = 1.5
    empty_cell_search_radius: int = 10

    # Decision loop budgets
    max_repair_attempts: int = 3
    max_cycles_per_character: int = 5
    min_action_cost: int = 20
    pending_speech_attempts: int = 3

    # Context history sizes
    event_history_size: int = 10
    conversation_history_size: int = 10
    conversation_lines_in_context: int = 5

    # Scheduling
    settle_delay: float = 0.0

    # Oracle transport
    oracle_url: str = "http://localhost:3000/gameEngine"
    oracle_model: str = "claude-sonnet-4-5-20250929"
    oracle_timeout: float = 60.0
    transport_retries: int = 3
    transport_backoff: float = 1.0

    @classmethod
    def from_env(cls, base: OrchestratorConfig | None = None) -> OrchestratorConfig:
        """Override fields from SKIRMISH_<FIELD> environment variables."""
        base = base or cls()
        updates: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                updates[name] = raw
        if not updates:
            return base
        logger.debug(f"Config overrides from environment: {sorted(updates)}")
        return cls.model_validate({**base.model_dump(), **updates})

    @classmethod
    def from_yaml(cls, path: Path) -> OrchestratorConfig:
        """Load the `config:` block of a YAML file. Missing file gives defaults."""
        if not path.exists():
            return cls()
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data.get("config") or {})
