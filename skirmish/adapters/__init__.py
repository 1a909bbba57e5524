"""External integrations for Skirmish (decision service, game state, traces)."""

from .oracle import (
    AnthropicOracleTransport,
    HttpOracleTransport,
    OracleClient,
    OracleTransport,
    extract_command,
)
from .prompt_builder import (
    build_context_prompt,
    build_correction_prompt,
    format_error_feedback,
    get_protocol_description,
)
from .gateway import GameStateGateway, InMemoryGameState
from .tracer import DecisionTracer, TraceEvent

__all__ = [
    "AnthropicOracleTransport",
    "HttpOracleTransport",
    "OracleClient",
    "OracleTransport",
    "extract_command",
    "build_context_prompt",
    "build_correction_prompt",
    "format_error_feedback",
    "get_protocol_description",
    "GameStateGateway",
    "InMemoryGameState",
    "DecisionTracer",
    "TraceEvent",
]
