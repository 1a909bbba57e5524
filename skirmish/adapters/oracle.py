"""Decision oracle client for Skirmish.

The oracle is an external decision service reached over a narrow JSON
protocol. One request is a list of chat-style messages; one response is
either a command object or a message list whose last assistant entry
embeds the command as JSON.

Transport failures are retried a fixed number of times with a fixed
backoff and then degrade to "no decision" (None). They never reach the
caller as exceptions.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import anthropic
import httpx
from langsmith.wrappers import wrap_anthropic

from ..core.errors import OracleTransportError
from .prompt_builder import build_context_prompt, get_protocol_description

if TYPE_CHECKING:
    from ..services.context_builder import DecisionContext

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

Message = dict[str, str]


# =============================================================================
# Response Parsing
# =============================================================================


def _message_text(message: Any) -> str:
    content = message.get("content") if isinstance(message, dict) else message
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
            elif isinstance(block, str):
                parts.append(block)
        return "".join(parts)
    return ""


def parse_json_object(text: str) -> dict[str, Any] | None:
    """First `{...}` object embedded in free text, or None."""
    match = JSON_OBJECT_PATTERN.search(text)
    if match is None:
        return None
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError:
        # Greedy match swallowed trailing prose with braces; decode the prefix
        try:
            value, _ = json.JSONDecoder().raw_decode(match.group(0))
        except json.JSONDecodeError:
            return None
    return value if isinstance(value, dict) else None


def extract_command(response: Any) -> dict[str, Any] | None:
    """Pull the candidate command out of an oracle response.

    A dict with `type` is a direct command. A dict with `messages`, or a bare
    list, is a message list: the last assistant entry (or the last entry when
    no roles are given) is searched for a JSON object.
    """
    if isinstance(response, dict):
        if "type" in response:
            return response
        response = response.get("messages")

    if not isinstance(response, list) or not response:
        return None

    assistant = [
        m for m in response if isinstance(m, dict) and m.get("role") == "assistant"
    ]
    last = assistant[-1] if assistant else response[-1]
    return parse_json_object(_message_text(last))


# =============================================================================
# Transports
# =============================================================================


class OracleTransport(Protocol):
    """Delivers one message list and returns the decoded JSON reply."""

    async def send(self, messages: list[Message]) -> Any: ...


class HttpOracleTransport:
    """JSON over HTTP: POST `{"messages": [...]}` to the decision endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._timeout = timeout
        self._api_key = api_key
        self._client = client

    async def send(self, messages: list[Message]) -> Any:
        headers: dict[str, str] = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json={"messages": messages}, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self.url, json={"messages": messages}, headers=headers)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise OracleTransportError("Decision service timed out") from e
        except httpx.HTTPStatusError as e:
            raise OracleTransportError(
                f"Decision service returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise OracleTransportError(f"Cannot reach decision service: {e}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise OracleTransportError("Decision service returned invalid JSON") from e


class AnthropicOracleTransport:
    """Uses Claude as the decision service.

    The reply is returned in message-list form so that it goes through the
    same extraction as any other oracle.
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        client: anthropic.AsyncAnthropic | None = None,
        max_tokens: int = 1024,
    ):
        # Wrap with LangSmith for automatic tracing (if LANGSMITH_TRACING=true)
        self.client = client or wrap_anthropic(anthropic.AsyncAnthropic())
        self.model = model
        self.max_tokens = max_tokens

    async def send(self, messages: list[Message]) -> Any:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        conversation = [m for m in messages if m["role"] != "system"]

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=conversation,
            )
        except anthropic.APIError as e:
            raise OracleTransportError(f"Anthropic API error: {e}") from e

        text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        return {"messages": [*messages, {"role": "assistant", "content": text}]}


# =============================================================================
# Client
# =============================================================================


@dataclass
class OracleError:
    """Why the last request produced no candidate."""

    message: str
    attempts: int
    exception: Exception | None = None


class OracleClient:
    """Requests decisions and corrections from the oracle.

    Returns the candidate command as a plain dict; decoding it into a typed
    Command is the repair controller's job, so that malformed replies can be
    repaired rather than dropped.
    """

    def __init__(
        self,
        transport: OracleTransport,
        max_retries: int = 3,
        backoff: float = 1.0,
        protocol_description: str | None = None,
    ):
        self._transport = transport
        self._max_retries = max(1, max_retries)
        self._backoff = backoff
        self._protocol = protocol_description or get_protocol_description()
        self.last_error: OracleError | None = None

    async def request_decision(
        self,
        context: "DecisionContext",
        protocol_description: str | None = None,
    ) -> dict[str, Any] | None:
        messages = self._base_messages(context, protocol_description)
        logger.debug(f"[{context.character.name}] Requesting decision")
        return await self._exchange(messages)

    async def request_correction(
        self,
        context: "DecisionContext",
        previous: Any,
        correction_prompt: str,
        protocol_description: str | None = None,
    ) -> dict[str, Any] | None:
        messages = self._base_messages(context, protocol_description)
        messages.append(
            {"role": "assistant", "content": json.dumps(previous, default=str)}
        )
        messages.append({"role": "user", "content": correction_prompt})
        logger.debug(f"[{context.character.name}] Requesting correction")
        return await self._exchange(messages)

    def _base_messages(
        self, context: "DecisionContext", protocol_description: str | None
    ) -> list[Message]:
        return [
            {"role": "system", "content": protocol_description or self._protocol},
            {"role": "user", "content": build_context_prompt(context)},
        ]

    async def _exchange(self, messages: list[Message]) -> dict[str, Any] | None:
        self.last_error = None
        for attempt in range(1, self._max_retries + 1):
            try:
                response = await self._transport.send(messages)
            except OracleTransportError as e:
                logger.warning(
                    f"Oracle transport failed (attempt {attempt}/{self._max_retries}): {e}"
                )
                self.last_error = OracleError(message=str(e), attempts=attempt, exception=e)
                if attempt < self._max_retries:
                    await asyncio.sleep(self._backoff)
                continue

            command = extract_command(response)
            if command is None:
                logger.warning("Oracle reply contained no command object")
                self.last_error = OracleError(
                    message="Reply contained no command object", attempts=attempt
                )
            return command

        logger.error(f"Oracle unreachable after {self._max_retries} attempts")
        return None
