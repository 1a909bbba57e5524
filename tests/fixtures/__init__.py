"""Builders shared by the Skirmish tests."""

import asyncio
from typing import Any

from skirmish.core import (
    Cell,
    Character,
    ControllerId,
    MapGrid,
    OracleTransportError,
    Position,
)


def make_map(
    width: int = 20,
    height: int = 20,
    rooms: dict[str, tuple[int, int, int, int]] | None = None,
    walls: list[tuple[int, int]] | None = None,
    buildings: dict[str, str] | None = None,
) -> MapGrid:
    """Map with rectangular rooms (inclusive x0, y0, x1, y1) and wall cells.

    `buildings` maps a room name to the building it belongs to.
    """
    buildings = buildings or {}
    cells: dict[Position, Cell] = {}
    for name, (x0, y0, x1, y1) in (rooms or {}).items():
        tags = (name, buildings[name], "floor") if name in buildings else (name, "floor")
        for y in range(y0, y1 + 1):
            for x in range(x0, x1 + 1):
                cells[Position(x, y)] = Cell(position=Position(x, y), locations=tags)
    for x, y in walls or []:
        cells[Position(x, y)] = Cell(position=Position(x, y), locations=("wall",), blocker=True)
    return MapGrid(width=width, height=height, cells=cells)


def make_character(
    name: str,
    x: float,
    y: float,
    controller: str = "ai",
    faction: str | None = None,
    **kwargs: Any,
) -> Character:
    """Character with sensible defaults; faction follows the controller."""
    if faction is None:
        faction = "player" if controller == "human" else "enemy"
    return Character(
        name=name,
        faction=faction,
        controller=ControllerId(controller),
        position=Position(x, y),
        **kwargs,
    )


class ScriptedTransport:
    """Oracle transport that replays queued replies.

    Queued exceptions are raised instead of returned. Every request's
    messages are kept in `requests`. A `delay` makes each reply take that
    many seconds.
    """

    def __init__(self, *replies: Any, delay: float = 0.0):
        self.replies: list[Any] = list(replies)
        self.delay = delay
        self.requests: list[list[dict[str, str]]] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def send(self, messages):
        self.requests.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            raise OracleTransportError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


__all__ = ["make_map", "make_character", "ScriptedTransport"]
