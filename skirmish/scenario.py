"""Scenario loading for Skirmish.

Scenarios are YAML files describing a map, its rooms and walls, the
characters on it and the players taking turns. They feed the CLI and the
in-memory game state.

    map:
      width: 24
      height: 16
      rooms:
        - {name: Bridge, rect: [8, 8, 12, 12]}
      walls:
        - [5, 3]
        - {rect: [6, 0, 6, 10]}
    players: [ai, human]
    turn: ai
    characters:
      - {name: Guard, faction: enemy, controller: ai, position: [2, 2]}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .core.character import Character
from .core.types import ControllerId, Position
from .core.world import Cell, FactionRelations, MapGrid, StoryState, WorldSnapshot

logger = logging.getLogger(__name__)


def _rect_cells(rect: list[int]) -> list[Position]:
    x0, y0, x1, y1 = rect
    return [
        Position(x, y)
        for y in range(min(y0, y1), max(y0, y1) + 1)
        for x in range(min(x0, x1), max(x0, x1) + 1)
    ]


def _build_map(data: dict[str, Any]) -> MapGrid:
    cells: dict[Position, Cell] = {}

    for room in data.get("rooms", []):
        name = room["name"]
        building = room.get("building")
        tags = (name, building, "floor") if building else (name, "floor")
        for pos in _rect_cells(room["rect"]):
            cells[pos] = Cell(position=pos, locations=tags)

    for wall in data.get("walls", []):
        positions = _rect_cells(wall["rect"]) if isinstance(wall, dict) else [Position(*wall)]
        for pos in positions:
            existing = cells.get(pos)
            tags = existing.locations if existing else ()
            cells[pos] = Cell(position=pos, locations=tags + ("wall",), blocker=True)

    return MapGrid(width=data["width"], height=data["height"], cells=cells)


def scenario_from_dict(data: dict[str, Any]) -> WorldSnapshot:
    """Build a WorldSnapshot from parsed scenario data."""
    grid = _build_map(data["map"])

    characters = []
    for raw in data.get("characters", []):
        entry = dict(raw)
        entry["position"] = Position(*entry["position"])
        entry.setdefault("controller", "ai")
        characters.append(Character.model_validate(entry))

    players = tuple(ControllerId(p) for p in data.get("players", ["ai", "human"]))
    factions_data = data.get("factions")
    factions = (
        FactionRelations(
            allied={k: tuple(v) for k, v in (factions_data.get("allied") or {}).items()},
            hostile={k: tuple(v) for k, v in (factions_data.get("hostile") or {}).items()},
            configured=True,
        )
        if factions_data
        else FactionRelations()
    )

    snapshot = WorldSnapshot(
        map=grid,
        characters=tuple(characters),
        turn=ControllerId(data.get("turn", players[0])),
        players=players,
        story=StoryState.model_validate(data.get("story") or {}),
        factions=factions,
    )
    logger.debug(
        f"Scenario loaded | {grid.width}x{grid.height} | rooms={grid.room_names()} | "
        f"characters={snapshot.character_names()}"
    )
    return snapshot


def load_scenario(path: Path) -> WorldSnapshot:
    """Load a scenario YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    if not data or "map" not in data:
        raise ValueError(f"Scenario {path} has no map section")
    return scenario_from_dict(data)
