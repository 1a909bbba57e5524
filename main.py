#!/usr/bin/env python3
"""
Skirmish - AI turn orchestration for a turn-based tactical game.

Loads a scenario, connects to a decision service and plays NPC turns.
Human turns are skipped (there is no player at the console).
"""

import argparse
import asyncio
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

from skirmish.adapters.gateway import InMemoryGameState
from skirmish.adapters.oracle import AnthropicOracleTransport, HttpOracleTransport
from skirmish.adapters.tracer import DecisionTracer
from skirmish.config import OrchestratorConfig
from skirmish.core.types import HUMAN_CONTROLLER
from skirmish.logging_config import setup_logging
from skirmish.scenario import load_scenario
from skirmish.session import GameSession


def main():
    parser = argparse.ArgumentParser(
        description="Skirmish - AI turn orchestration for NPCs"
    )
    parser.add_argument(
        "--scenario",
        type=Path,
        default=Path("scenarios/bridge.yaml"),
        help="Scenario YAML file (default: scenarios/bridge.yaml)",
    )
    parser.add_argument(
        "--turns",
        type=int,
        default=2,
        metavar="N",
        help="Number of turns to play (default: 2)",
    )
    parser.add_argument(
        "--transport",
        choices=["http", "anthropic"],
        default="http",
        help="Decision service transport (default: http)",
    )
    parser.add_argument(
        "--url",
        help="Decision service URL for the http transport (overrides config)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path("data"),
        help="Directory for logs and traces (default: ./data)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    # Configure logging - always log DEBUG to file, console level depends on --debug
    console_level = logging.DEBUG if args.debug else logging.WARNING
    log_path = setup_logging(args.data, console_level=console_level)
    print(f"Logging to: {log_path}")

    config = OrchestratorConfig.from_env(OrchestratorConfig.from_yaml(args.scenario))
    snapshot = load_scenario(args.scenario)
    gateway = InMemoryGameState(snapshot)

    if args.transport == "anthropic":
        transport = AnthropicOracleTransport(model=config.oracle_model)
    else:
        transport = HttpOracleTransport(args.url or config.oracle_url, timeout=config.oracle_timeout)

    tracer = DecisionTracer(args.data / "traces" / "decisions.jsonl")
    session = GameSession(gateway, transport, config=config, tracer=tracer)

    print(f"\nLoaded {args.scenario} with {len(snapshot.characters)} characters:")
    for character in snapshot.characters:
        print(f"  - {character.name} ({character.faction}, {character.controller}) at {character.position}")

    async def run():
        print(f"\nPlaying {args.turns} turns...")
        print("-" * 40)
        for _ in range(args.turns):
            current = gateway.snapshot()
            if current.turn == HUMAN_CONTROLLER:
                # Any dialogue the NPCs opened is considered answered
                for dialogue in gateway.dialogues:
                    print(f"  {dialogue.speaker} -> {dialogue.listener}: {dialogue.content}")
                gateway.dialogues.clear()
                session.clear_interrupt()
                players = list(current.players)
                nxt = players[(players.index(current.turn) + 1) % len(players)]
                print(f"[{current.turn}] skipped")
                gateway.begin_turn(nxt)
                continue

            report = await session.process_turn(current.turn)
            if report is None:
                print(f"[{current.turn}] busy, skipped")
                continue
            for action in report.actions:
                print(f"[{report.controller}] {action.character}: {action.command or '-'} {action.status} | {action.message}")
            if report.interrupted:
                print(f"[{report.controller}] interrupted: {report.interrupt_reason}")
        print("-" * 40)
        print("Done.")

    asyncio.run(run())


if __name__ == "__main__":
    main()
