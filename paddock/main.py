"""
Command-line entry point.

Runs one weekend phase against a JSON world file, or prints an economy
report or the circuit catalogue.

    python -m paddock.main qualifying --world data/world.json
    python -m paddock.main race --world data/world.json --seed 7
    python -m paddock.main post-race --world data/world.json
    python -m paddock.main economy --world data/world.json
"""

import argparse
import asyncio
import logging
import random
import sys
from typing import Dict, List, Optional

from config import Config
from .circuits import get_circuit, list_circuits
from .economy import build_economy_report
from .notifier import create_notifier
from .orchestrator import PhaseOutcome, WeekendOrchestrator
from .store import InMemoryStore

PHASES = ("qualifying", "race", "post-race")


async def run_phase(
    phase: str,
    config: Config,
    store: InMemoryStore,
    seed: Optional[int] = None,
) -> Dict[str, PhaseOutcome]:
    """Run one phase and close the notifier afterwards."""
    notifier = create_notifier(config.notify_url, timeout=config.notify_timeout_sec)
    orchestrator = WeekendOrchestrator(
        config,
        store,
        notifier,
        rng=random.Random(seed),
    )
    try:
        if phase == "qualifying":
            return await orchestrator.run_qualifying()
        if phase == "race":
            return await orchestrator.run_race()
        return await orchestrator.run_post_race()
    finally:
        await notifier.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paddock", description="Racing-management weekend simulator")
    sub = parser.add_subparsers(dest="command", required=True)

    for phase in PHASES:
        p = sub.add_parser(phase, help=f"Run the {phase} phase for every league")
        p.add_argument("--world", required=True, help="Path to the JSON world file")
        p.add_argument("--seed", type=int, default=None, help="Random seed")
        p.add_argument("--no-stagger", action="store_true", help="Do not wait between leagues")

    p = sub.add_parser("economy", help="Print team budgets")
    p.add_argument("--world", required=True, help="Path to the JSON world file")

    sub.add_parser("circuits", help="List circuit profiles")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "circuits":
        for circuit_id in list_circuits():
            c = get_circuit(circuit_id)
            print(f"{c.id:<18} {c.base_lap_time:>6.1f}s  {c.laps:>3} laps")
        return 0

    store = InMemoryStore.from_json(args.world)

    if args.command == "economy":
        print(build_economy_report(store).format())
        return 0

    if args.no_stagger:
        config.league_stagger_sec = 0.0

    outcomes = asyncio.run(run_phase(args.command, config, store, seed=args.seed))
    store.save(args.world)

    for key, outcome in outcomes.items():
        print(f"{key}: {outcome.value}")
    return 1 if PhaseOutcome.FAILED in outcomes.values() else 0


if __name__ == "__main__":
    sys.exit(main())
