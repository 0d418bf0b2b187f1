"""Headless command-line entry point.

Usage:
    restaurantduel validate
    restaurantduel simulate --games 100 --seed 7 --difficulty 2
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from collections.abc import Sequence
from typing import TextIO

from restaurantduel.engine.ai import AISpec, play_match
from restaurantduel.engine.match import SeatConfig, new_match
from restaurantduel.paths import get_paths
from restaurantduel.services.content import ContentError, ContentService, StarterDeck
from restaurantduel.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def cmd_validate(args: argparse.Namespace, output: TextIO | None = None) -> int:
    output = output or sys.stdout
    try:
        _content().validate_all()
    except ContentError as e:
        output.write(f"Content invalid:\n{e}\n")
        return 1
    output.write("Content OK\n")
    return 0


def _pick_decks(decks: dict[str, StarterDeck], names: Sequence[str] | None) -> tuple[StarterDeck, StarterDeck]:
    if names:
        missing = [n for n in names if n not in decks]
        if missing:
            raise ContentError(f"Unknown starter deck(s): {', '.join(missing)}")
        chosen = [decks[n] for n in names]
    else:
        chosen = sorted(decks.values(), key=lambda d: d.id)
    if not chosen:
        raise ContentError("No starter decks available")
    return chosen[0], chosen[1 % len(chosen)]


def cmd_simulate(args: argparse.Namespace, output: TextIO | None = None) -> int:
    output = output or sys.stdout
    content = _content()
    try:
        catalog = content.load_catalog()
        deck_a, deck_b = _pick_decks(content.load_starter_decks(), args.decks)
    except ContentError as e:
        output.write(f"{e}\n")
        return 1

    telemetry = TelemetryService(get_paths().telemetry_log) if args.telemetry else None
    spec = AISpec(difficulty=args.difficulty)
    seats = [
        SeatConfig(id="ai-0", name=deck_a.name, deck=deck_a.deck, is_ai=True),
        SeatConfig(id="ai-1", name=deck_b.name, deck=deck_b.deck, is_ai=True),
    ]

    wins: Counter[str] = Counter()
    total_rounds = 0
    for game in range(args.games):
        seed = args.seed + game
        match_id = f"sim-{seed}"
        state = new_match(catalog, seats, seed=seed)
        if telemetry is not None:
            telemetry.match_started(match_id, state)
        state = play_match(state, specs=(spec, spec), max_rounds=args.max_rounds)
        total_rounds += state.current_round
        if state.winner is None:
            wins["unfinished"] += 1
        else:
            wins[seats[state.winner].name] += 1
        if telemetry is not None:
            telemetry.match_ended(match_id, state)
        logger.debug("game %s seed=%s winner=%s rounds=%s", game, seed, state.winner, state.current_round)

    output.write(f"Simulated {args.games} games ({deck_a.name} vs {deck_b.name})\n")
    for name, n in wins.most_common():
        output.write(f"  {name}: {n} ({100 * n / args.games:.1f}%)\n")
    if args.games:
        output.write(f"Average rounds: {total_rounds / args.games:.2f}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="restaurantduel", description="Restaurant Duel match simulator")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_val = sub.add_parser("validate", help="Validate card content and starter decks")
    p_val.set_defaults(func=cmd_validate)

    p_sim = sub.add_parser("simulate", help="Run AI-vs-AI matches")
    p_sim.add_argument("-n", "--games", type=int, default=10, help="Number of games (default: 10)")
    p_sim.add_argument("-s", "--seed", type=int, default=0, help="Seed of the first game")
    p_sim.add_argument("-d", "--difficulty", type=int, choices=(0, 1, 2), default=1, help="AI difficulty")
    p_sim.add_argument("--decks", nargs=2, metavar="DECK_ID", default=None, help="Starter deck ids")
    p_sim.add_argument("--max-rounds", type=int, default=50)
    p_sim.add_argument("--telemetry", action="store_true", help="Append results to the telemetry log")
    p_sim.set_defaults(func=cmd_simulate)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
