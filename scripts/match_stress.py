#!/usr/bin/env python3
"""Play many seeded bot matches in-process and check chip accounting.

Example:
    python scripts/match_stress.py --matches 200 --players 5
"""

from __future__ import annotations

import argparse
import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from holdem.bots import BaselineBot, min_raise_strategy, passive_strategy
from holdem.game import BettingEngine
from holdem.match import MatchDriver
from holdem.models import Controller, Decision, Snapshot, TableConfig

LOGGER = logging.getLogger("match_stress")

Strategy = Callable[[Snapshot, int], Optional[Decision]]


def mixed_strategy(seed: int) -> Strategy:
    """Give every seat its own personality, picked by seat index."""
    baseline = BaselineBot(random.Random(seed))
    personalities: List[Strategy] = [passive_strategy, min_raise_strategy, baseline]

    def decide(snapshot: Snapshot, seat: int) -> Optional[Decision]:
        return personalities[seat % len(personalities)](snapshot, seat)

    return decide


@dataclass
class MatchStats:
    hands: int = 0
    showdowns: int = 0
    errors: int = 0


def play_match(seed: int, players: int, bankroll: int, max_hands: int) -> Tuple[MatchStats, int]:
    config = TableConfig.for_bankroll(bankroll, max_players=players)
    engine = BettingEngine(config, rng=random.Random(seed))
    for idx in range(players):
        engine.add_player(f"Stress{idx}")
    driver = MatchDriver(engine, {Controller.BOT: mixed_strategy(seed)})

    stats = MatchStats()
    expected = engine.chips_in_play()
    for _ in range(max_hands):
        if not driver.start_hand():
            break
        result = driver.play_hand()
        stats.hands += 1
        if result is not None and result.phase_changed and result.is_hand_complete:
            stats.showdowns += 1
        total = sum(player.chips for player in engine.players)
        if total != expected:
            stats.errors += 1
            LOGGER.error("Seed %d hand %d: chips %d != %d", seed, stats.hands, total, expected)
    return stats, expected


def main() -> None:
    parser = argparse.ArgumentParser(description="Bot stress test for the betting engine")
    parser.add_argument("--matches", type=int, default=50)
    parser.add_argument("--players", type=int, default=4)
    parser.add_argument("--bankroll", type=int, default=1_000)
    parser.add_argument("--max-hands", type=int, default=500)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    totals = MatchStats()
    for offset in range(args.matches):
        stats, _ = play_match(args.seed + offset, args.players, args.bankroll, args.max_hands)
        totals.hands += stats.hands
        totals.showdowns += stats.showdowns
        totals.errors += stats.errors

    LOGGER.info(
        "Played %d matches, %d hands (%d showdowns), %d accounting errors",
        args.matches,
        totals.hands,
        totals.showdowns,
        totals.errors,
    )
    if totals.errors:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
