import argparse
import logging
import random

from .bots import BaselineBot, min_raise_strategy, passive_strategy
from .game import BettingEngine
from .match import MatchDriver
from .models import Controller, TableConfig

LOGGER = logging.getLogger("holdem")

STRATEGIES = {
    "baseline": None,
    "passive": passive_strategy,
    "min-raise": min_raise_strategy,
}


def main() -> None:
    # Plays an all-bot match and prints the event log as it goes.
    parser = argparse.ArgumentParser(description="Texas Hold'em bot match")
    parser.add_argument("--players", type=int, default=4)
    parser.add_argument("--hands", type=int, default=50)
    parser.add_argument("--bankroll", type=int, default=1_000, help="Starting stack; blinds scale with it")
    parser.add_argument("--big-blind", type=int, default=None, help="Override the derived big blind")
    parser.add_argument("--strategy", choices=sorted(STRATEGIES), default="baseline")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(message)s")

    config = TableConfig.for_bankroll(args.bankroll, max_players=max(args.players, 2))
    if args.big_blind is not None:
        config = TableConfig(
            big_blind=args.big_blind,
            starting_stack=args.bankroll,
            max_players=config.max_players,
        )

    rng = random.Random(args.seed)
    engine = BettingEngine(config, rng=rng)
    for idx in range(args.players):
        engine.add_player(f"Bot{idx + 1}", Controller.BOT)

    strategy = STRATEGIES[args.strategy] or BaselineBot(random.Random(rng.random()))
    driver = MatchDriver(engine, {Controller.BOT: strategy})

    for _ in range(args.hands):
        first_line = len(engine.state.log)
        if not driver.start_hand():
            break
        driver.play_hand()
        for line in engine.state.log[first_line:]:
            LOGGER.info(line)

    LOGGER.info("Standings after %d hand(s):", driver.hands_played)
    for player in driver.standings():
        LOGGER.info("  %-8s %6d", player.name, player.chips)


if __name__ == "__main__":
    main()
