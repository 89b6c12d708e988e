"""Texas Hold'em hand evaluator and betting engine."""

from .cards import Card, RANKS, SUITS, build_deck, deal, parse_cards
from .evaluator import HandCategory, HandValue, best_hand_of, compare, rank5
from .game import ActionRejected, BettingEngine, MatchState
from .match import HumanActionQueue, MatchDriver
from .models import (
    ActionType,
    ActionWindow,
    AdvanceResult,
    Controller,
    Decision,
    Payout,
    Phase,
    Player,
    Snapshot,
    TableConfig,
)

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal",
    "parse_cards",
    "HandCategory",
    "HandValue",
    "best_hand_of",
    "compare",
    "rank5",
    "ActionRejected",
    "BettingEngine",
    "MatchState",
    "HumanActionQueue",
    "MatchDriver",
    "ActionType",
    "ActionWindow",
    "AdvanceResult",
    "Controller",
    "Decision",
    "Payout",
    "Phase",
    "Player",
    "Snapshot",
    "TableConfig",
]
