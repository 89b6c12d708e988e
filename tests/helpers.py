from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

from holdem.cards import RANKS, SUITS, Card, parse_cards
from holdem.game import BettingEngine
from holdem.models import ActionType, AdvanceResult, TableConfig


class StackedDeck:
    """Random source whose shuffle puts the given cards on top, in order."""

    def __init__(self, labels: Sequence[str]) -> None:
        self.top = parse_cards(labels)

    def shuffle(self, deck: List[Card]) -> None:
        rest = [card for card in deck if card not in self.top]
        deck[:] = self.top + rest


def stacked_deck(holes: Sequence[Tuple[str, str]], board: Sequence[str] = (), dealer: int = 0) -> StackedDeck:
    """Arrange the deck so seat ``i`` receives ``holes[i]`` and the board comes out as given.

    Hole cards go out one at a time starting left of the dealer; burn cards
    are taken from whatever is left over.
    """
    count = len(holes)
    order = [(dealer + offset) % count for offset in range(1, count + 1)]
    labels = [holes[seat][round_] for round_ in range(2) for seat in order]

    used = set(parse_cards(labels + list(board)))
    spare = (Card(rank, suit) for suit in SUITS for rank in RANKS if Card(rank, suit) not in used)
    for street in (board[:3], board[3:4], board[4:5]):
        if street:
            labels.append(next(spare).label)
            labels.extend(street)
    return StackedDeck(labels)


def create_engine(
    *,
    players: int = 3,
    starting_stack: int = 1_000,
    big_blind: int = 20,
    stacks: Optional[Sequence[int]] = None,
    rng=None,
) -> BettingEngine:
    """Instantiate an engine with a populated table."""
    engine = BettingEngine(
        TableConfig(big_blind=big_blind, starting_stack=starting_stack),
        rng=rng if rng is not None else random.Random(42),
    )
    for idx in range(players):
        engine.add_player(f"Player{idx}")
    if stacks is not None:
        for player, stack in zip(engine.players, stacks):
            player.chips = stack
    return engine


def act(engine: BettingEngine, action: ActionType, amount: int = 0) -> AdvanceResult:
    """Apply one action that must be legal, then advance."""
    accepted = engine.process_action(action, amount)
    assert accepted, engine.last_rejection.msg if engine.last_rejection else "rejected"
    return engine.advance()


def passive_move(engine: BettingEngine) -> AdvanceResult:
    if engine.state.acting_index is None:
        return engine.advance()
    window = engine.legal_actions()
    if ActionType.CHECK in window.legal:
        return act(engine, ActionType.CHECK)
    return act(engine, ActionType.CALL)


def auto_complete_hand(engine: BettingEngine) -> Optional[AdvanceResult]:
    """Check or call every decision until the hand completes."""
    result = None
    while engine.state.in_progress:
        result = passive_move(engine)
    return result


def play_until_phase_changes(engine: BettingEngine) -> AdvanceResult:
    while True:
        result = passive_move(engine)
        if result.phase_changed or result.is_hand_complete:
            return result
