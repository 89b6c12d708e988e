from __future__ import annotations

import random
from typing import Optional, Sequence

from .cards import Card
from .evaluator import best_hand_of
from .models import ActionType, ActionWindow, Decision, Phase, Snapshot

# Decision providers are plain callables: (snapshot, seat) -> Decision. They
# only ever see the read-only snapshot the engine hands out.


def _raise_kind(window: ActionWindow) -> Optional[ActionType]:
    for kind in (ActionType.BET, ActionType.RAISE):
        if kind in window.legal:
            return kind
    return None


def passive_strategy(snapshot: Snapshot, seat: int) -> Decision:
    """Check if possible, otherwise call, then fold."""
    window = snapshot.legal
    if window is None:
        return Decision(ActionType.FOLD)
    if ActionType.CHECK in window.legal:
        return Decision(ActionType.CHECK)
    if ActionType.CALL in window.legal:
        return Decision(ActionType.CALL)
    return Decision(ActionType.FOLD)


def min_raise_strategy(snapshot: Snapshot, seat: int) -> Decision:
    """Raise the minimum whenever allowed, fall back to call/check."""
    window = snapshot.legal
    if window is None:
        return Decision(ActionType.FOLD)
    kind = _raise_kind(window)
    if kind is not None and window.min_raise_to:
        return Decision(kind, window.min_raise_to)
    if ActionType.CALL in window.legal:
        return Decision(ActionType.CALL)
    if ActionType.CHECK in window.legal:
        return Decision(ActionType.CHECK)
    return Decision(ActionType.FOLD)


def _rough_hand_strength(hole: Sequence[Card]) -> int:
    """Very rough proxy for hand quality used to drive aggression choices."""
    if len(hole) < 2:
        return 0

    values = [card.value for card in hole]
    score = sum(values)
    if values[0] == values[1]:
        score += 14  # pairs are quite strong pre-flop
    else:
        gap = abs(values[0] - values[1])
        if gap == 1:
            score += 4
        elif gap == 2:
            score += 2
    if hole[0].suit == hole[1].suit:
        score += 3
    if min(values) >= 11:
        score += 2

    return score


class BaselineBot:
    """Aggressive demo bot: mixes in random raises with a bias toward stronger holdings."""

    PHASE_BONUS = {
        Phase.PREFLOP: 0.0,
        Phase.FLOP: 0.05,
        Phase.TURN: 0.1,
        Phase.RIVER: 0.12,
    }

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else random.Random()

    def __call__(self, snapshot: Snapshot, seat: int) -> Decision:
        window = snapshot.legal
        if window is None or window.legal == (ActionType.FOLD,):
            return Decision(ActionType.FOLD)

        hole = snapshot.players[seat].hole_cards
        strength = self.hand_strength(hole, snapshot.community_cards)
        facing_bet = window.call_amount is not None
        kind = _raise_kind(window)

        if kind is not None and hole and self._should_raise(strength, snapshot.phase, facing_bet):
            return Decision(kind, self._choose_raise_amount(window, facing_bet))
        if ActionType.CALL in window.legal:
            return Decision(ActionType.CALL)
        if ActionType.CHECK in window.legal:
            return Decision(ActionType.CHECK)
        return Decision(ActionType.FOLD)

    @staticmethod
    def hand_strength(hole: Sequence[Card], community: Sequence[Card]) -> int:
        strength = _rough_hand_strength(hole)
        made = best_hand_of(hole, community)
        if made is not None:
            # Made hands dominate once the board is out.
            strength += (int(made.category) - 1) * 6
        return strength

    def _should_raise(self, strength: int, phase: Phase, facing_bet: bool) -> bool:
        base = 0.2 if facing_bet else 0.35
        scaled_strength = min(strength / 45.0, 0.45)
        probability = min(0.85, base + self.PHASE_BONUS.get(phase, 0.0) + scaled_strength)

        # Always attack with premium holdings.
        if strength >= 36:
            return True
        return self.rng.random() < probability

    def _choose_raise_amount(self, window: ActionWindow, facing_bet: bool) -> int:
        min_raise_to = window.min_raise_to
        max_raise_to = window.max_raise_to
        if min_raise_to is None:
            raise ValueError("Raise requested without a minimum amount")
        if max_raise_to is None or max_raise_to <= min_raise_to:
            return min_raise_to

        span = max_raise_to - min_raise_to
        roll = self.rng.random()

        # Facing a bet → weight toward stronger responses, otherwise mix in more probes.
        if facing_bet:
            if roll < 0.2:
                return min_raise_to
            if roll > 0.85:
                return max_raise_to
        else:
            if roll < 0.35:
                return min_raise_to
            if roll > 0.9:
                return max_raise_to

        return min_raise_to + int(span * self.rng.random())
