from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Sequence, Tuple

from .cards import Card, RANK_VALUES, parse_cards

__all__ = [
    "HandCategory",
    "HandValue",
    "rank5",
    "best_hand_of",
    "compare",
    "describe_hand",
    "parse_cards",
]


class HandCategory(IntEnum):
    """Hand categories, higher is better."""

    HIGH_CARD = 1
    ONE_PAIR = 2
    TWO_PAIR = 3
    THREE_OF_A_KIND = 4
    STRAIGHT = 5
    FLUSH = 6
    FULL_HOUSE = 7
    FOUR_OF_A_KIND = 8
    STRAIGHT_FLUSH = 9
    ROYAL_FLUSH = 10

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    HandCategory.HIGH_CARD: "High Card",
    HandCategory.ONE_PAIR: "One Pair",
    HandCategory.TWO_PAIR: "Two Pair",
    HandCategory.THREE_OF_A_KIND: "Three of a Kind",
    HandCategory.STRAIGHT: "Straight",
    HandCategory.FLUSH: "Flush",
    HandCategory.FULL_HOUSE: "Full House",
    HandCategory.FOUR_OF_A_KIND: "Four of a Kind",
    HandCategory.STRAIGHT_FLUSH: "Straight Flush",
    HandCategory.ROYAL_FLUSH: "Royal Flush",
}


_VALUE_NAMES = {value: rank for rank, value in RANK_VALUES.items()}
_PLURALS = {
    2: "Twos", 3: "Threes", 4: "Fours", 5: "Fives", 6: "Sixes", 7: "Sevens",
    8: "Eights", 9: "Nines", 10: "Tens", 11: "Jacks", 12: "Queens",
    13: "Kings", 14: "Aces",
}


@dataclass(frozen=True)
class HandValue:
    """Category plus the rank values used to break ties inside it.

    ``cards`` is the five-card hand that produced the value; it is kept for
    display and takes no part in comparisons.
    """

    category: HandCategory
    tiebreak: Tuple[int, ...]
    cards: Tuple[Card, ...] = field(default=(), compare=False)

    @property
    def name(self) -> str:
        return self.category.label

    def __str__(self) -> str:
        return describe_hand(self)


def rank5(cards: Sequence[Card]) -> HandValue:
    """Classify exactly five cards."""
    if len(cards) != 5:
        raise ValueError(f"rank5 needs exactly 5 cards, got {len(cards)}")

    values = sorted((card.value for card in cards), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    straight_high = _straight_high(values)

    counts = Counter(values)
    # Most copies first, then higher rank.
    grouped = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in grouped]
    held = tuple(cards)

    if straight_high and is_flush:
        if straight_high == 14:
            return HandValue(HandCategory.ROYAL_FLUSH, (14,), held)
        return HandValue(HandCategory.STRAIGHT_FLUSH, (straight_high,), held)
    if shape == [4, 1]:
        return HandValue(HandCategory.FOUR_OF_A_KIND, (grouped[0][0], grouped[1][0]), held)
    if shape == [3, 2]:
        return HandValue(HandCategory.FULL_HOUSE, (grouped[0][0], grouped[1][0]), held)
    if is_flush:
        return HandValue(HandCategory.FLUSH, tuple(values), held)
    if straight_high:
        return HandValue(HandCategory.STRAIGHT, (straight_high,), held)
    if shape == [3, 1, 1]:
        return HandValue(HandCategory.THREE_OF_A_KIND, tuple(value for value, _ in grouped), held)
    if shape == [2, 2, 1]:
        return HandValue(HandCategory.TWO_PAIR, tuple(value for value, _ in grouped), held)
    if shape == [2, 1, 1, 1]:
        return HandValue(HandCategory.ONE_PAIR, tuple(value for value, _ in grouped), held)
    return HandValue(HandCategory.HIGH_CARD, tuple(values), held)


def _straight_high(values: Sequence[int]) -> Optional[int]:
    distinct = sorted(set(values), reverse=True)
    if len(distinct) != 5:
        return None
    if distinct[0] - distinct[4] == 4:
        return distinct[0]
    if distinct == [14, 5, 4, 3, 2]:  # wheel, ace plays low
        return 5
    return None


def compare(a: HandValue, b: HandValue) -> int:
    """Return 1 if ``a`` beats ``b``, -1 if it loses and 0 on a tie."""
    if a.category != b.category:
        return 1 if a.category > b.category else -1
    for left, right in zip(a.tiebreak, b.tiebreak):
        if left != right:
            return 1 if left > right else -1
    return 0


def best_hand_of(hole_cards: Sequence[Card], community_cards: Sequence[Card]) -> Optional[HandValue]:
    """Best five-card hand out of hole plus community cards, or None below five cards."""
    cards = list(hole_cards) + list(community_cards)
    if len(cards) < 5:
        return None
    if len(cards) == 5:
        return rank5(cards)

    best: Optional[HandValue] = None
    for combo in itertools.combinations(cards, 5):
        value = rank5(combo)
        if best is None or compare(value, best) > 0:
            best = value
    return best


def describe_hand(value: HandValue) -> str:
    category = value.category
    top = value.tiebreak[0] if value.tiebreak else None
    if category is HandCategory.ROYAL_FLUSH or top is None:
        return category.label
    if category in (HandCategory.STRAIGHT, HandCategory.STRAIGHT_FLUSH):
        return f"{category.label}, {_VALUE_NAMES[top]} high"
    if category in (HandCategory.FLUSH, HandCategory.HIGH_CARD):
        return f"{category.label}, {_VALUE_NAMES[top]} high"
    if category is HandCategory.FULL_HOUSE:
        return f"{category.label}, {_PLURALS[top]} over {_PLURALS[value.tiebreak[1]]}"
    if category is HandCategory.TWO_PAIR:
        return f"{category.label}, {_PLURALS[top]} and {_PLURALS[value.tiebreak[1]]}"
    return f"{category.label}, {_PLURALS[top]}"
