from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

RANKS = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")
SUITS = "hdcs"
RANK_VALUES = {rank: value for value, rank in enumerate(RANKS, start=2)}
SUIT_SYMBOLS = {"h": "♥", "d": "♦", "c": "♣", "s": "♠"}

_SYMBOL_TO_SUIT = {symbol: suit for suit, symbol in SUIT_SYMBOLS.items()}


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANK_VALUES:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    @property
    def label(self) -> str:
        rank = "T" if self.rank == "10" else self.rank
        return f"{rank}{self.suit}"

    def __str__(self) -> str:
        return f"{self.rank}{SUIT_SYMBOLS[self.suit]}"


def build_deck(rng: Optional[random.Random] = None) -> List[Card]:
    """Return a freshly shuffled 52-card deck.

    ``rng`` only needs a ``shuffle`` method; tests pass stacked sources to
    control the deal.
    """
    if rng is None:
        rng = random.Random()
    deck = [Card(rank, suit) for suit in SUITS for rank in RANKS]
    rng.shuffle(deck)
    return deck


def deal(deck: List[Card], count: int) -> List[Card]:
    if len(deck) < count:
        raise ValueError("Not enough cards left in deck")
    cards = deck[:count]
    del deck[:count]
    return cards


def burn(deck: List[Card]) -> Card:
    return deal(deck, 1)[0]


def format_cards(cards: Iterable[Card]) -> str:
    return " ".join(str(card) for card in cards)


def parse_label(label: str) -> Card:
    # Accepts "Ah", "Th", "10h" and "A♥".
    text = label.strip()
    if len(text) < 2:
        raise ValueError(f"Invalid card label: {label}")
    rank, suit = text[:-1].upper(), text[-1]
    suit = _SYMBOL_TO_SUIT.get(suit, suit.lower())
    if rank == "T":
        rank = "10"
    return Card(rank, suit)


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
