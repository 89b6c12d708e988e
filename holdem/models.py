from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .cards import Card
from .evaluator import HandValue


class Phase(str, Enum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"


class ActionType(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    BET = "bet"
    RAISE = "raise"
    ALL_IN = "all_in"


class Controller(str, Enum):
    BOT = "bot"
    HUMAN = "human"


@dataclass
class TableConfig:
    big_blind: int = 20
    starting_stack: int = 1_000
    max_players: int = 6
    log_tail: int = 12

    def __post_init__(self) -> None:
        if self.big_blind <= 0:
            raise ValueError("big_blind must be positive")
        if self.starting_stack < 0:
            raise ValueError("starting_stack cannot be negative")
        if self.max_players < 2:
            raise ValueError("max_players must be at least 2")

    @property
    def small_blind(self) -> int:
        return self.big_blind // 2

    @classmethod
    def for_bankroll(cls, bankroll: int, **overrides: int) -> "TableConfig":
        # Blinds scale with the buy-in but never drop below 20.
        return cls(big_blind=max(20, bankroll // 50), starting_stack=bankroll, **overrides)


@dataclass(eq=False)
class Player:
    name: str
    chips: int
    controller: Controller = Controller.BOT
    hole_cards: List[Card] = field(default_factory=list)
    has_folded: bool = False
    is_all_in: bool = False
    total_bet_this_round: int = 0
    total_in_pot: int = 0

    def __post_init__(self) -> None:
        if self.chips < 0:
            raise ValueError("Player chips cannot be negative")

    @property
    def can_act(self) -> bool:
        return not self.has_folded and not self.is_all_in

    def reset_for_hand(self) -> None:
        self.hole_cards.clear()
        self.has_folded = False
        self.is_all_in = False
        self.total_bet_this_round = 0
        self.total_in_pot = 0

    def reset_for_round(self) -> None:
        self.total_bet_this_round = 0


@dataclass(frozen=True)
class Decision:
    action: ActionType
    amount: int = 0


@dataclass(frozen=True)
class ActionWindow:
    legal: Tuple[ActionType, ...]
    call_amount: Optional[int]
    min_raise_to: Optional[int]
    max_raise_to: Optional[int]


@dataclass(frozen=True)
class SeatView:
    index: int
    name: str
    controller: Controller
    chips: int
    total_bet_this_round: int
    has_folded: bool
    is_all_in: bool
    hole_cards: Tuple[Card, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    hand_number: int
    pot: int
    current_bet: int
    min_raise: int
    phase: Phase
    community_cards: Tuple[Card, ...]
    players: Tuple[SeatView, ...]
    dealer_index: int
    acting_index: Optional[int]
    is_hand_complete: bool
    log_tail: Tuple[str, ...] = ()
    legal: Optional[ActionWindow] = None

    def to_call(self, seat: int) -> int:
        return max(self.current_bet - self.players[seat].total_bet_this_round, 0)


@dataclass(frozen=True)
class Payout:
    player: Player
    amount: int
    hand: Optional[HandValue] = None


@dataclass(frozen=True)
class AdvanceResult:
    is_hand_complete: bool
    phase_changed: bool
    phase: Phase
    acting_index: Optional[int] = None
    winners: Tuple[Payout, ...] = ()

    @property
    def winner(self) -> Optional[Player]:
        return self.winners[0].player if self.winners else None
