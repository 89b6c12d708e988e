from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

from .cards import Card, build_deck, burn, deal, format_cards
from .evaluator import HandValue, best_hand_of, compare
from .models import (
    ActionType,
    ActionWindow,
    AdvanceResult,
    Controller,
    Payout,
    Phase,
    Player,
    SeatView,
    Snapshot,
    TableConfig,
)

LOGGER = logging.getLogger("holdem.engine")

# BettingEngine keeps all match state in memory. No pacing or rendering lives
# here, only poker rules, chip accounting and betting order.

_NEXT_STREET = {
    Phase.PREFLOP: (Phase.FLOP, 3, "Flop"),
    Phase.FLOP: (Phase.TURN, 1, "Turn"),
    Phase.TURN: (Phase.RIVER, 1, "River"),
}


class ActionRejected(Exception):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass
class MatchState:
    # Everything mutable about the match and the hand being played.
    hand_number: int = 0
    pot: int = 0
    community: List[Card] = field(default_factory=list)
    phase: Phase = Phase.PREFLOP
    current_bet: int = 0
    min_raise: int = 0
    dealer_index: int = -1
    big_blind_index: Optional[int] = None
    acting_index: Optional[int] = None
    last_raiser_index: Optional[int] = None
    pending: Set[int] = field(default_factory=set)
    acted: Set[int] = field(default_factory=set)
    raise_locked: Set[int] = field(default_factory=set)
    in_progress: bool = False
    hand_complete: bool = False
    showdown_reached: bool = False
    winners: List[Payout] = field(default_factory=list)
    log: List[str] = field(default_factory=list)


class BettingEngine:
    """No-Limit Texas Hold'em betting engine for a single table."""

    def __init__(
        self,
        config: Optional[TableConfig] = None,
        players: Optional[Sequence[Player]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or TableConfig()
        self.rng = rng if rng is not None else random.Random()
        self.players: List[Player] = list(players or [])
        self.state = MatchState(min_raise=self.config.big_blind)
        self.deck: List[Card] = []
        self.last_rejection: Optional[ActionRejected] = None
        self._button: Optional[Player] = None

    # Seat management -------------------------------------------------

    def add_player(
        self,
        name: str,
        controller: Controller = Controller.BOT,
        chips: Optional[int] = None,
    ) -> Player:
        display = name.strip()
        if not display:
            raise ValueError("NAME_REQUIRED")
        if self.state.in_progress:
            raise RuntimeError("Cannot seat players during a hand")

        for existing in self.players:
            if existing.name.casefold() == display.casefold():
                return existing
        if len(self.players) >= self.config.max_players:
            raise RuntimeError("Table is full")

        stack = self.config.starting_stack if chips is None else chips
        player = Player(name=display, chips=stack, controller=controller)
        self.players.append(player)
        return player

    # Read helpers ----------------------------------------------------

    @property
    def current_player(self) -> Optional[Player]:
        idx = self.state.acting_index
        return self.players[idx] if idx is not None else None

    @property
    def dealer(self) -> Optional[Player]:
        if 0 <= self.state.dealer_index < len(self.players):
            return self.players[self.state.dealer_index]
        return None

    @property
    def is_hand_complete(self) -> bool:
        return self.state.hand_complete

    @property
    def log(self) -> Tuple[str, ...]:
        return tuple(self.state.log)

    def chips_in_play(self) -> int:
        return sum(player.chips for player in self.players) + self.state.pot

    def is_match_over(self) -> bool:
        if self.state.in_progress:
            return False
        return len([player for player in self.players if player.chips > 0]) < 2

    # Hand lifecycle --------------------------------------------------

    def start_hand(self, players: Optional[Sequence[Player]] = None) -> bool:
        if self.state.in_progress:
            raise RuntimeError("Hand already in progress")

        roster = list(players) if players is not None else list(self.players)
        funded = [player for player in roster if player.chips > 0]
        for player in roster:
            if player.chips <= 0:
                LOGGER.info("Removing %s from the table: no chips left", player.name)
        if len(funded) < 2:
            self.players = funded
            LOGGER.info("Cannot start a hand with %d funded player(s)", len(funded))
            return False

        dealer_index = self._next_button(roster, funded)
        self.players = funded
        self._button = funded[dealer_index]

        state = self.state
        state.hand_number += 1
        state.pot = 0
        state.community = []
        state.phase = Phase.PREFLOP
        state.current_bet = 0
        state.min_raise = self.config.big_blind
        state.dealer_index = dealer_index
        state.last_raiser_index = None
        state.pending.clear()
        state.acted.clear()
        state.raise_locked.clear()
        state.in_progress = True
        state.hand_complete = False
        state.showdown_reached = False
        state.winners = []

        for player in funded:
            player.reset_for_hand()
        self.deck = build_deck(self.rng)
        self._record(f"Hand #{state.hand_number} started. Dealer: {self._button.name}")

        self._post_blinds()
        self._deal_hole_cards()

        if len(funded) == 2:
            first_to_act = dealer_index
        else:
            assert state.big_blind_index is not None
            first_to_act = self._seat_after(state.big_blind_index)
        self._open_round(first_to_act)
        return True

    def _next_button(self, roster: List[Player], funded: List[Player]) -> int:
        # Move one seat left of the previous button, skipping busted players.
        previous = self._button
        positions = [idx for idx, player in enumerate(roster) if player is previous]
        if not positions:
            return 0
        start = positions[0]
        for offset in range(1, len(roster) + 1):
            candidate = roster[(start + offset) % len(roster)]
            if candidate.chips > 0:
                return funded.index(candidate)
        return 0

    def _post_blinds(self) -> None:
        state = self.state
        dealer = state.dealer_index
        if len(self.players) == 2:
            sb_idx = dealer
            bb_idx = self._seat_after(dealer)
        else:
            sb_idx = self._seat_after(dealer)
            bb_idx = self._seat_after(sb_idx)

        self._post_blind(sb_idx, self.config.small_blind, "small")
        self._post_blind(bb_idx, self.config.big_blind, "big")

        state.big_blind_index = bb_idx
        state.current_bet = max(self.players[sb_idx].total_bet_this_round, self.players[bb_idx].total_bet_this_round)
        state.min_raise = self.config.big_blind

    def _post_blind(self, idx: int, amount: int, label: str) -> None:
        player = self.players[idx]
        posted = self._commit(player, amount)
        suffix = " (ALL IN)" if player.is_all_in else ""
        self._record(f"{player.name} posts {label} blind: ${posted}{suffix}")

    def _deal_hole_cards(self) -> None:
        # One card at a time, starting left of the button.
        count = len(self.players)
        order = [(self.state.dealer_index + offset) % count for offset in range(1, count + 1)]
        for _ in range(2):
            for idx in order:
                self.players[idx].hole_cards.extend(deal(self.deck, 1))

    def _open_round(self, start: int) -> None:
        state = self.state
        actionable = [idx for idx, player in enumerate(self.players) if player.can_act]
        if len(actionable) >= 2:
            state.pending = set(actionable)
        else:
            # A lone player with chips only acts if they still owe a call.
            state.pending = {
                idx for idx in actionable if self.players[idx].total_bet_this_round < state.current_bet
            }
        state.acting_index = self._next_pending(start)

    def _seat_after(self, idx: int) -> int:
        return (idx + 1) % len(self.players)

    def _next_pending(self, start: int) -> Optional[int]:
        count = len(self.players)
        for offset in range(count):
            idx = (start + offset) % count
            if idx in self.state.pending:
                return idx
        return None

    def _commit(self, player: Player, amount: int) -> int:
        amount = min(amount, player.chips)
        player.chips -= amount
        player.total_bet_this_round += amount
        player.total_in_pot += amount
        self.state.pot += amount
        if player.chips == 0:
            player.is_all_in = True
        return amount

    # Action handling -------------------------------------------------

    def legal_actions(self, index: Optional[int] = None) -> ActionWindow:
        state = self.state
        if not state.in_progress:
            raise RuntimeError("Hand not in progress")
        idx = state.acting_index if index is None else index
        if idx is None:
            raise RuntimeError("Nobody is due to act")
        player = self.players[idx]
        if not player.can_act:
            raise RuntimeError("Player not active")

        to_call = max(state.current_bet - player.total_bet_this_round, 0)
        legal: List[ActionType] = [ActionType.FOLD]
        legal.append(ActionType.CALL if to_call > 0 else ActionType.CHECK)

        reachable = player.total_bet_this_round + player.chips
        can_raise = reachable > state.current_bet and idx not in state.raise_locked
        min_raise_to = None
        max_raise_to = None
        if can_raise:
            max_raise_to = reachable
            min_raise_to = min(state.current_bet + state.min_raise, reachable)
            legal.append(ActionType.BET if state.current_bet == 0 else ActionType.RAISE)
        if can_raise or reachable <= state.current_bet:
            legal.append(ActionType.ALL_IN)

        return ActionWindow(tuple(legal), to_call or None, min_raise_to, max_raise_to)

    def process_action(self, action: Union[ActionType, str], amount: Optional[int] = 0) -> bool:
        """Apply one action for the acting player.

        Returns False and leaves every chip where it was when the action is
        not legal right now; ``last_rejection`` then says why.
        """
        try:
            self._apply_action(action, amount)
        except ActionRejected as exc:
            self.last_rejection = exc
            LOGGER.info("Rejected %s (%s): %s", action, exc.code, exc.msg)
            return False
        self.last_rejection = None
        return True

    def _apply_action(self, action: Union[ActionType, str], amount: Optional[int]) -> None:
        state = self.state
        if not state.in_progress:
            raise ActionRejected("NO_HAND", "No hand in progress")
        idx = state.acting_index
        if idx is None:
            raise ActionRejected("NO_ACTOR", "Nobody is due to act")
        player = self.players[idx]
        if not player.can_act:
            raise ActionRejected("INACTIVE", f"{player.name} cannot act")
        if idx not in state.pending:
            raise ActionRejected("OUT_OF_TURN", f"{player.name} already acted this turn")

        kind = self._coerce_action(action)
        if amount is None:
            amount = 0
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ActionRejected("BAD_AMOUNT", f"Amount must be a whole number of chips, got {amount!r}")
        if amount < 0:
            raise ActionRejected("NEGATIVE_AMOUNT", "Amount cannot be negative")

        to_call = state.current_bet - player.total_bet_this_round

        if kind == ActionType.FOLD:
            player.has_folded = True
            self._mark_acted(idx)
            self._record(f"{player.name} folds")
        elif kind == ActionType.CHECK:
            if to_call > 0:
                raise ActionRejected("CHECK_FACING_BET", "Cannot check when facing a bet")
            self._mark_acted(idx)
            self._record(f"{player.name} checks")
        elif kind == ActionType.CALL:
            if to_call <= 0:
                # Nothing owed: commits no chips and plays as a check.
                self._mark_acted(idx)
                self._record(f"{player.name} checks")
                return
            paid = self._commit(player, to_call)
            self._mark_acted(idx)
            suffix = " (ALL IN)" if player.is_all_in else ""
            self._record(f"{player.name} calls ${paid}{suffix}")
        elif kind in (ActionType.BET, ActionType.RAISE):
            self._raise_to(idx, amount, kind)
        else:
            self._raise_to(idx, player.total_bet_this_round + player.chips, kind)

    @staticmethod
    def _coerce_action(action: Union[ActionType, str]) -> ActionType:
        if isinstance(action, ActionType):
            return action
        try:
            return ActionType(str(action).lower())
        except ValueError:
            raise ActionRejected("UNKNOWN_ACTION", f"Unsupported action {action!r}") from None

    def _mark_acted(self, idx: int) -> None:
        self.state.pending.discard(idx)
        self.state.acted.add(idx)

    def _raise_to(self, idx: int, target: int, kind: ActionType) -> None:
        state = self.state
        player = self.players[idx]
        committed = player.total_bet_this_round
        reachable = committed + player.chips

        if target > reachable:
            raise ActionRejected("EXCEEDS_STACK", f"{player.name} can commit at most ${reachable}")
        all_in = target == reachable
        increase = target - state.current_bet
        if increase <= 0 and not all_in:
            raise ActionRejected("BELOW_CURRENT_BET", "Raise must exceed current bet")
        if increase > 0 and idx in state.raise_locked:
            raise ActionRejected("RAISE_CLOSED", "Betting was not reopened; call or fold")
        full_raise = increase >= state.min_raise
        if increase > 0 and not full_raise and not all_in:
            raise ActionRejected("BELOW_MIN_RAISE", f"Minimum raise is to ${state.current_bet + state.min_raise}")

        opening = state.current_bet == 0
        paid = self._commit(player, target - committed)

        if increase <= 0:
            # All-in for no more than the current bet is just a call.
            self._mark_acted(idx)
            self._record(f"{player.name} calls ${paid} (ALL IN)")
            return

        state.current_bet = target
        others = [other for other, seat in enumerate(self.players) if other != idx and seat.can_act]
        if full_raise:
            state.min_raise = max(state.min_raise, increase)
            state.last_raiser_index = idx
            state.acted = {idx}
            state.raise_locked.clear()
            state.pending = set(others)
        else:
            # Short all-in: everyone owes a response, but whoever already
            # acted on the last full bet may only call or fold.
            for other in others:
                state.pending.add(other)
                if other in state.acted:
                    state.raise_locked.add(other)
            state.acted.add(idx)
        state.pending.discard(idx)

        if kind == ActionType.ALL_IN:
            self._record(f"{player.name} goes ALL IN for ${paid}")
        else:
            verb = f"bets ${target}" if opening else f"raises to ${target}"
            suffix = " (ALL IN)" if all_in else ""
            self._record(f"{player.name} {verb}{suffix}")

    # Turn and phase advancement --------------------------------------

    def advance(self) -> AdvanceResult:
        state = self.state
        if not state.in_progress:
            LOGGER.warning("advance() called with no hand in progress")
            return AdvanceResult(
                is_hand_complete=state.hand_complete,
                phase_changed=False,
                phase=state.phase,
                winners=tuple(state.winners),
            )

        live = [idx for idx, player in enumerate(self.players) if not player.has_folded]
        if len(live) == 1:
            return self._award_uncontested(live[0])

        if state.pending:
            start = state.acting_index
            if start is None:
                start = self._seat_after(state.dealer_index)
            state.acting_index = self._next_pending(start)
            return AdvanceResult(
                is_hand_complete=False,
                phase_changed=False,
                phase=state.phase,
                acting_index=state.acting_index,
            )

        return self._finish_round()

    def _finish_round(self) -> AdvanceResult:
        state = self.state
        while True:
            for player in self.players:
                player.reset_for_round()
            state.current_bet = 0
            state.min_raise = self.config.big_blind
            state.last_raiser_index = None
            state.acted.clear()
            state.raise_locked.clear()

            if state.phase == Phase.RIVER:
                return self._showdown()

            next_phase, count, label = _NEXT_STREET[state.phase]
            state.phase = next_phase
            burn(self.deck)
            cards = deal(self.deck, count)
            state.community.extend(cards)
            self._record(f"{label}: {format_cards(cards)}")

            self._open_round(self._seat_after(state.dealer_index))
            if state.pending:
                return AdvanceResult(
                    is_hand_complete=False,
                    phase_changed=True,
                    phase=state.phase,
                    acting_index=state.acting_index,
                )
            # Fewer than two players can still bet; keep dealing.

    def _award_uncontested(self, idx: int) -> AdvanceResult:
        player = self.players[idx]
        amount = self.state.pot
        player.chips += amount
        self.state.pot = 0
        self._record(f"{player.name} wins ${amount}")
        return self._complete_hand([Payout(player, amount)], phase_changed=False)

    # Showdown ---------------------------------------------------------

    def _showdown(self) -> AdvanceResult:
        state = self.state
        state.phase = Phase.SHOWDOWN
        state.showdown_reached = True
        state.acting_index = None
        self._return_uncalled()

        order = self._evaluation_order()
        hands: Dict[int, HandValue] = {}
        for idx in order:
            player = self.players[idx]
            hand = best_hand_of(player.hole_cards, state.community)
            assert hand is not None
            hands[idx] = hand
            self._record(f"{player.name} shows {format_cards(player.hole_cards)}: {hand}")

        totals: Dict[int, int] = {}
        for amount, contenders in self._build_side_pots():
            ranked = [idx for idx in order if idx in contenders]
            best = hands[ranked[0]]
            for idx in ranked[1:]:
                if compare(hands[idx], best) > 0:
                    best = hands[idx]
            winners = [idx for idx in ranked if compare(hands[idx], best) == 0]
            share, remainder = divmod(amount, len(winners))
            for position, idx in enumerate(winners):
                payout = share + (remainder if position == 0 else 0)
                totals[idx] = totals.get(idx, 0) + payout

        payouts: List[Payout] = []
        for idx in order:
            if idx not in totals:
                continue
            player = self.players[idx]
            player.chips += totals[idx]
            payouts.append(Payout(player, totals[idx], hands[idx]))
            self._record(f"{player.name} wins ${totals[idx]} with {hands[idx]}")
        state.pot = 0
        return self._complete_hand(payouts, phase_changed=True)

    def _evaluation_order(self) -> List[int]:
        count = len(self.players)
        start = self._seat_after(self.state.dealer_index)
        order = [(start + offset) % count for offset in range(count)]
        return [idx for idx in order if not self.players[idx].has_folded]

    def _return_uncalled(self) -> None:
        ranked = sorted(
            ((player.total_in_pot, idx) for idx, player in enumerate(self.players)),
            reverse=True,
        )
        if len(ranked) < 2:
            return
        (top, idx), (second, _) = ranked[0], ranked[1]
        excess = top - second
        if excess <= 0:
            return
        player = self.players[idx]
        player.chips += excess
        player.total_in_pot -= excess
        self.state.pot -= excess
        self._record(f"Uncalled ${excess} returned to {player.name}")

    def _build_side_pots(self) -> List[Tuple[int, List[int]]]:
        remaining: Dict[int, int] = {
            idx: player.total_in_pot for idx, player in enumerate(self.players) if player.total_in_pot > 0
        }

        pots: List[Tuple[int, List[int]]] = []
        carry = 0
        while remaining:
            level = min(remaining.values())
            contributors = list(remaining)
            pot_total = level * len(contributors) + carry
            carry = 0
            for idx in contributors:
                remaining[idx] -= level
                if remaining[idx] == 0:
                    del remaining[idx]

            contenders = [idx for idx in contributors if not self.players[idx].has_folded]
            if not contenders:
                carry = pot_total
            elif pots and pots[-1][1] == contenders:
                pots[-1] = (pots[-1][0] + pot_total, contenders)
            else:
                pots.append((pot_total, contenders))

        if carry and pots:
            pots[-1] = (pots[-1][0] + carry, pots[-1][1])
        return pots

    def _complete_hand(self, payouts: List[Payout], phase_changed: bool) -> AdvanceResult:
        state = self.state
        state.in_progress = False
        state.hand_complete = True
        state.acting_index = None
        state.pending.clear()
        state.winners = payouts
        for player in self.players:
            if player.chips == 0:
                self._record(f"{player.name} is eliminated")
        return AdvanceResult(
            is_hand_complete=True,
            phase_changed=phase_changed,
            phase=state.phase,
            winners=tuple(payouts),
        )

    # Snapshots --------------------------------------------------------

    def snapshot(self, viewer: Optional[int] = None) -> Snapshot:
        state = self.state
        seats = []
        for idx, player in enumerate(self.players):
            revealed = idx == viewer or (state.showdown_reached and not player.has_folded)
            seats.append(
                SeatView(
                    index=idx,
                    name=player.name,
                    controller=player.controller,
                    chips=player.chips,
                    total_bet_this_round=player.total_bet_this_round,
                    has_folded=player.has_folded,
                    is_all_in=player.is_all_in,
                    hole_cards=tuple(player.hole_cards) if revealed else (),
                )
            )

        legal = None
        if viewer is not None and state.in_progress and viewer == state.acting_index and viewer in state.pending:
            legal = self.legal_actions(viewer)

        tail = tuple(state.log[-self.config.log_tail :]) if self.config.log_tail > 0 else ()
        return Snapshot(
            hand_number=state.hand_number,
            pot=state.pot,
            current_bet=state.current_bet,
            min_raise=state.min_raise,
            phase=state.phase,
            community_cards=tuple(state.community),
            players=tuple(seats),
            dealer_index=state.dealer_index,
            acting_index=state.acting_index,
            is_hand_complete=state.hand_complete,
            log_tail=tail,
            legal=legal,
        )

    def _record(self, message: str) -> None:
        self.state.log.append(message)
        LOGGER.debug("[hand %d] %s", self.state.hand_number, message)
