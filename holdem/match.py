"""Synchronous match loop around a :class:`BettingEngine`.

The driver owns pacing: it asks a decision provider for the acting player's
move, submits it, then advances the engine. Human seats are fed through a
:class:`HumanActionQueue`; when it is empty the driver simply returns and the
view calls back in once the user has chosen.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Mapping, Optional, Union

from .game import BettingEngine
from .models import ActionType, AdvanceResult, Controller, Decision, Player, Snapshot

LOGGER = logging.getLogger("holdem.match")

DecisionProvider = Callable[[Snapshot, int], Optional[Decision]]

_FALLBACK_ORDER = (ActionType.CHECK, ActionType.CALL, ActionType.FOLD)


class HumanActionQueue:
    """Decision provider backed by actions the view has queued up."""

    def __init__(self) -> None:
        self._queue: Deque[Decision] = deque()

    def submit(self, action: Union[ActionType, str], amount: int = 0) -> Decision:
        decision = Decision(ActionType(action), amount)
        self._queue.append(decision)
        return decision

    def clear(self) -> None:
        self._queue.clear()

    def __len__(self) -> int:
        return len(self._queue)

    def __call__(self, snapshot: Snapshot, seat: int) -> Optional[Decision]:
        if not self._queue:
            return None
        return self._queue.popleft()


class MatchDriver:
    def __init__(self, engine: BettingEngine, providers: Mapping[Controller, DecisionProvider]) -> None:
        self.engine = engine
        self.providers: Dict[Controller, DecisionProvider] = dict(providers)
        self.hands_played = 0
        self.waiting_for: Optional[Player] = None

    @property
    def waiting_for_human(self) -> bool:
        return self.waiting_for is not None

    def start_hand(self) -> bool:
        started = self.engine.start_hand()
        if started:
            self.hands_played += 1
        else:
            LOGGER.info("Match over after %d hand(s)", self.hands_played)
        return started

    def step(self) -> Optional[AdvanceResult]:
        """Play one action (or one advance when nobody can act).

        Returns None while a human decision is outstanding or when no hand is
        running.
        """
        engine = self.engine
        if not engine.state.in_progress:
            return None

        seat = engine.state.acting_index
        if seat is None:
            return engine.advance()

        player = engine.players[seat]
        provider = self.providers.get(player.controller)
        if provider is None:
            raise RuntimeError(f"No decision provider for {player.controller.value} players")

        decision = provider(engine.snapshot(viewer=seat), seat)
        if decision is None:
            self.waiting_for = player
            return None
        self.waiting_for = None

        decision = self._normalize(decision, player)
        if not engine.process_action(decision.action, decision.amount):
            if player.controller == Controller.HUMAN:
                # Leave the seat waiting; the view reads engine.last_rejection.
                self.waiting_for = player
                return None
            self._fallback(player)
        return engine.advance()

    def play_hand(self) -> Optional[AdvanceResult]:
        result: Optional[AdvanceResult] = None
        while self.engine.state.in_progress:
            result = self.step()
            if result is None:
                break
        return result

    def run(self, max_hands: Optional[int] = None) -> int:
        """Play hands until the match ends, a human is awaited or the limit is hit."""
        played = 0
        while max_hands is None or played < max_hands:
            if self.engine.state.in_progress:
                self.play_hand()
            elif not self.start_hand():
                break
            else:
                played += 1
                self.play_hand()
            if self.waiting_for_human:
                break
        return played

    def standings(self) -> List[Player]:
        return sorted(self.engine.players, key=lambda player: player.chips, reverse=True)

    def _normalize(self, decision: Decision, player: Player) -> Decision:
        state = self.engine.state
        to_call = state.current_bet - player.total_bet_this_round
        if decision.action == ActionType.CALL and to_call <= 0:
            return Decision(ActionType.CHECK)
        if decision.action in (ActionType.BET, ActionType.RAISE) and player.controller == Controller.BOT:
            reachable = player.total_bet_this_round + player.chips
            amount = max(decision.amount, state.current_bet + state.min_raise)
            return Decision(decision.action, min(amount, reachable))
        return decision

    def _fallback(self, player: Player) -> None:
        rejection = self.engine.last_rejection
        LOGGER.warning(
            "%s made an illegal move (%s), falling back",
            player.name,
            rejection.msg if rejection else "unknown",
        )
        for action in _FALLBACK_ORDER:
            if self.engine.process_action(action):
                return
        raise RuntimeError(f"No legal fallback action for {player.name}")
