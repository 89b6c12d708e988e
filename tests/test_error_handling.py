import logging

import pytest

from holdem.models import ActionType, Controller, Phase

from .helpers import act, auto_complete_hand, create_engine


def _fingerprint(engine):
    state = engine.state
    return (
        state.pot,
        state.current_bet,
        state.min_raise,
        state.phase,
        state.acting_index,
        state.last_raiser_index,
        frozenset(state.pending),
        frozenset(state.raise_locked),
        len(state.log),
        tuple(
            (player.chips, player.total_bet_this_round, player.total_in_pot, player.has_folded, player.is_all_in)
            for player in engine.players
        ),
    )


@pytest.mark.parametrize(
    "action, amount, code",
    [
        (ActionType.CHECK, 0, "CHECK_FACING_BET"),
        (ActionType.RAISE, 5_000, "EXCEEDS_STACK"),
        (ActionType.RAISE, 30, "BELOW_MIN_RAISE"),
        (ActionType.RAISE, 20, "BELOW_CURRENT_BET"),
        (ActionType.CALL, -5, "NEGATIVE_AMOUNT"),
        (ActionType.RAISE, 2.5, "BAD_AMOUNT"),
        ("dance", 0, "UNKNOWN_ACTION"),
    ],
)
def test_rejected_actions_leave_state_untouched(action, amount, code):
    engine = create_engine(players=3)
    engine.start_hand()
    before = _fingerprint(engine)

    assert not engine.process_action(action, amount)

    assert engine.last_rejection is not None
    assert engine.last_rejection.code == code
    assert _fingerprint(engine) == before


def test_call_with_nothing_to_call_plays_as_check():
    engine = create_engine(players=3)
    engine.start_hand()
    act(engine, ActionType.CALL)
    act(engine, ActionType.CALL)
    chips_before = [player.chips for player in engine.players]

    assert engine.process_action(ActionType.CALL)

    assert engine.last_rejection is None
    assert [player.chips for player in engine.players] == chips_before
    assert engine.state.pot == 60
    assert engine.state.pending == set()
    assert engine.log[-1] == "Player2 checks"

    result = engine.advance()
    assert result.phase_changed
    assert result.phase == Phase.FLOP


def test_acting_twice_without_advance_is_rejected():
    engine = create_engine(players=3)
    engine.start_hand()

    assert engine.process_action(ActionType.CALL)
    before = _fingerprint(engine)

    assert not engine.process_action(ActionType.CALL)
    assert engine.last_rejection.code == "OUT_OF_TURN"
    assert _fingerprint(engine) == before


def test_folded_player_cannot_act_again():
    engine = create_engine(players=3)
    engine.start_hand()

    assert engine.process_action(ActionType.FOLD)
    assert not engine.process_action(ActionType.CHECK)
    assert engine.last_rejection.code == "INACTIVE"


def test_actions_without_hand_are_rejected():
    engine = create_engine(players=3)

    assert not engine.process_action(ActionType.CHECK)
    assert engine.last_rejection.code == "NO_HAND"

    engine.start_hand()
    auto_complete_hand(engine)
    assert not engine.process_action(ActionType.FOLD)
    assert engine.last_rejection.code == "NO_HAND"


def test_accepted_action_clears_last_rejection():
    engine = create_engine(players=3)
    engine.start_hand()

    assert not engine.process_action(ActionType.CHECK)
    assert engine.process_action("CALL")
    assert engine.last_rejection is None


def test_amount_is_ignored_for_fold_check_and_call():
    engine = create_engine(players=3)
    engine.start_hand()

    assert engine.process_action(ActionType.CALL, 999)
    assert engine.players[0].total_bet_this_round == 20
    engine.advance()
    assert engine.process_action(ActionType.FOLD, None)
    assert engine.players[1].has_folded


def test_early_advance_keeps_current_actor():
    engine = create_engine(players=3)
    engine.start_hand()

    result = engine.advance()

    assert result.acting_index == 0
    assert not result.phase_changed
    assert engine.state.phase == Phase.PREFLOP


def test_advance_without_hand_is_a_noop(caplog):
    engine = create_engine(players=3)

    with caplog.at_level(logging.WARNING, logger="holdem.engine"):
        result = engine.advance()

    assert not result.is_hand_complete
    assert not result.phase_changed
    assert "no hand in progress" in caplog.text


def test_rejections_are_logged(caplog):
    engine = create_engine(players=3)
    engine.start_hand()

    with caplog.at_level(logging.INFO, logger="holdem.engine"):
        engine.process_action(ActionType.CHECK)

    assert "CHECK_FACING_BET" in caplog.text


def test_legal_actions_requires_running_hand():
    engine = create_engine(players=3)
    with pytest.raises(RuntimeError, match="Hand not in progress"):
        engine.legal_actions()

    engine.start_hand()
    engine.process_action(ActionType.FOLD)
    with pytest.raises(RuntimeError, match="Player not active"):
        engine.legal_actions()


def test_start_hand_twice_raises():
    engine = create_engine(players=3)
    engine.start_hand()

    with pytest.raises(RuntimeError, match="already in progress"):
        engine.start_hand()


def test_start_hand_needs_two_funded_players():
    engine = create_engine(players=1)
    assert not engine.start_hand()
    assert not engine.state.in_progress

    engine = create_engine(players=3, stacks=[0, 500, 0])
    assert not engine.start_hand()
    assert [player.name for player in engine.players] == ["Player1"]
    assert engine.is_match_over()


def test_add_player_validation():
    engine = create_engine(players=2)

    with pytest.raises(ValueError, match="NAME_REQUIRED"):
        engine.add_player("   ")

    same = engine.add_player("player0", Controller.HUMAN)
    assert same is engine.players[0]
    assert len(engine.players) == 2

    engine.start_hand()
    with pytest.raises(RuntimeError, match="during a hand"):
        engine.add_player("Latecomer")
