from betting import engine
from betting.models import ActionRequest, ActionType, Phase

from .helpers import auto_complete_hand, perform_actions, start_state


def test_small_blind_call_and_big_blind_check_open_the_flop():
    state = start_state((1_000, 1_000), sb=10, bb=20)
    assert state.current_player_seat == 1

    state, outcome = engine.apply(state, 1, ActionType.CALL)
    sb_player = state.player(1)
    assert sb_player.stack == 980
    assert sb_player.current_bet == 20
    assert not outcome.phase_advanced
    assert state.current_player_seat == 2

    state, outcome = engine.apply(state, 2, ActionType.CHECK)
    assert outcome.phase_advanced
    assert not outcome.hand_ended
    assert state.phase == Phase.FLOP
    assert state.pot == 40
    assert state.current_bet == 0
    assert state.acted_this_phase == set()
    assert all(player.current_bet == 0 for player in state.players)
    assert state.current_player_seat == 1


def test_raise_reopens_betting_for_players_who_already_called():
    state = start_state((1_000, 1_000, 1_000))
    state, _ = perform_actions(state, [(1, ActionType.CALL, None), (2, ActionType.CHECK, None)])
    assert state.current_player_seat == 3

    state, outcome = engine.apply(state, 3, ActionType.RAISE, 60)
    assert state.acted_this_phase == {3}
    assert state.current_bet == 60
    assert not outcome.phase_advanced
    assert not engine.is_phase_complete(state)
    # Wraps from the highest seat back to seat 1, who had already called.
    assert state.current_player_seat == 1

    state, _ = engine.apply(state, 1, ActionType.CALL)
    assert state.phase == Phase.PRE_FLOP
    assert state.current_player_seat == 2

    state, outcome = engine.apply(state, 2, ActionType.CALL)
    assert outcome.phase_advanced
    assert state.phase == Phase.FLOP
    assert state.pot == 180


def test_second_fold_ends_hand_for_last_player():
    state = start_state((1_000, 1_000, 1_000))
    state, first = engine.apply(state, 1, ActionType.FOLD)
    assert not first.hand_ended
    assert state.current_player_seat == 2

    state, outcome = engine.apply(state, 2, ActionType.FOLD)
    assert outcome.hand_ended
    assert outcome.winner_seat == 3
    assert not outcome.phase_advanced
    assert state.phase == Phase.PRE_FLOP
    assert state.current_player_seat is None


def test_fold_ends_hand_on_later_street():
    state = start_state((1_000, 1_000))
    state, _ = perform_actions(state, [(1, ActionType.CALL, None), (2, ActionType.CHECK, None)])
    assert state.phase == Phase.FLOP

    state, outcome = engine.apply(state, 1, ActionType.RAISE, 20)
    state, outcome = engine.apply(state, 2, ActionType.FOLD)
    assert outcome.hand_ended
    assert outcome.winner_seat == 1
    assert state.phase == Phase.FLOP


def test_raise_leaves_only_raiser_in_acted_set():
    state = start_state((1_000, 1_000))
    state, _ = engine.apply(state, 1, ActionType.RAISE, 40)
    assert state.acted_this_phase == {1}
    assert state.player(1).stack == 960
    assert state.player(1).total_bet == 40
    assert state.pot == 60


def test_phases_advance_in_order_to_showdown():
    state = start_state((1_000, 1_000))
    seen = [state.phase]
    while state.current_player_seat is not None:
        seat = state.current_player_seat
        legal = engine.legal_actions(state, seat).legal
        action = ActionType.CHECK if ActionType.CHECK in legal else ActionType.CALL
        state, outcome = engine.apply(state, seat, action)
        if outcome.phase_advanced:
            seen.append(state.phase)

    assert seen == [Phase.PRE_FLOP, Phase.FLOP, Phase.TURN, Phase.RIVER, Phase.SHOWDOWN]
    assert outcome.hand_ended
    assert outcome.winner_seat is None
    assert outcome.showdown_seats == [1, 2]


def test_showdown_lists_only_remaining_contenders():
    state = start_state((1_000, 1_000, 1_000))
    state, _ = engine.apply(state, 1, ActionType.FOLD)
    state, outcome = auto_complete_hand(state)
    assert outcome.hand_ended
    assert state.phase == Phase.SHOWDOWN
    assert outcome.showdown_seats == [2, 3]


def test_new_phase_starts_with_lowest_remaining_seat():
    state = start_state((1_000, 1_000, 1_000))
    state, _ = perform_actions(
        state,
        [
            (1, ActionType.FOLD, None),
            (2, ActionType.CHECK, None),
            (3, ActionType.CALL, None),
        ],
    )
    assert state.phase == Phase.FLOP
    assert state.current_player_seat == 2

    state, _ = engine.apply(state, 2, ActionType.CHECK)
    assert state.current_player_seat == 3
    state, outcome = engine.apply(state, 3, ActionType.CHECK)
    assert outcome.phase_advanced
    assert state.phase == Phase.TURN

    state, _ = engine.apply(state, 2, ActionType.CHECK)
    state, _ = engine.apply(state, 3, ActionType.RAISE, 20)
    # Seat 1 folded, so the turn wraps straight back to seat 2.
    assert state.current_player_seat == 2


def test_matching_bets_without_acting_do_not_settle_phase():
    state = start_state((1_000, 1_000))
    state, _ = perform_actions(state, [(1, ActionType.CALL, None), (2, ActionType.CHECK, None)])
    assert state.phase == Phase.FLOP
    assert all(player.current_bet == state.current_bet for player in state.players)
    assert not engine.is_phase_complete(state)


def test_acting_without_matching_bets_does_not_settle_phase():
    state = start_state((1_000, 1_000))
    state.acted_this_phase = {1, 2}
    assert state.player(1).current_bet != state.current_bet
    assert not engine.is_phase_complete(state)


def test_apply_leaves_input_state_untouched():
    state = start_state((1_000, 1_000))
    before = state.to_dict()
    new_state, _ = engine.apply(state, 1, ActionType.RAISE, 60)
    assert state.to_dict() == before
    assert new_state.current_bet == 60


def test_amount_to_call_tracks_gap_to_current_bet():
    state = start_state((1_000, 1_000))
    assert engine.amount_to_call(state, 1) == 10
    assert engine.amount_to_call(state, 2) == 0
    assert engine.amount_to_call(state, 9) == 0

    state, _ = engine.apply(state, 1, ActionType.RAISE, 60)
    assert engine.amount_to_call(state, 1) == 0
    assert engine.amount_to_call(state, 2) == 40


def test_apply_request_matches_apply():
    state = start_state((1_000, 1_000))
    via_request, request_outcome = engine.apply_request(state, ActionRequest(seat=1, action=ActionType.RAISE, amount=60))
    direct, direct_outcome = engine.apply(state, 1, ActionType.RAISE, 60)
    assert via_request.to_dict() == direct.to_dict()
    assert request_outcome == direct_outcome


def test_legal_actions_for_small_blind_preflop():
    state = start_state((1_000, 1_000))
    window = engine.legal_actions(state, 1)
    assert window.legal == [ActionType.FOLD, ActionType.CALL, ActionType.RAISE]
    assert window.call_amount == 10
    assert window.min_raise_to == 40
    assert window.max_raise_to == 1_000


def test_legal_actions_for_big_blind_after_call():
    state = start_state((1_000, 1_000))
    state, _ = engine.apply(state, 1, ActionType.CALL)
    window = engine.legal_actions(state, 2)
    assert window.legal == [ActionType.FOLD, ActionType.CHECK, ActionType.RAISE]
    assert window.call_amount is None


def test_legal_actions_empty_when_not_seat_to_act():
    state = start_state((1_000, 1_000))
    window = engine.legal_actions(state, 2)
    assert window.legal == []
    assert window.min_raise_to is None


def test_short_stack_cannot_raise_or_call():
    state = start_state((1_000, 1_000))
    state.player(1).stack = 5
    window = engine.legal_actions(state, 1)
    assert window.legal == [ActionType.FOLD]


def test_snapshot_hides_opponent_hole_cards_until_showdown():
    state = start_state((1_000, 1_000))
    payload = engine.snapshot_payload(state, 1)
    players = {entry["seat"]: entry for entry in payload["players"]}
    assert len(players[1]["hand"]) == 2
    assert "hand" not in players[2]
    assert payload["community"] == []
    assert payload["legal"] == ["FOLD", "CALL", "RAISE"]

    state, _ = auto_complete_hand(state)
    final = engine.snapshot_payload(state, 1)
    assert len(final["community"]) == 5
    assert all(len(entry["hand"]) == 2 for entry in final["players"])
    assert "legal" not in final
