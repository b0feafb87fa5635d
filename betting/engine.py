from __future__ import annotations

import copy
from typing import Dict, List, Optional, Tuple

from .cards import cards_to_labels
from .errors import (
    InactivePlayer,
    InsufficientStack,
    InvalidAction,
    InvalidCheck,
    NotYourTurn,
    RaiseTooSmall,
)
from .models import (
    VISIBLE_COMMUNITY,
    ActionRequest,
    ActionType,
    ActionWindow,
    ApplyOutcome,
    GameState,
    Phase,
    Player,
    next_phase,
)

# The betting engine is a set of functions over an explicit GameState. It keeps
# no state of its own: callers own the snapshot and serialize calls per hand.


def contenders(state: GameState) -> List[Player]:
    """Active, non-folded players in ascending seat order."""
    return sorted((p for p in state.players if p.in_hand), key=lambda p: p.seat)


def next_seat(state: GameState, seat: int) -> Optional[int]:
    seats = [player.seat for player in contenders(state)]
    if not seats:
        return None
    for candidate in seats:
        if candidate > seat:
            return candidate
    return seats[0]


def amount_to_call(state: GameState, seat: int) -> int:
    player = state.player(seat)
    if player is None:
        return 0
    return max(state.current_bet - player.current_bet, 0)


def is_phase_complete(state: GameState) -> bool:
    remaining = contenders(state)
    if len(remaining) <= 1:
        return True
    # Acting alone is not settlement; neither is matching bets without acting.
    all_acted = all(player.seat in state.acted_this_phase for player in remaining)
    all_matched = all(player.current_bet == state.current_bet for player in remaining)
    return all_acted and all_matched


def legal_actions(state: GameState, seat: int) -> ActionWindow:
    player = state.player(seat)
    if player is None or not player.in_hand or state.current_player_seat != seat:
        return ActionWindow(legal=[], call_amount=None, min_raise_to=None, max_raise_to=None)

    legal: List[ActionType] = [ActionType.FOLD]
    owed = amount_to_call(state, seat)
    call_amount = None
    if owed == 0:
        legal.append(ActionType.CHECK)
    elif player.stack >= owed:
        legal.append(ActionType.CALL)
        call_amount = owed

    min_raise_to = None
    max_raise_to = None
    ceiling = player.stack + player.current_bet
    if ceiling >= state.current_bet + state.big_blind:
        legal.append(ActionType.RAISE)
        min_raise_to = state.current_bet + state.big_blind
        max_raise_to = ceiling

    return ActionWindow(
        legal=legal,
        call_amount=call_amount,
        min_raise_to=min_raise_to,
        max_raise_to=max_raise_to,
    )


def apply(
    state: GameState,
    seat: int,
    action: ActionType,
    amount: Optional[int] = None,
) -> Tuple[GameState, ApplyOutcome]:
    """Apply one action for ``seat`` and return the new state plus what changed.

    Validation runs against ``state`` before anything is copied, so a rejected
    action raises an :class:`~betting.errors.EngineError` and leaves the
    caller's snapshot exactly as it was. ``state`` is never mutated.
    """
    _validate(state, seat, action, amount)

    new_state = copy.deepcopy(state)
    player = new_state.player(seat)
    assert player is not None

    if action == ActionType.FOLD:
        player.is_folded = True
    elif action == ActionType.CALL:
        _commit(new_state, player, amount_to_call(new_state, seat))
    elif action == ActionType.RAISE:
        assert amount is not None
        _commit(new_state, player, amount - player.current_bet)
        new_state.current_bet = amount
        # A raise reopens the phase for everyone but the raiser.
        new_state.acted_this_phase = {seat}
    new_state.acted_this_phase.add(seat)

    return new_state, _advance_after_action(new_state, seat)


def apply_request(state: GameState, request: ActionRequest) -> Tuple[GameState, ApplyOutcome]:
    return apply(state, request.seat, request.action, request.amount)


def _validate(state: GameState, seat: int, action: ActionType, amount: Optional[int]) -> None:
    if state.current_player_seat is None or state.current_player_seat != seat:
        raise NotYourTurn(f"Seat {seat} cannot act; waiting on {state.current_player_seat}")

    player = state.player(seat)
    if player is None or not player.in_hand:
        raise InactivePlayer(f"Seat {seat} is not in the hand")

    if action == ActionType.FOLD:
        return
    if action == ActionType.CHECK:
        if amount_to_call(state, seat) > 0:
            raise InvalidCheck("Cannot check when facing a bet")
        return
    if action == ActionType.CALL:
        owed = amount_to_call(state, seat)
        if owed > player.stack:
            raise InsufficientStack(f"Call needs {owed}, stack is {player.stack}")
        return
    if action == ActionType.RAISE:
        if amount is None:
            raise InvalidAction("Raise requires amount")
        if amount <= state.current_bet:
            raise RaiseTooSmall("Raise must exceed current bet")
        additional = amount - player.current_bet
        if additional > player.stack:
            raise InsufficientStack(f"Raise needs {additional}, stack is {player.stack}")
        if amount - state.current_bet < state.big_blind:
            raise RaiseTooSmall(f"Raise increment must be at least {state.big_blind}")
        return
    raise InvalidAction(f"Unsupported action {action}")


def _commit(state: GameState, player: Player, amount: int) -> None:
    player.commit(amount)
    state.pot += amount


def _advance_after_action(state: GameState, seat: int) -> ApplyOutcome:
    remaining = contenders(state)
    if len(remaining) == 1:
        # Last player standing wins whatever the phase; no more cards are shown.
        state.current_player_seat = None
        return ApplyOutcome(hand_ended=True, winner_seat=remaining[0].seat)

    if not is_phase_complete(state):
        state.current_player_seat = next_seat(state, seat)
        return ApplyOutcome()

    _advance_phase(state)
    if state.phase == Phase.SHOWDOWN:
        state.current_player_seat = None
        return ApplyOutcome(
            phase_advanced=True,
            hand_ended=True,
            showdown_seats=[player.seat for player in remaining],
        )
    return ApplyOutcome(phase_advanced=True)


def _advance_phase(state: GameState) -> None:
    state.phase = next_phase(state.phase)
    state.current_bet = 0
    state.acted_this_phase = set()
    for player in state.players:
        player.reset_for_phase()
    remaining = contenders(state)
    state.current_player_seat = remaining[0].seat if remaining else None


# Payload helpers -------------------------------------------------------

def snapshot_payload(state: GameState, viewer_seat: Optional[int] = None) -> Dict[str, object]:
    """Per-seat view of the hand. Other players' hole cards stay hidden until showdown."""
    visible = VISIBLE_COMMUNITY[state.phase]
    reveal_all = state.phase == Phase.SHOWDOWN
    players = []
    for player in sorted(state.players, key=lambda p: p.seat):
        entry: Dict[str, object] = {
            "seat": player.seat,
            "name": player.name,
            "stack": player.stack,
            "current_bet": player.current_bet,
            "total_bet": player.total_bet,
            "is_folded": player.is_folded,
            "is_active": player.is_active,
        }
        if player.seat == viewer_seat or (reveal_all and not player.is_folded):
            entry["hand"] = cards_to_labels(player.hand)
        players.append(entry)

    payload: Dict[str, object] = {
        "hand_id": state.hand_id,
        "phase": state.phase.value,
        "pot": state.pot,
        "current_bet": state.current_bet,
        "small_blind": state.small_blind,
        "big_blind": state.big_blind,
        "next_actor": state.current_player_seat,
        "community": cards_to_labels(state.community_cards[:visible]),
        "players": players,
    }

    if viewer_seat is not None and viewer_seat == state.current_player_seat:
        window = legal_actions(state, viewer_seat)
        payload["legal"] = [action.value for action in window.legal]
        payload["call_amount"] = window.call_amount
        payload["min_raise_to"] = window.min_raise_to
        payload["max_raise_to"] = window.max_raise_to

    return payload


def outcome_payload(outcome: ApplyOutcome) -> Dict[str, object]:
    return {
        "phase_advanced": outcome.phase_advanced,
        "hand_ended": outcome.hand_ended,
        "winner_seat": outcome.winner_seat,
        "showdown_seats": list(outcome.showdown_seats),
    }
