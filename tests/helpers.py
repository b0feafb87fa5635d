from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from betting import dealing, engine
from betting.models import ActionType, ApplyOutcome, GameState, Player, TableConfig


def make_players(stacks: Sequence[int] = (1_000, 1_000)) -> List[Player]:
    """Seat one player per stack, starting from seat 1."""
    return [Player(seat=idx, stack=stack, name=f"Player{idx}") for idx, stack in enumerate(stacks, start=1)]


def start_state(
    stacks: Sequence[int] = (1_000, 1_000),
    *,
    sb: int = 10,
    bb: int = 20,
    seed: int = 42,
) -> GameState:
    config = TableConfig(seats=max(len(stacks), 2), starting_stack=max(stacks), sb=sb, bb=bb)
    return dealing.start_hand(make_players(stacks), config, hand_id="H-TEST", seed=seed)


def perform_actions(
    state: GameState, actions: Iterable[Tuple[int, ActionType, Optional[int]]]
) -> Tuple[GameState, List[ApplyOutcome]]:
    """Apply a scripted sequence of actions (seat, action, amount)."""
    outcomes = []
    for seat, action, amount in actions:
        state, outcome = engine.apply(state, seat, action, amount)
        outcomes.append(outcome)
    return state, outcomes


def auto_complete_hand(state: GameState) -> Tuple[GameState, ApplyOutcome]:
    """Check or call until the hand ends, folding only when nothing else is legal."""
    outcome = ApplyOutcome()
    while not outcome.hand_ended:
        seat = state.current_player_seat
        assert seat is not None
        legal = engine.legal_actions(state, seat).legal
        if ActionType.CHECK in legal:
            state, outcome = engine.apply(state, seat, ActionType.CHECK)
        elif ActionType.CALL in legal:
            state, outcome = engine.apply(state, seat, ActionType.CALL)
        else:
            state, outcome = engine.apply(state, seat, ActionType.FOLD)
    return state, outcome
