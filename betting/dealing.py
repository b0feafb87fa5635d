from __future__ import annotations

import copy
import time
import uuid
from typing import Iterable, List, Optional, Sequence

from .cards import Card, build_deck, deal, draw
from .engine import contenders
from .errors import NotEnoughPlayers
from .models import VISIBLE_COMMUNITY, GameState, Phase, Player, TableConfig

COMMUNITY_CARD_COUNT = 5
HOLE_CARD_COUNT = 2

# Hand setup and teardown around the betting engine. Each step takes a state
# and returns a new one, so a caller can persist between steps if it wants to.


def new_hand(
    players: Iterable[Player],
    small_blind: int,
    big_blind: int,
    hand_id: Optional[str] = None,
) -> GameState:
    seated = sorted((copy.deepcopy(player) for player in players), key=lambda p: p.seat)
    for player in seated:
        player.reset_for_hand()
    if hand_id is None:
        hand_id = f"H-{time.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6]}"
    return GameState(
        hand_id=hand_id,
        small_blind=small_blind,
        big_blind=big_blind,
        players=seated,
        phase=Phase.BLINDS,
    )


def post_blinds(state: GameState) -> GameState:
    """Charge the two lowest active seats and open pre-flop betting.

    Blinds are clamped to the payer's stack. The small blind acts first
    pre-flop, as in heads-up play.
    """
    if state.phase != Phase.BLINDS:
        raise ValueError(f"Blinds are posted in the blinds phase, not {state.phase.value}")
    new_state = copy.deepcopy(state)
    active = contenders(new_state)
    if len(active) < 2:
        raise NotEnoughPlayers("Not enough active seats for blinds")

    sb_player, bb_player = active[0], active[1]
    for player, blind in ((sb_player, new_state.small_blind), (bb_player, new_state.big_blind)):
        posted = min(player.stack, blind)
        player.commit(posted)
        new_state.pot += posted

    new_state.current_bet = max(sb_player.current_bet, bb_player.current_bet)
    new_state.current_player_seat = sb_player.seat
    new_state.acted_this_phase = set()
    new_state.phase = Phase.PRE_FLOP
    return new_state


def deal_hole_cards(state: GameState, seed: Optional[int] = None) -> GameState:
    new_state = copy.deepcopy(state)
    receivers = contenders(new_state)
    hands, remaining = deal(build_deck(seed), len(receivers), HOLE_CARD_COUNT)
    for player, hand in zip(receivers, hands):
        player.hand = hand
    new_state.deck = remaining
    return new_state


def deal_community_cards(state: GameState) -> GameState:
    """Draw all five board cards now; the phase decides how many are visible."""
    new_state = copy.deepcopy(state)
    cards, remaining = draw(new_state.deck, COMMUNITY_CARD_COUNT)
    new_state.community_cards = cards
    new_state.deck = remaining
    return new_state


def visible_community_cards(state: GameState) -> List[Card]:
    return list(state.community_cards[: VISIBLE_COMMUNITY[state.phase]])


def start_hand(
    players: Iterable[Player],
    config: TableConfig,
    hand_id: Optional[str] = None,
    seed: Optional[int] = None,
) -> GameState:
    seated = list(players)
    ready = [player for player in seated if player.is_active and player.stack > 0]
    if len(ready) < 2:
        raise NotEnoughPlayers("Not enough active players to start a hand")

    state = new_hand(seated, config.sb, config.bb, hand_id=hand_id)
    # Busted seats sit the hand out.
    for player in state.players:
        if player.stack == 0:
            player.is_active = False
    state = post_blinds(state)
    state = deal_hole_cards(state, seed=seed)
    return deal_community_cards(state)


def award_pot(state: GameState, winner_seats: Sequence[int]) -> GameState:
    """Pay the pot to ``winner_seats`` and close out the hand's bets.

    A split pot gives odd chips to the lowest seats first.
    """
    winners = sorted(set(winner_seats))
    if not winners:
        raise ValueError("At least one winner required")
    new_state = copy.deepcopy(state)
    for seat in winners:
        player = new_state.player(seat)
        if player is None or not player.in_hand:
            raise ValueError(f"Seat {seat} cannot win this hand")

    share, remainder = divmod(new_state.pot, len(winners))
    for idx, seat in enumerate(winners):
        player = new_state.player(seat)
        assert player is not None
        player.stack += share + (1 if idx < remainder else 0)

    new_state.pot = 0
    new_state.current_bet = 0
    new_state.current_player_seat = None
    new_state.acted_this_phase = set()
    for player in new_state.players:
        player.current_bet = 0
        player.total_bet = 0
        player.hand = []
    return new_state
