"""Betting-round engine and dealing helpers shared by the table host."""

from .cards import Card, RANKS, SUITS, build_deck, deal, new_deck, shuffle
from .dealing import award_pot, deal_community_cards, deal_hole_cards, post_blinds, start_hand
from .engine import apply, apply_request, is_phase_complete, legal_actions
from .errors import EngineError
from .models import ActionRequest, ActionType, ApplyOutcome, GameState, Phase, Player, TableConfig

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal",
    "new_deck",
    "shuffle",
    "award_pot",
    "deal_community_cards",
    "deal_hole_cards",
    "post_blinds",
    "start_hand",
    "apply",
    "apply_request",
    "is_phase_complete",
    "legal_actions",
    "EngineError",
    "ActionRequest",
    "ActionType",
    "ApplyOutcome",
    "GameState",
    "Phase",
    "Player",
    "TableConfig",
]
