from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from .cards import Card, cards_to_labels, parse_cards


class Phase(str, Enum):
    BLINDS = "blinds"
    PRE_FLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"


PHASE_ORDER = (
    Phase.BLINDS,
    Phase.PRE_FLOP,
    Phase.FLOP,
    Phase.TURN,
    Phase.RIVER,
    Phase.SHOWDOWN,
)

# How many of the pre-dealt community cards each phase reveals.
VISIBLE_COMMUNITY = {
    Phase.BLINDS: 0,
    Phase.PRE_FLOP: 0,
    Phase.FLOP: 3,
    Phase.TURN: 4,
    Phase.RIVER: 5,
    Phase.SHOWDOWN: 5,
}


def next_phase(phase: Phase) -> Phase:
    idx = PHASE_ORDER.index(phase)
    if idx == len(PHASE_ORDER) - 1:
        raise ValueError("Showdown is the last phase")
    return PHASE_ORDER[idx + 1]


class ActionType(str, Enum):
    FOLD = "FOLD"
    CHECK = "CHECK"
    CALL = "CALL"
    RAISE = "RAISE"


@dataclass
class TableConfig:
    seats: int = 3
    starting_stack: int = 1_000
    sb: int = 10
    bb: int = 20
    move_time_ms: int = 15_000

    def __post_init__(self) -> None:
        if not 2 <= self.seats <= 3:
            raise ValueError("Table seats must be 2 or 3")
        if self.sb <= 0 or self.bb < self.sb:
            raise ValueError("Blinds must satisfy 0 < sb <= bb")


@dataclass
class Player:
    seat: int
    stack: int
    name: str = ""
    current_bet: int = 0
    total_bet: int = 0
    is_folded: bool = False
    is_active: bool = True
    hand: List[Card] = field(default_factory=list)

    @property
    def in_hand(self) -> bool:
        return self.is_active and not self.is_folded

    def reset_for_hand(self) -> None:
        self.current_bet = 0
        self.total_bet = 0
        self.is_folded = False
        self.hand = []

    def reset_for_phase(self) -> None:
        self.current_bet = 0

    def commit(self, amount: int) -> None:
        self.stack -= amount
        self.current_bet += amount
        self.total_bet += amount

    def to_dict(self) -> Dict[str, object]:
        return {
            "seat": self.seat,
            "name": self.name,
            "stack": self.stack,
            "current_bet": self.current_bet,
            "total_bet": self.total_bet,
            "is_folded": self.is_folded,
            "is_active": self.is_active,
            "hand": cards_to_labels(self.hand),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Player":
        return cls(
            seat=int(data["seat"]),
            stack=int(data["stack"]),
            name=str(data.get("name", "")),
            current_bet=int(data.get("current_bet", 0)),
            total_bet=int(data.get("total_bet", 0)),
            is_folded=bool(data.get("is_folded", False)),
            is_active=bool(data.get("is_active", True)),
            hand=parse_cards(data.get("hand", [])),
        )


@dataclass
class GameState:
    """Everything the betting engine needs to know about one hand."""

    hand_id: str
    small_blind: int
    big_blind: int
    players: List[Player]
    phase: Phase = Phase.BLINDS
    pot: int = 0
    current_bet: int = 0
    current_player_seat: Optional[int] = None
    acted_this_phase: Set[int] = field(default_factory=set)
    community_cards: List[Card] = field(default_factory=list)
    deck: List[Card] = field(default_factory=list)

    def player(self, seat: int) -> Optional[Player]:
        for player in self.players:
            if player.seat == seat:
                return player
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "hand_id": self.hand_id,
            "phase": self.phase.value,
            "pot": self.pot,
            "current_bet": self.current_bet,
            "current_player_seat": self.current_player_seat,
            "acted_this_phase": sorted(self.acted_this_phase),
            "small_blind": self.small_blind,
            "big_blind": self.big_blind,
            "players": [player.to_dict() for player in self.players],
            "community_cards": cards_to_labels(self.community_cards),
            "deck": cards_to_labels(self.deck),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "GameState":
        current = data.get("current_player_seat")
        return cls(
            hand_id=str(data["hand_id"]),
            phase=Phase(data["phase"]),
            pot=int(data.get("pot", 0)),
            current_bet=int(data.get("current_bet", 0)),
            current_player_seat=int(current) if current is not None else None,
            acted_this_phase={int(seat) for seat in data.get("acted_this_phase", [])},
            small_blind=int(data["small_blind"]),
            big_blind=int(data["big_blind"]),
            players=[Player.from_dict(item) for item in data.get("players", [])],
            community_cards=parse_cards(data.get("community_cards", [])),
            deck=parse_cards(data.get("deck", [])),
        )


@dataclass
class ActionRequest:
    seat: int
    action: ActionType
    amount: Optional[int] = None


@dataclass
class ApplyOutcome:
    phase_advanced: bool = False
    hand_ended: bool = False
    winner_seat: Optional[int] = None
    showdown_seats: List[int] = field(default_factory=list)


@dataclass
class ActionWindow:
    legal: List[ActionType]
    call_amount: Optional[int]
    min_raise_to: Optional[int]
    max_raise_to: Optional[int]
