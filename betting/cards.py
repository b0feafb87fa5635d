from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import InsufficientCards

SUITS = ("♠", "♥", "♦", "♣")
RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")
RED_SUITS = ("♥", "♦")

RANK_VALUE = {rank: int(rank) for rank in RANKS if rank.isdigit()}
RANK_VALUE.update({"J": 11, "Q": 12, "K": 13, "A": 14})


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def value(self) -> int:
        return RANK_VALUE[self.rank]

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    @property
    def color(self) -> str:
        return "red" if self.suit in RED_SUITS else "black"


def new_deck() -> List[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def shuffle(deck: Sequence[Card], seed: Optional[int] = None) -> List[Card]:
    """Return a shuffled copy of ``deck``; every permutation is equally likely."""
    shuffled = list(deck)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def build_deck(seed: Optional[int] = None) -> List[Card]:
    return shuffle(new_deck(), seed)


def deal(
    deck: Sequence[Card], num_players: int, cards_per_player: int = 2
) -> Tuple[List[List[Card]], List[Card]]:
    """Deal round-robin from the front of ``deck``.

    One card goes to each player before anyone receives a second. Returns the
    per-player hands and the undealt remainder; ``deck`` itself is untouched.
    """
    needed = num_players * cards_per_player
    if needed > len(deck):
        raise InsufficientCards(f"Need {needed} cards, deck has {len(deck)}")

    hands: List[List[Card]] = [[] for _ in range(num_players)]
    idx = 0
    for _ in range(cards_per_player):
        for hand in hands:
            hand.append(deck[idx])
            idx += 1
    return hands, list(deck[idx:])


def draw(deck: Sequence[Card], count: int) -> Tuple[List[Card], List[Card]]:
    if count > len(deck):
        raise InsufficientCards(f"Need {count} cards, deck has {len(deck)}")
    return list(deck[:count]), list(deck[count:])


def cards_to_labels(cards: Sequence[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if len(label) < 2:
        raise ValueError(f"Invalid card label: {label}")
    return Card(label[:-1], label[-1])


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
