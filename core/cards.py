from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import DeckExhausted

RANKS = "AKQJT98765432"
SUITS = "hdcs"
DECK_SIZE = len(RANKS) * len(SUITS)


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
    def label(self) -> str:
        return f"{self.rank}{self.suit}"


class Deck:
    """Single-use shuffled deck; cards come off the top and never return."""

    def __init__(self, cards: Iterable[Card]) -> None:
        self._cards: List[Card] = list(cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card: object) -> bool:
        return card in self._cards

    def draw(self, count: int) -> List[Card]:
        if count < 0:
            raise ValueError("Cannot draw a negative number of cards")
        if len(self._cards) < count:
            raise DeckExhausted(f"Not enough cards left in deck ({len(self._cards)} < {count})")
        cards = self._cards[:count]
        del self._cards[:count]
        return cards


def build_deck() -> List[Card]:
    return [Card(rank, suit) for rank in RANKS[::-1] for suit in SUITS]


def new_shuffled_deck(seed: Optional[int] = None) -> Deck:
    # random.Random() without a seed pulls from OS entropy.
    rng = random.Random(seed)
    cards = build_deck()
    rng.shuffle(cards)
    return Deck(cards)


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    return Card(label[0], label[1])
