"""Table session core shared by the HTTP host, the control channel and tests."""

from .cards import Card, Deck, RANKS, SUITS, new_shuffled_deck, parse_label
from .errors import DeckExhausted, PlayerAlreadySeated, PlayerNotFound, SessionNotFound, TableError, TableFull
from .models import (
    AdvancePhase,
    JoinPlayer,
    KickPlayer,
    Phase,
    PlayerSnapshot,
    SeatView,
    TableConfig,
    TableSnapshot,
)
from .phases import next_action_label
from .store import TableStore

__all__ = [
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "new_shuffled_deck",
    "parse_label",
    "DeckExhausted",
    "PlayerAlreadySeated",
    "PlayerNotFound",
    "SessionNotFound",
    "TableError",
    "TableFull",
    "AdvancePhase",
    "JoinPlayer",
    "KickPlayer",
    "Phase",
    "PlayerSnapshot",
    "SeatView",
    "TableConfig",
    "TableSnapshot",
    "next_action_label",
    "TableStore",
]
