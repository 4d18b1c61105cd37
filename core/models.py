from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .cards import Card, Deck, cards_to_labels


class Phase(str, Enum):
    WAITING = "Waiting"
    PRE_FLOP = "Pre-Flop"
    FLOP = "Flop"
    TURN = "Turn"
    RIVER = "River"
    SHUFFLE = "Shuffle"


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TableConfig:
    max_players: int = 8
    name: Optional[str] = None


@dataclass
class Player:
    player_id: str
    alias: Optional[str] = None
    pocket: List[Card] = field(default_factory=list)
    joined_at: datetime = field(default_factory=utc_now)

    def reset_for_hand(self) -> None:
        self.pocket.clear()


@dataclass
class TableSession:
    # Live, mutable state. Only the store touches instances of this class.
    session_id: str
    config: TableConfig
    players: List[Player] = field(default_factory=list)
    phase: Phase = Phase.WAITING
    hand_id: Optional[str] = None
    hand_number: int = 0
    community: List[Card] = field(default_factory=list)
    deck: Optional[Deck] = None
    dealer_index: Optional[int] = None
    # Set when the dealer was designated outside a deal; the next deal keeps
    # that dealer instead of rotating.
    dealer_elect: bool = False
    version: int = 0
    updated_at: datetime = field(default_factory=utc_now)

    def find_index(self, player_id: str) -> Optional[int]:
        for idx, player in enumerate(self.players):
            if player.player_id == player_id:
                return idx
        return None

    def role_seats(self) -> Tuple[Optional[int], Optional[int], Optional[int]]:
        """Dealer, small blind and big blind seats, derived from the dealer index."""
        count = len(self.players)
        if count == 0 or self.dealer_index is None:
            return None, None, None
        dealer = self.dealer_index % count
        small_blind = (dealer + 1) % count
        big_blind = (small_blind + 1) % count
        return dealer, small_blind, big_blind


# Snapshots -----------------------------------------------------------------


@dataclass(frozen=True)
class SeatView:
    seat: int
    player_id: str
    alias: Optional[str]
    pocket: Tuple[str, ...]
    is_dealer: bool
    is_small_blind: bool
    is_big_blind: bool
    joined_at: datetime

    def to_payload(self, reveal_pocket: bool = True) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "seat": self.seat,
            "player_id": self.player_id,
            "alias": self.alias,
            "is_dealer": self.is_dealer,
            "is_small_blind": self.is_small_blind,
            "is_big_blind": self.is_big_blind,
            "joined_at": self.joined_at.isoformat(),
            "pocket_count": len(self.pocket),
        }
        if reveal_pocket:
            payload["pocket"] = list(self.pocket)
        return payload


@dataclass(frozen=True)
class TableSnapshot:
    session_id: str
    name: Optional[str]
    phase: Phase
    hand_id: Optional[str]
    hand_number: int
    community: Tuple[str, ...]
    players: Tuple[SeatView, ...]
    max_players: int
    dealer_seat: Optional[int]
    small_blind_seat: Optional[int]
    big_blind_seat: Optional[int]
    cards_remaining: int
    version: int
    updated_at: datetime

    @classmethod
    def capture(cls, session: TableSession) -> "TableSnapshot":
        dealer, small_blind, big_blind = session.role_seats()
        players = tuple(
            SeatView(
                seat=idx,
                player_id=player.player_id,
                alias=player.alias,
                pocket=tuple(cards_to_labels(player.pocket)),
                is_dealer=idx == dealer,
                is_small_blind=idx == small_blind,
                is_big_blind=idx == big_blind,
                joined_at=player.joined_at,
            )
            for idx, player in enumerate(session.players)
        )
        return cls(
            session_id=session.session_id,
            name=session.config.name,
            phase=session.phase,
            hand_id=session.hand_id,
            hand_number=session.hand_number,
            community=tuple(cards_to_labels(session.community)),
            players=players,
            max_players=session.config.max_players,
            dealer_seat=dealer,
            small_blind_seat=small_blind,
            big_blind_seat=big_blind,
            cards_remaining=len(session.deck) if session.deck is not None else 0,
            version=session.version,
            updated_at=session.updated_at,
        )

    def seat_of(self, player_id: str) -> Optional[SeatView]:
        for seat in self.players:
            if seat.player_id == player_id:
                return seat
        return None

    def to_payload(self, reveal_pockets: bool = False) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "name": self.name,
            "phase": self.phase.value,
            "hand_id": self.hand_id,
            "hand_number": self.hand_number,
            "community": list(self.community),
            "players": [seat.to_payload(reveal_pocket=reveal_pockets) for seat in self.players],
            "max_players": self.max_players,
            "dealer_seat": self.dealer_seat,
            "small_blind_seat": self.small_blind_seat,
            "big_blind_seat": self.big_blind_seat,
            "version": self.version,
            "updated_at": self.updated_at.isoformat(),
        }

    def summary_payload(self) -> Dict[str, object]:
        return {
            "session_id": self.session_id,
            "name": self.name,
            "phase": self.phase.value,
            "hand_number": self.hand_number,
            "player_count": len(self.players),
            "max_players": self.max_players,
            "version": self.version,
        }


@dataclass(frozen=True)
class PlayerSnapshot:
    """A table snapshot narrowed to one seated player."""

    table: TableSnapshot
    seat: SeatView

    @property
    def player_id(self) -> str:
        return self.seat.player_id

    @property
    def version(self) -> int:
        return self.table.version

    def to_payload(self) -> Dict[str, object]:
        return {
            "player": self.seat.to_payload(reveal_pocket=True),
            "table": {
                "session_id": self.table.session_id,
                "name": self.table.name,
                "phase": self.table.phase.value,
                "hand_id": self.table.hand_id,
                "hand_number": self.table.hand_number,
                "is_dealer": self.seat.is_dealer,
                "is_small_blind": self.seat.is_small_blind,
                "is_big_blind": self.seat.is_big_blind,
                "version": self.table.version,
                "updated_at": self.table.updated_at.isoformat(),
            },
        }


# Operations ------------------------------------------------------------------


@dataclass(frozen=True)
class AdvancePhase:
    seed: Optional[int] = None


@dataclass(frozen=True)
class JoinPlayer:
    alias: Optional[str] = None
    player_id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class KickPlayer:
    player_id: str


Operation = Union[AdvancePhase, JoinPlayer, KickPlayer]
