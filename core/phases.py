from __future__ import annotations

import time
import uuid
from typing import Dict, List, Optional

from .cards import cards_to_labels, new_shuffled_deck
from .models import Phase, TableSession

# Phase transitions for one table. Nothing here locks or publishes; the store
# calls advance() on a private working copy and commits only on success.

PHASE_ORDER = [
    Phase.WAITING,
    Phase.PRE_FLOP,
    Phase.FLOP,
    Phase.TURN,
    Phase.RIVER,
    Phase.SHUFFLE,
]

POCKET_CARDS = 2
BOARD_REVEALS = {
    Phase.PRE_FLOP: 3,
    Phase.FLOP: 1,
    Phase.TURN: 1,
}

ACTION_LABELS = {
    Phase.WAITING: "Deal",
    Phase.PRE_FLOP: "Show Flop",
    Phase.FLOP: "Show Turn",
    Phase.TURN: "Show River",
    Phase.RIVER: "Shuffle",
}


def next_phase(phase: Phase) -> Phase:
    idx = PHASE_ORDER.index(phase)
    return PHASE_ORDER[(idx + 1) % len(PHASE_ORDER)]


def next_action_label(phase: Phase) -> str:
    return ACTION_LABELS.get(phase, "Advance Game")


def advance(session: TableSession, seed: Optional[int] = None) -> List[Dict[str, object]]:
    """Move ``session`` one phase forward and return the events it produced."""
    if session.phase == Phase.WAITING:
        events = _start_hand(session, seed)
    elif session.phase in BOARD_REVEALS:
        events = _reveal(session, BOARD_REVEALS[session.phase])
    elif session.phase == Phase.RIVER:
        events = _clear_table(session)
    elif session.phase == Phase.SHUFFLE:
        events = []
    else:
        raise ValueError(f"Unsupported phase {session.phase}")

    session.phase = next_phase(session.phase)
    events.append({"ev": "PHASE", "phase": session.phase.value})
    return events


def _start_hand(session: TableSession, seed: Optional[int]) -> List[Dict[str, object]]:
    events: List[Dict[str, object]] = []
    for player in session.players:
        player.reset_for_hand()
    session.community.clear()

    _rotate_dealer(session)
    deck = new_shuffled_deck(seed)
    session.deck = deck

    # Two passes in seating order, one card per player per pass.
    for _ in range(POCKET_CARDS):
        for player in session.players:
            player.pocket.extend(deck.draw(1))

    session.hand_number += 1
    session.hand_id = f"H-{time.strftime('%Y%m%d')}-{session.hand_number:05d}-{uuid.uuid4().hex[:6]}"

    dealer, small_blind, big_blind = session.role_seats()
    events.append(
        {
            "ev": "START_HAND",
            "hand_id": session.hand_id,
            "hand_number": session.hand_number,
            "dealer_seat": dealer,
            "sb_seat": small_blind,
            "bb_seat": big_blind,
            "dealt": POCKET_CARDS * len(session.players),
        }
    )
    return events


def _rotate_dealer(session: TableSession) -> None:
    count = len(session.players)
    if count == 0:
        session.dealer_index = None
        session.dealer_elect = False
        return
    if session.dealer_index is None:
        session.dealer_index = 0
    elif not session.dealer_elect:
        session.dealer_index = (session.dealer_index + 1) % count
    else:
        session.dealer_index %= count
    session.dealer_elect = False


def _reveal(session: TableSession, count: int) -> List[Dict[str, object]]:
    if session.deck is None:
        raise RuntimeError("No deck in play")
    cards = session.deck.draw(count)
    session.community.extend(cards)
    return [{"ev": "REVEAL", "cards": cards_to_labels(cards)}]


def _clear_table(session: TableSession) -> List[Dict[str, object]]:
    session.community.clear()
    for player in session.players:
        player.reset_for_hand()
    session.deck = None
    return [{"ev": "CLEAR"}]
