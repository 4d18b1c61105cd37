from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from core import roster
from core.models import TableConfig, TableSession
from core.store import TableStore


def create_session(*, max_players: int = 4, players: int = 0) -> TableSession:
    """Build a live session directly, for pure state-machine tests."""
    session = TableSession(session_id="S-test", config=TableConfig(max_players=max_players))
    for idx in range(players):
        roster.join(session, alias=f"Player{idx}")
    return session


def create_store(
    *,
    max_players: int = 4,
    players: int = 0,
    name: Optional[str] = None,
) -> Tuple[TableStore, str, List[str]]:
    """Instantiate a store with one session and ``players`` seated players."""
    store = TableStore()
    session_id = store.create_session(max_players, name=name)

    async def seat_all() -> List[str]:
        seated = []
        for idx in range(players):
            player_id, _ = await store.join(session_id, alias=f"Player{idx}")
            seated.append(player_id)
        return seated

    return store, session_id, asyncio.run(seat_all())


def advance_times(store: TableStore, session_id: str, count: int, seed: int = 42):
    async def run():
        snapshot = store.get_snapshot(session_id)
        for step in range(count):
            snapshot = await store.advance(session_id, seed=seed + step)
        return snapshot

    return asyncio.run(run())


def all_visible_cards(snapshot) -> List[str]:
    cards = list(snapshot.community)
    for seat in snapshot.players:
        cards.extend(seat.pocket)
    return cards
