from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import phases, roster
from .cards import DECK_SIZE
from .errors import PlayerNotFound, SessionNotFound, TableError
from .models import (
    AdvancePhase,
    JoinPlayer,
    KickPlayer,
    Operation,
    PlayerSnapshot,
    TableConfig,
    TableSession,
    TableSnapshot,
    new_id,
    utc_now,
)
from .phases import BOARD_REVEALS, POCKET_CARDS

LOGGER = logging.getLogger("dealme.store")

BOARD_SIZE = sum(BOARD_REVEALS.values())


@dataclass
class _SessionSlot:
    live: TableSession
    snapshot: TableSnapshot
    # asyncio.Lock wakes waiters in arrival order.
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class TableStore:
    """Owns every live table session.

    Writers go through :meth:`mutate`, which serializes per session and works
    on a private copy of the state; the copy is committed and published as a
    fresh :class:`TableSnapshot` only when the whole operation succeeds.
    Readers get the last published snapshot without taking any lock, so they
    see either the state before a mutation or the state after it.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, _SessionSlot] = {}

    # Sessions ------------------------------------------------------------

    def create_session(self, max_players: int, name: Optional[str] = None) -> str:
        if max_players < 1:
            raise ValueError("max_players must be at least 1")
        if max_players * POCKET_CARDS + BOARD_SIZE > DECK_SIZE:
            raise ValueError(f"max_players={max_players} cannot be dealt from a {DECK_SIZE}-card deck")

        session_id = new_id()
        name_display = name.strip() if name else None
        live = TableSession(session_id=session_id, config=TableConfig(max_players=max_players, name=name_display or None))
        self._sessions[session_id] = _SessionSlot(live=live, snapshot=TableSnapshot.capture(live))
        LOGGER.info("Session %s created (max_players=%s)", session_id, max_players)
        return session_id

    async def close_session(self, session_id: str) -> None:
        slot = self._slot(session_id)
        async with slot.lock:
            if self._sessions.get(session_id) is slot:
                del self._sessions[session_id]
        LOGGER.info("Session %s closed", session_id)

    def list_sessions(self) -> List[TableSnapshot]:
        return [slot.snapshot for slot in list(self._sessions.values())]

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # Reads -------------------------------------------------------------------

    def get_snapshot(self, session_id: str) -> TableSnapshot:
        return self._slot(session_id).snapshot

    def get_player_snapshot(self, session_id: str, player_id: str) -> PlayerSnapshot:
        snapshot = self.get_snapshot(session_id)
        seat = snapshot.seat_of(player_id)
        if seat is None:
            raise PlayerNotFound(f"Player {player_id} is not seated")
        return PlayerSnapshot(table=snapshot, seat=seat)

    def find_player(self, player_id: str) -> str:
        for session_id, slot in list(self._sessions.items()):
            if slot.snapshot.seat_of(player_id) is not None:
                return session_id
        raise PlayerNotFound(f"Player {player_id} is not seated at any table")

    # Writes ------------------------------------------------------------------

    async def mutate(self, session_id: str, operation: Operation) -> TableSnapshot:
        slot = self._slot(session_id)
        async with slot.lock:
            if self._sessions.get(session_id) is not slot:
                raise SessionNotFound(f"Session {session_id} was closed")

            working = copy.deepcopy(slot.live)
            try:
                events = self._apply(working, operation)
            except TableError as exc:
                LOGGER.warning(
                    "Rejected %s on session=%s code=%s reason=%s",
                    type(operation).__name__,
                    session_id,
                    exc.code,
                    exc,
                )
                raise

            working.version += 1
            working.updated_at = utc_now()
            snapshot = TableSnapshot.capture(working)
            slot.live = working
            slot.snapshot = snapshot

        LOGGER.info(
            "Applied %s session=%s phase=%s hand=%s version=%s",
            type(operation).__name__,
            session_id,
            snapshot.phase.value,
            snapshot.hand_number,
            snapshot.version,
        )
        LOGGER.debug("Events session=%s: %s", session_id, events)
        return snapshot

    async def advance(self, session_id: str, seed: Optional[int] = None) -> TableSnapshot:
        return await self.mutate(session_id, AdvancePhase(seed=seed))

    async def join(self, session_id: str, alias: Optional[str] = None) -> Tuple[str, TableSnapshot]:
        operation = JoinPlayer(alias=alias)
        snapshot = await self.mutate(session_id, operation)
        return operation.player_id, snapshot

    async def kick(self, session_id: str, player_id: str) -> TableSnapshot:
        return await self.mutate(session_id, KickPlayer(player_id=player_id))

    # Internals ---------------------------------------------------------------

    def _slot(self, session_id: str) -> _SessionSlot:
        slot = self._sessions.get(session_id)
        if slot is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return slot

    def _apply(self, session: TableSession, operation: Operation) -> List[Dict[str, object]]:
        if isinstance(operation, AdvancePhase):
            return phases.advance(session, seed=operation.seed)
        if isinstance(operation, JoinPlayer):
            player = roster.join(session, alias=operation.alias, player_id=operation.player_id)
            return [{"ev": "JOIN", "player_id": player.player_id, "seat": len(session.players) - 1}]
        if isinstance(operation, KickPlayer):
            player = roster.kick(session, operation.player_id)
            return [{"ev": "KICK", "player_id": player.player_id}]
        raise ValueError(f"Unsupported operation {operation!r}")
