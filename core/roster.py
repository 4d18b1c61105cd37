from __future__ import annotations

from typing import Optional

from .errors import PlayerAlreadySeated, PlayerNotFound, TableFull
from .models import Player, TableSession, new_id

# Seat management. Seating order is the list order; blinds are derived from
# the dealer index, so only the dealer index needs bookkeeping here.


def join(session: TableSession, alias: Optional[str] = None, player_id: Optional[str] = None) -> Player:
    if len(session.players) >= session.config.max_players:
        raise TableFull(f"Table is full ({session.config.max_players} players)")
    if player_id is not None and session.find_index(player_id) is not None:
        raise PlayerAlreadySeated(f"Player {player_id} already seated")

    alias_display = alias.strip() if alias else None
    player = Player(player_id=player_id or new_id(), alias=alias_display or None)
    session.players.append(player)

    if len(session.players) == 1:
        # First player into an empty table deals the next hand.
        session.dealer_index = 0
        session.dealer_elect = True
    return player


def kick(session: TableSession, player_id: str) -> Player:
    idx = session.find_index(player_id)
    if idx is None:
        raise PlayerNotFound(f"Player {player_id} is not seated")

    player = session.players.pop(idx)
    # Pocket cards leave play with the player; they are never revealed.
    player.reset_for_hand()

    remaining = len(session.players)
    if remaining == 0:
        session.dealer_index = None
        session.dealer_elect = False
    elif session.dealer_index is not None:
        if idx < session.dealer_index:
            session.dealer_index -= 1
        elif idx == session.dealer_index:
            # The removed dealer's successor now sits at ``idx``.
            session.dealer_index = idx % remaining
            session.dealer_elect = True
    return player
