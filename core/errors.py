from __future__ import annotations


class TableError(Exception):
    """Base for every error the table core raises; ``code`` is wire-stable."""

    code = "TABLE_ERROR"

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class SessionNotFound(TableError):
    code = "SESSION_NOT_FOUND"


class PlayerNotFound(TableError):
    code = "PLAYER_NOT_FOUND"


class TableFull(TableError):
    code = "TABLE_FULL"


class DeckExhausted(TableError, ValueError):
    code = "DECK_EXHAUSTED"


class PlayerAlreadySeated(TableError):
    code = "PLAYER_ALREADY_SEATED"
