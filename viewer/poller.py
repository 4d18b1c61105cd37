from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

import requests

from core.errors import PlayerNotFound, SessionNotFound, TableError

from .settings import PollSettings

LOGGER = logging.getLogger("dealme.viewer")

# Poller is the client half of the polling contract: fixed-interval reads of
# full snapshots, the last good snapshot kept through failures, and a view
# marked stale once the latest read failed or the last *successful* read is
# older than the threshold. No backoff; the next tick retries.

Fetch = Callable[[str], Dict[str, Any]]

GONE_ERRORS = {cls.code: cls for cls in (SessionNotFound, PlayerNotFound)}


class TransportError(Exception):
    """The read never produced a usable reply (network failure or 5xx)."""


class ViewStatus(str, Enum):
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"
    UNREACHABLE = "UNREACHABLE"
    GONE = "GONE"


@dataclass(frozen=True)
class ViewState:
    status: ViewStatus
    payload: Optional[Dict[str, Any]]
    version: Optional[int]
    stale: bool
    error: Optional[str] = None


class Poller:
    def __init__(
        self,
        url: str,
        interval_ms: int,
        stale_after_ms: int,
        fetch: Optional[Fetch] = None,
        clock: Callable[[], float] = time.monotonic,
        timeout_s: float = 5.0,
    ) -> None:
        self.url = url
        self.interval_ms = interval_ms
        self.stale_after_ms = stale_after_ms
        self.clock = clock
        self.timeout_s = timeout_s
        self._http: Optional[requests.Session] = None
        self.fetch: Fetch = fetch if fetch is not None else self._http_fetch
        self.payload: Optional[Dict[str, Any]] = None
        self.version: Optional[int] = None
        self.last_success: Optional[float] = None
        self.last_error: Optional[str] = None

    @classmethod
    def for_table(cls, settings: PollSettings, session_id: str, **kwargs: Any) -> "Poller":
        return cls(
            f"{settings.base_url}/api/tables/{session_id}",
            interval_ms=settings.table_interval_ms,
            stale_after_ms=settings.stale_after_ms,
            **kwargs,
        )

    @classmethod
    def for_player(cls, settings: PollSettings, session_id: str, player_id: str, **kwargs: Any) -> "Poller":
        return cls(
            f"{settings.base_url}/api/tables/{session_id}/players/{player_id}",
            interval_ms=settings.player_interval_ms,
            stale_after_ms=settings.stale_after_ms,
            **kwargs,
        )

    def is_stale(self, now: Optional[float] = None) -> bool:
        if self.last_success is None:
            return True
        now = self.clock() if now is None else now
        return (now - self.last_success) * 1000 > self.stale_after_ms

    def poll_once(self) -> ViewState:
        try:
            payload = self.fetch(self.url)
        except TransportError as exc:
            self.last_error = str(exc)
            LOGGER.warning("Poll %s failed: %s", self.url, exc)
            return self._state(ViewStatus.UNREACHABLE, error=str(exc))
        except TableError as exc:
            self.last_error = exc.code
            LOGGER.info("Poll %s: %s", self.url, exc.code)
            return self._state(ViewStatus.GONE, error=exc.code)

        self.last_success = self.clock()
        self.last_error = None
        version = _version_of(payload)
        if self.payload is not None and version is not None and version == self.version:
            return self._state(ViewStatus.UNCHANGED)
        self.payload = payload
        self.version = version
        return self._state(ViewStatus.UPDATED)

    def run(self, on_state: Callable[[ViewState], None], stop: threading.Event) -> None:
        while not stop.is_set():
            on_state(self.poll_once())
            stop.wait(self.interval_ms / 1000)

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def _state(self, status: ViewStatus, error: Optional[str] = None) -> ViewState:
        return ViewState(
            status=status,
            payload=self.payload,
            version=self.version,
            stale=self.last_error is not None or self.is_stale(),
            error=error,
        )

    def _http_fetch(self, url: str) -> Dict[str, Any]:
        if self._http is None:
            self._http = requests.Session()
        try:
            response = self._http.get(url, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        if response.status_code >= 500:
            raise TransportError(f"HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError("Malformed reply") from exc
        if response.status_code == 404 and isinstance(body, dict) and body.get("code") in GONE_ERRORS:
            raise GONE_ERRORS[body["code"]](body.get("error") or body["code"])
        if not response.ok:
            raise TransportError(f"HTTP {response.status_code}")
        return body


def _version_of(payload: Dict[str, Any]) -> Optional[int]:
    table = payload.get("table")
    if isinstance(table, dict) and isinstance(table.get("version"), int):
        return table["version"]
    return None
