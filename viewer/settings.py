from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_PLAYER_POLL_MS = 2_000
DEFAULT_TABLE_POLL_MS = 5_000
DEFAULT_STALE_AFTER_MS = 12_000


@dataclass(frozen=True)
class PollSettings:
    base_url: str = DEFAULT_BASE_URL
    player_interval_ms: int = DEFAULT_PLAYER_POLL_MS
    table_interval_ms: int = DEFAULT_TABLE_POLL_MS
    # Presentation only: the server never enforces freshness.
    stale_after_ms: int = DEFAULT_STALE_AFTER_MS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PollSettings":
        env = os.environ if environ is None else environ
        return cls(
            base_url=env.get("DEALME_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            player_interval_ms=_positive_ms(env, "DEALME_PLAYER_POLL_MS", DEFAULT_PLAYER_POLL_MS),
            table_interval_ms=_positive_ms(env, "DEALME_TABLE_POLL_MS", DEFAULT_TABLE_POLL_MS),
            stale_after_ms=_positive_ms(env, "DEALME_STALE_AFTER_MS", DEFAULT_STALE_AFTER_MS),
        )


def _positive_ms(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer number of milliseconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value
