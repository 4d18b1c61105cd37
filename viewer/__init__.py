"""Client side of the polling contract: interval reads and staleness tracking."""

from .poller import Poller, TransportError, ViewState, ViewStatus
from .settings import PollSettings

__all__ = ["Poller", "TransportError", "ViewState", "ViewStatus", "PollSettings"]
