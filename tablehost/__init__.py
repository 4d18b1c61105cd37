"""Table host package: wraps the table store with HTTP polling and a control socket."""

from .api import create_app
from .control import ControlServer
from .server import TableHost

__all__ = ["create_app", "ControlServer", "TableHost"]
