from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import uvicorn

from core.store import TableStore

from .api import create_app
from .control import ControlServer

LOGGER = logging.getLogger("dealme.host")

# One process, one store: the HTTP polling surface and the operator control
# channel share the same TableStore on the same event loop.


class TableHost:
    def __init__(self, store: Optional[TableStore] = None) -> None:
        self.store = store if store is not None else TableStore()
        self.app = create_app(self.store)
        self.control = ControlServer(self.store)

    def open_tables(self, count: int, max_players: int) -> List[str]:
        session_ids = [self.store.create_session(max_players, name=f"Table {idx + 1}") for idx in range(count)]
        for session_id in session_ids:
            LOGGER.info("Table ready: /api/tables/%s", session_id)
        return session_ids

    async def start(
        self,
        host: str = "0.0.0.0",
        port: int = 8000,
        control_port: Optional[int] = 8765,
        log_level: str = "info",
    ) -> None:
        config = uvicorn.Config(self.app, host=host, port=port, log_level=log_level)
        http_server = uvicorn.Server(config)
        tasks = [http_server.serve()]
        if control_port:
            tasks.append(self.control.start(host=host, port=control_port))
        LOGGER.info("HTTP polling surface on %s:%s", host, port)
        await asyncio.gather(*tasks)
