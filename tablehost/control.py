from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Set

import websockets
from websockets.asyncio.server import ServerConnection, serve

from core.errors import TableError
from core.models import TableSnapshot
from core.phases import next_action_label
from core.store import TableStore

LOGGER = logging.getLogger("dealme.control")

# ControlServer gives a dealer's device or a presentation clicker a socket for
# privileged commands. Every command becomes exactly one store mutation; the
# store does the serialization, this class only speaks the wire format and
# keeps every operator on a session current with the latest snapshot.

COMMANDS = ("ADVANCE", "JOIN", "KICK", "REQUEST_STATUS")


class ControlServer:
    def __init__(self, store: TableStore) -> None:
        self.store = store
        self.operators: Dict[str, Set[ServerConnection]] = {}

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        # serve keeps accepting operators until the process stops.
        async with serve(self._handle_connection, host, port):
            LOGGER.info("Control channel listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        # First message must be an operator hello naming the table.
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return
        role_raw = hello.get("role") or ""
        role = role_raw.strip().casefold() if isinstance(role_raw, str) else ""
        if role != "operator":
            await self._send_error(websocket, code="BAD_HELLO", msg="Only operators may connect")
            await websocket.close()
            return
        session_id = hello.get("session_id")
        if not isinstance(session_id, str) or session_id not in self.store:
            await self._send_error(websocket, code="SESSION_NOT_FOUND", msg="Unknown table")
            await websocket.close()
            return

        self.operators.setdefault(session_id, set()).add(websocket)
        LOGGER.info("Operator connected to session %s (%s total)", session_id, len(self.operators[session_id]))
        await self._send_json(websocket, "control/welcome", self._table_payload(self.store.get_snapshot(session_id)))

        try:
            async for raw in websocket:
                message = self._decode(raw)
                if message.get("type") == "control":
                    await self._handle_control_command(session_id, message, websocket)
                else:
                    await self._send_error(websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
        except websockets.ConnectionClosed:
            pass
        finally:
            operators = self.operators.get(session_id)
            if operators is not None:
                operators.discard(websocket)
                if not operators:
                    self.operators.pop(session_id, None)
        LOGGER.info("Operator disconnected from session %s", session_id)

    async def _handle_control_command(
        self,
        session_id: str,
        message: Dict[str, object],
        websocket: ServerConnection,
    ) -> None:
        command_raw = message.get("command") or message.get("cmd")
        if not isinstance(command_raw, str):
            await self._send_json(websocket, "control/error", {"error": "COMMAND_REQUIRED"})
            return
        command = command_raw.strip().upper()
        if command not in COMMANDS:
            await self._send_json(websocket, "control/error", {"command": command, "error": "UNKNOWN_COMMAND"})
            return

        extra: Dict[str, object] = {}
        try:
            if command == "ADVANCE":
                snapshot = await self.store.advance(session_id)
            elif command == "JOIN":
                alias = message.get("alias")
                player_id, snapshot = await self.store.join(session_id, alias=alias if isinstance(alias, str) else None)
                extra["player_id"] = player_id
            elif command == "KICK":
                player_id = message.get("player_id")
                if not isinstance(player_id, str):
                    await self._send_json(websocket, "control/error", {"command": command, "error": "BAD_SCHEMA"})
                    return
                snapshot = await self.store.kick(session_id, player_id)
            else:
                snapshot = self.store.get_snapshot(session_id)
        except TableError as exc:
            await self._send_json(
                websocket,
                "control/error",
                {"command": command, "error": exc.code, "msg": exc.msg},
            )
            return

        LOGGER.debug("Control %s on session %s -> version %s", command, session_id, snapshot.version)
        payload = {"command": command, "status": "applied" if command != "REQUEST_STATUS" else "sent"}
        payload.update(extra)
        payload.update(self._table_payload(snapshot))
        await self._send_json(websocket, "control/ack", payload)
        if command != "REQUEST_STATUS":
            update = {"command": command}
            update.update(self._table_payload(snapshot))
            await self._broadcast_operators(session_id, "control/update", update, exclude=websocket)

    async def _broadcast_operators(
        self,
        session_id: str,
        msg_type: str,
        payload: Dict[str, object],
        exclude: Optional[ServerConnection] = None,
    ) -> None:
        targets = [socket for socket in self.operators.get(session_id, ()) if socket is not exclude]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    def _table_payload(self, snapshot: TableSnapshot) -> Dict[str, object]:
        return {"table": snapshot.to_payload(), "next_action": next_action_label(snapshot.phase)}

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}
