#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any, Dict, Optional

import websockets
from websockets.asyncio.client import ClientConnection

logging.basicConfig(level=logging.INFO)

# Clicker turns Enter presses (or a presentation remote mapped to Enter) into
# ADVANCE commands on the operator control channel.


class Clicker:
    def __init__(self, url: str, session_id: str, debounce_ms: int = 400) -> None:
        self.url = url
        self.session_id = session_id
        self.debounce_ms = debounce_ms
        self.websocket: Optional[ClientConnection] = None
        self.last_press: float = 0.0

    async def run(self) -> None:
        async with websockets.connect(self.url) as ws:
            self.websocket = ws
            await self._send({"type": "hello", "v": 1, "role": "operator", "session_id": self.session_id})
            welcome = json.loads(await ws.recv())
            if welcome.get("type") != "control/welcome":
                print(f"Rejected: {welcome.get('code')} {welcome.get('msg')}")
                return
            self._print_table(welcome)
            await self._loop()

    async def _loop(self) -> None:
        assert self.websocket is not None
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            if line.strip().lower() in ("q", "quit"):
                break
            now = time.monotonic()
            # One physical press can arrive as several key events.
            if (now - self.last_press) * 1000 < self.debounce_ms:
                continue
            self.last_press = now
            await self._send({"type": "control", "command": "ADVANCE"})
            reply = await self._await_reply()
            if reply.get("type") == "control/ack":
                self._print_table(reply)
            else:
                print(f"Advance failed: {reply.get('error')} {reply.get('msg', '')}")

    async def _await_reply(self) -> Dict[str, Any]:
        assert self.websocket is not None
        while True:
            msg = json.loads(await self.websocket.recv())
            if msg.get("type") == "control/update":
                # Another operator moved the table first.
                self._print_table(msg)
                continue
            return msg

    def _print_table(self, msg: Dict[str, Any]) -> None:
        table = msg.get("table", {})
        community = " ".join(table.get("community", [])) or "-"
        print(
            f"Hand #{table.get('hand_number')} {table.get('phase')}: board {community} "
            f"({len(table.get('players', []))}/{table.get('max_players')} players)"
        )
        print(f"[Enter] {msg.get('next_action')}")

    async def _send(self, payload: Dict[str, Any]) -> None:
        assert self.websocket is not None
        await self.websocket.send(json.dumps(payload))


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DealMe presentation clicker")
    parser.add_argument("--url", default="ws://127.0.0.1:8765")
    parser.add_argument("--session", required=True, help="Table session id")
    parser.add_argument("--debounce-ms", type=int, default=400)
    return parser.parse_args(argv)


def main(argv: list[str]) -> None:
    args = parse_args(argv)
    clicker = Clicker(url=args.url, session_id=args.session, debounce_ms=args.debounce_ms)
    try:
        asyncio.run(clicker.run())
    except KeyboardInterrupt:
        print("\nClicker closed")


if __name__ == "__main__":
    main(sys.argv[1:])
