from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Dict, Optional, Type

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.errors import DeckExhausted, PlayerAlreadySeated, PlayerNotFound, SessionNotFound, TableError, TableFull
from core.phases import next_action_label
from core.store import TableStore

LOGGER = logging.getLogger("dealme.api")

# HTTP polling surface. Every read returns the full snapshot; nothing here
# keeps state of its own beyond the store handle.

ERROR_STATUS: Dict[Type[TableError], HTTPStatus] = {
    SessionNotFound: HTTPStatus.NOT_FOUND,
    PlayerNotFound: HTTPStatus.NOT_FOUND,
    PlayerAlreadySeated: HTTPStatus.CONFLICT,
    TableFull: HTTPStatus.CONFLICT,
    DeckExhausted: HTTPStatus.INTERNAL_SERVER_ERROR,
}

NO_STORE = {"Cache-Control": "no-store"}


class CreateTableRequest(BaseModel):
    max_players: int = Field(8, ge=1, le=23)
    name: Optional[str] = Field(None, max_length=64)


class JoinRequest(BaseModel):
    alias: Optional[str] = Field(None, max_length=40)


def _error(status: HTTPStatus, code: str, msg: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": msg, "code": code}, headers=NO_STORE)


def create_app(store: Optional[TableStore] = None) -> FastAPI:
    app = FastAPI(title="DealMe table host")
    app.state.store = store if store is not None else TableStore()

    def get_store() -> TableStore:
        return app.state.store

    @app.exception_handler(TableError)
    async def table_error_handler(request: Request, exc: TableError) -> JSONResponse:
        status = ERROR_STATUS.get(type(exc), HTTPStatus.BAD_REQUEST)
        LOGGER.warning("%s %s -> %s %s", request.method, request.url.path, exc.code, exc.msg)
        return _error(status, exc.code, exc.msg)

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/tables", status_code=HTTPStatus.CREATED)
    async def create_table(body: Optional[CreateTableRequest] = None):
        body = body or CreateTableRequest()
        try:
            session_id = get_store().create_session(body.max_players, name=body.name)
        except ValueError as exc:
            return _error(HTTPStatus.BAD_REQUEST, "BAD_CONFIG", str(exc))
        snapshot = get_store().get_snapshot(session_id)
        return JSONResponse(
            status_code=HTTPStatus.CREATED,
            content={"table": snapshot.to_payload(), "next_action": next_action_label(snapshot.phase)},
        )

    @app.get("/api/tables")
    async def list_tables(response: Response):
        response.headers.update(NO_STORE)
        return {"tables": [snapshot.summary_payload() for snapshot in get_store().list_sessions()]}

    @app.get("/api/tables/{session_id}")
    async def get_table(session_id: str, response: Response):
        response.headers.update(NO_STORE)
        snapshot = get_store().get_snapshot(session_id)
        return {"table": snapshot.to_payload(), "next_action": next_action_label(snapshot.phase)}

    @app.post("/api/tables/{session_id}")
    async def advance_table(session_id: str):
        snapshot = await get_store().advance(session_id)
        return {"table": snapshot.to_payload(), "next_action": next_action_label(snapshot.phase)}

    @app.delete("/api/tables/{session_id}", status_code=HTTPStatus.NO_CONTENT)
    async def close_table(session_id: str) -> Response:
        await get_store().close_session(session_id)
        return Response(status_code=HTTPStatus.NO_CONTENT)

    @app.post("/api/tables/{session_id}/players", status_code=HTTPStatus.CREATED)
    async def join_table(session_id: str, body: Optional[JoinRequest] = None):
        alias = body.alias if body else None
        player_id, snapshot = await get_store().join(session_id, alias=alias)
        return JSONResponse(
            status_code=HTTPStatus.CREATED,
            content={"player_id": player_id, "table": snapshot.to_payload()},
        )

    @app.get("/api/tables/{session_id}/players/{player_id}")
    async def get_player(session_id: str, player_id: str, response: Response):
        response.headers.update(NO_STORE)
        return get_store().get_player_snapshot(session_id, player_id).to_payload()

    @app.delete("/api/tables/{session_id}/{player_id}")
    async def kick_player(session_id: str, player_id: str):
        snapshot = await get_store().kick(session_id, player_id)
        return {"table": snapshot.to_payload()}

    @app.get("/api/players/{player_id}")
    async def find_player(player_id: str, response: Response):
        response.headers.update(NO_STORE)
        store = get_store()
        session_id = store.find_player(player_id)
        return store.get_player_snapshot(session_id, player_id).to_payload()

    return app
