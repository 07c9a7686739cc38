"""REST API — FastAPI application for account and read-only endpoints.

Gameplay actions go through the WebSocket server; HTTP covers server
status, registration, state lookup and the static economy tables.

Usage::

    from moondust.network.rest_api import create_app

    app = create_app(services)
    # Start with uvicorn as an asyncio task alongside the WS server
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TYPE_CHECKING

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from moondust.network.rest_models import (
    PlayerResponse,
    RegisterRequest,
    RegisterResponse,
    StatusResponse,
)
from moondust.network.serialization import serialize_player, serialize_tables

if TYPE_CHECKING:
    from moondust.main import Services

log = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def create_app(services: "Services") -> FastAPI:
    """Factory: create and return a configured FastAPI application.

    The ``services`` reference is captured by closure so every endpoint
    can reach the game state without global state.
    """
    app = FastAPI(title="Moon Dust Server", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    async def current_token(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    ) -> str:
        if credentials is None:
            raise HTTPException(status_code=401, detail="Authorization header required")
        return credentials.credentials

    # =================================================================
    # Status
    # =================================================================

    @app.get("/server", response_model=StatusResponse)
    async def server_status() -> StatusResponse:
        loop = services.game_loop
        return StatusResponse(
            players_online=len(services.player_service.all_sessions),
            tick=loop.tick_count if loop is not None else 0,
            uptime_seconds=round(loop.uptime_seconds, 1) if loop is not None else 0.0,
        )

    # =================================================================
    # Accounts
    # =================================================================

    @app.post("/api/players", response_model=RegisterResponse)
    async def register(body: RegisterRequest) -> RegisterResponse:
        result = await services.auth_service.register(body.nickname)
        if isinstance(result, str):
            return RegisterResponse(success=False, reason=result)
        state, token = result
        return RegisterResponse(success=True, uid=state.uid, token=token)

    @app.get("/api/player", response_model=PlayerResponse)
    async def player(token: str = Depends(current_token)) -> PlayerResponse:
        stored = await services.auth_service.authenticate(token)
        if stored is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        live = services.player_service.get_state(stored.uid)
        state = live if live is not None else stored
        return PlayerResponse(
            online=live is not None,
            player=serialize_player(state, services.player_service.tables),
        )

    # =================================================================
    # Static data
    # =================================================================

    @app.get("/api/tables")
    async def tables() -> dict[str, Any]:
        return serialize_tables(services.player_service.tables)

    return app
