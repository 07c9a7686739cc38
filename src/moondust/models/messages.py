"""Network message models.

Typed Pydantic models for all client ↔ server WebSocket messages.
Each message type gets its own model with validation.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


# -- Base ----------------------------------------------------------------

class GameMessage(BaseModel):
    """Base class for all game messages."""

    type: str


# -- Auth ----------------------------------------------------------------

class AuthRequest(GameMessage):
    type: Literal["auth_request"] = "auth_request"
    token: str = ""


class AuthResponse(GameMessage):
    type: Literal["authenticated"] = "authenticated"
    success: bool
    uid: int = 0
    player: dict[str, Any] = {}


# -- Actions -------------------------------------------------------------

class ClickRequest(GameMessage):
    type: Literal["click"] = "click"


class BuyUpgradeRequest(GameMessage):
    type: Literal["buy_upgrade"] = "buy_upgrade"
    track: str = ""


class RebirthRequest(GameMessage):
    type: Literal["rebirth"] = "rebirth"


class SpendPrestigeRequest(GameMessage):
    type: Literal["spend_prestige"] = "spend_prestige"
    track: str = ""


class StateRequest(GameMessage):
    type: Literal["state_request"] = "state_request"


# -- Server → client -----------------------------------------------------

class GameStateResponse(GameMessage):
    type: Literal["game_state"] = "game_state"
    player: dict[str, Any] = {}


class ErrorResponse(GameMessage):
    type: Literal["error"] = "error"
    code: str = ""
    message: str = ""


# -- Registry ------------------------------------------------------------

MESSAGE_TYPES: dict[str, type[GameMessage]] = {
    "auth_request": AuthRequest,
    "authenticated": AuthResponse,
    "click": ClickRequest,
    "buy_upgrade": BuyUpgradeRequest,
    "rebirth": RebirthRequest,
    "spend_prestige": SpendPrestigeRequest,
    "state_request": StateRequest,
    "game_state": GameStateResponse,
    "error": ErrorResponse,
}


def parse_message(data: dict[str, Any]) -> GameMessage:
    """Parse a raw dict into the appropriate typed message model."""
    msg_type = data.get("type", "")
    model_cls = MESSAGE_TYPES.get(msg_type, GameMessage)
    return model_cls.model_validate(data)
