"""Pydantic request/response models for the REST API.

Kept separate from the WebSocket GameMessage models.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    nickname: str


class RegisterResponse(BaseModel):
    success: bool
    uid: int = 0
    token: str = ""
    reason: str = ""


class StatusResponse(BaseModel):
    status: str = "online"
    players_online: int = 0
    tick: int = 0
    uptime_seconds: float = 0.0


class PlayerResponse(BaseModel):
    online: bool
    player: Optional[Dict[str, Any]] = None
