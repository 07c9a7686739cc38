"""Authentication service — token lookup and player registration.

Players authenticate with an opaque token issued at registration.
"""

from __future__ import annotations

import logging
import re
import secrets
import sqlite3
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from moondust.loaders.game_config_loader import GameConfig
    from moondust.models.player import PlayerState
    from moondust.persistence.database import Database

log = logging.getLogger(__name__)

_NICKNAME_RE = re.compile(r"^[\w\- ]+$")


def new_token() -> str:
    return secrets.token_urlsafe(32)


class AuthService:
    """Token authentication and account creation.

    Args:
        database: Database instance for player lookups.
    """

    def __init__(self, database: Database, game_config: GameConfig | None = None) -> None:
        self._db = database
        self._min_nick = game_config.min_nickname_length if game_config else 2
        self._max_nick = game_config.max_nickname_length if game_config else 20

    async def authenticate(self, token: str) -> Optional[PlayerState]:
        """Return the stored player for *token*, or None."""
        if not token:
            return None
        player = await self._db.get_player_by_token(token)
        if player is None:
            log.info("Authentication failed — unknown token")
            return None
        log.info("Player %s authenticated (uid=%d)", player.nickname, player.uid)
        return player

    async def register(self, nickname: str) -> tuple[PlayerState, str] | str:
        """Create a new player. Returns ``(state, token)`` or an error string."""
        nickname = (nickname or "").strip()
        if len(nickname) < self._min_nick:
            return f"Nickname must be at least {self._min_nick} characters"
        if len(nickname) > self._max_nick:
            return f"Nickname must be at most {self._max_nick} characters"
        if not _NICKNAME_RE.match(nickname):
            return "Nickname may only contain letters, digits, spaces, '-' and '_'"

        token = new_token()
        try:
            state = await self._db.create_player(nickname, token)
        except sqlite3.IntegrityError:
            return "Nickname already taken"
        log.info("Registered player %s (uid=%d)", nickname, state.uid)
        return state, token
