"""Database access — aiosqlite for player records.

``currency`` and ``prestige_points`` are stored as decimal TEXT so
integers of any size survive a round trip.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import aiosqlite

from moondust.models.player import PlayerState, Track

log = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS players (
    uid INTEGER PRIMARY KEY AUTOINCREMENT,
    token TEXT UNIQUE NOT NULL,
    nickname TEXT UNIQUE NOT NULL,
    currency TEXT NOT NULL DEFAULT '0',
    fractional_carry REAL NOT NULL DEFAULT 0,
    collection_level INTEGER NOT NULL DEFAULT 0,
    probe_level INTEGER NOT NULL DEFAULT 0,
    engines_level INTEGER NOT NULL DEFAULT 0,
    prestige_collection REAL NOT NULL DEFAULT 1.0,
    prestige_probe REAL NOT NULL DEFAULT 1.0,
    prestige_engines REAL NOT NULL DEFAULT 1.0,
    route_index INTEGER NOT NULL DEFAULT 0,
    route_progress REAL NOT NULL DEFAULT 0,
    prestige_points TEXT NOT NULL DEFAULT '0',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

_STATE_COLUMNS = (
    "uid, nickname, currency, fractional_carry, "
    "collection_level, probe_level, engines_level, "
    "prestige_collection, prestige_probe, prestige_engines, "
    "route_index, route_progress, prestige_points"
)

_UPDATE_SQL = """\
UPDATE players SET
    currency = ?, fractional_carry = ?,
    collection_level = ?, probe_level = ?, engines_level = ?,
    prestige_collection = ?, prestige_probe = ?, prestige_engines = ?,
    route_index = ?, route_progress = ?, prestige_points = ?
WHERE uid = ?
"""


def _row_to_state(row: Any) -> PlayerState:
    return PlayerState(
        uid=row[0],
        nickname=row[1],
        currency=int(row[2]),
        fractional_carry=float(row[3]),
        levels={
            Track.COLLECTION: row[4],
            Track.PROBE: row[5],
            Track.ENGINES: row[6],
        },
        prestige_multipliers={
            Track.COLLECTION: float(row[7]),
            Track.PROBE: float(row[8]),
            Track.ENGINES: float(row[9]),
        },
        route_index=row[10],
        route_progress=float(row[11]),
        prestige_points=int(row[12]),
    )


def _state_params(state: PlayerState) -> tuple:
    return (
        str(state.currency),
        state.fractional_carry,
        state.level(Track.COLLECTION),
        state.level(Track.PROBE),
        state.level(Track.ENGINES),
        state.prestige_multiplier(Track.COLLECTION),
        state.prestige_multiplier(Track.PROBE),
        state.prestige_multiplier(Track.ENGINES),
        state.route_index,
        state.route_progress,
        str(state.prestige_points),
        state.uid,
    )


class Database:
    """Async SQLite database wrapper.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str = "moondust.db") -> None:
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database connection and create tables if needed."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        log.info("Database connected: %s", self._db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    # -- Player records --------------------------------------------------

    async def create_player(self, nickname: str, token: str) -> PlayerState:
        """Insert a new player with default state. Returns the stored state."""
        assert self._conn is not None
        async with self._conn.execute(
            "INSERT INTO players (nickname, token) VALUES (?, ?)",
            (nickname, token),
        ) as cursor:
            uid = cursor.lastrowid
        await self._conn.commit()
        log.info("Created player %s (uid=%d)", nickname, uid)
        return PlayerState.new(uid, nickname)

    async def get_player_by_token(self, token: str) -> Optional[PlayerState]:
        """Look up a player by authentication token."""
        assert self._conn is not None
        async with self._conn.execute(
            f"SELECT {_STATE_COLUMNS} FROM players WHERE token = ?",
            (token,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_state(row) if row is not None else None

    async def get_player(self, uid: int) -> Optional[PlayerState]:
        """Look up a player by UID."""
        assert self._conn is not None
        async with self._conn.execute(
            f"SELECT {_STATE_COLUMNS} FROM players WHERE uid = ?",
            (uid,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_state(row) if row is not None else None

    async def save_player(self, state: PlayerState) -> None:
        """Write one player's state."""
        assert self._conn is not None
        await self._conn.execute(_UPDATE_SQL, _state_params(state))
        await self._conn.commit()

    async def save_players(self, states: Iterable[PlayerState]) -> int:
        """Write many players in one transaction. Returns the row count.

        Nothing is committed if any row fails.
        """
        assert self._conn is not None
        params = [_state_params(s) for s in states]
        if not params:
            return 0
        try:
            await self._conn.executemany(_UPDATE_SQL, params)
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return len(params)

    async def delete_player(self, uid: int) -> bool:
        """Delete a player. Returns True if a row was removed."""
        assert self._conn is not None
        async with self._conn.execute(
            "DELETE FROM players WHERE uid = ?", (uid,),
        ) as cursor:
            deleted = cursor.rowcount > 0
        await self._conn.commit()
        if deleted:
            log.info("Deleted player uid=%d", uid)
        return deleted

    async def list_players(self) -> list[dict]:
        """Return a short listing of all players (no tokens)."""
        assert self._conn is not None
        async with self._conn.execute(
            "SELECT uid, nickname, prestige_points, created_at FROM players ORDER BY uid",
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            {
                "uid": r[0],
                "nickname": r[1],
                "prestige_points": r[2],
                "created_at": str(r[3]) if r[3] else "",
            }
            for r in rows
        ]
