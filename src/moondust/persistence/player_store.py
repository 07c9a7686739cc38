"""Player store — write-behind persistence for live player states.

Gameplay never waits on the database.  Changed states are queued with
:meth:`PlayerStore.mark`; :meth:`PlayerStore.flush` writes the queue in
one batch.  A failed write is logged and the states stay queued, so the
next flush retries them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from moondust.models.player import PlayerState
    from moondust.persistence.database import Database

log = logging.getLogger(__name__)


class PlayerStore:
    """Queue of player snapshots awaiting a durable write.

    Args:
        database: Connected database instance.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._pending: dict[int, PlayerState] = {}  # uid → latest snapshot
        self._flush_lock = asyncio.Lock()
        self.saved_count: int = 0
        self.failed_flushes: int = 0

    @property
    def pending_uids(self) -> list[int]:
        return sorted(self._pending.keys())

    def mark(self, state: PlayerState) -> None:
        """Queue the latest snapshot of a player for the next flush."""
        self._pending[state.uid] = state

    async def flush(self) -> int:
        """Write every queued snapshot. Returns the number saved.

        Never raises; on failure the snapshots remain queued.
        """
        async with self._flush_lock:
            batch = dict(self._pending)
            if not batch:
                return 0
            try:
                count = await self._db.save_players(batch.values())
            except Exception:
                self.failed_flushes += 1
                log.exception("Auto-save failed for %d players — will retry", len(batch))
                return 0

            # Drop only the snapshots that were not replaced while saving
            for uid, state in batch.items():
                if self._pending.get(uid) is state:
                    del self._pending[uid]
            self.saved_count += count
            log.info("Auto-save complete: %d players", count)
            return count

    async def save_now(self, state: PlayerState) -> bool:
        """Write one player immediately (used on disconnect).

        *state* replaces any older queued snapshot of the same player, and
        the write waits for a running flush, so a stale snapshot can never
        land after it.  Returns True on success.  On failure the snapshot
        stays queued for the next flush.
        """
        async with self._flush_lock:
            self.mark(state)
            try:
                await self._db.save_player(state)
            except Exception:
                log.exception("Failed to save player uid=%d — queued for retry", state.uid)
                return False
            if self._pending.get(state.uid) is state:
                del self._pending[state.uid]
            self.saved_count += 1
            return True
