"""Player service — the in-memory session map and per-player serialization.

Responsibilities:
- Hold one PlayerSession per connected player
- Run interactive actions under that player's lock
- Apply the tick to every session

Engine calls are pure; this service owns the only mutable reference to
each player's current state.  No network or database I/O.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from moondust.engine.rates import Rates, compute_rates
from moondust.engine.simulation import ActionResult, handle_tick
from moondust.models.player import PlayerState
from moondust.models.tables import DEFAULT_TABLES, EconomyTables
from moondust.util.events import StageReached

if TYPE_CHECKING:
    from moondust.util.events import EventBus

log = logging.getLogger(__name__)

Action = Callable[..., ActionResult]


@dataclass
class PlayerSession:
    """A connected player's live state.

    Attributes:
        state: Current state; replaced (never mutated) on every change.
        lock: Serializes actions for this player only.
    """

    state: PlayerState
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def uid(self) -> int:
        return self.state.uid


class PlayerService:
    """Registry of live sessions.

    Args:
        event_bus: Event bus for progression events.
        tables: Economy tables used for every engine call.
    """

    def __init__(self, event_bus: EventBus,
                 tables: EconomyTables = DEFAULT_TABLES) -> None:
        self._events = event_bus
        self._tables = tables
        self._sessions: dict[int, PlayerSession] = {}  # uid → session

    @property
    def tables(self) -> EconomyTables:
        return self._tables

    # -- Session registry ------------------------------------------------

    def register(self, state: PlayerState) -> PlayerSession:
        """Add a player to the session map.

        If the uid is already live (reconnect from another device), the
        in-memory session is kept since it is newer than any stored copy.
        A stored stage index past the end of the current route is moved
        to the last stage.
        """
        existing = self._sessions.get(state.uid)
        if existing is not None:
            log.info("Player uid=%d already live — keeping in-memory state", state.uid)
            return existing
        last = self._tables.last_index
        if state.route_index > last:
            log.warning("Player uid=%d stored at stage %d, route ends at %d — moving to the end",
                        state.uid, state.route_index, last)
            state = state.copy()
            state.route_index = last
            state.route_progress = 0.0
        session = PlayerSession(state=state)
        self._sessions[state.uid] = session
        log.info("Player registered: uid=%d nickname=%r", state.uid, state.nickname)
        return session

    def unregister(self, uid: int) -> Optional[PlayerState]:
        """Remove a session. Returns its last state."""
        session = self._sessions.pop(uid, None)
        return session.state if session is not None else None

    def get(self, uid: int) -> Optional[PlayerSession]:
        return self._sessions.get(uid)

    def get_state(self, uid: int) -> Optional[PlayerState]:
        session = self._sessions.get(uid)
        return session.state if session is not None else None

    @property
    def all_sessions(self) -> dict[int, PlayerSession]:
        """Read-only access to all live sessions."""
        return self._sessions

    def rates(self, uid: int) -> Optional[Rates]:
        state = self.get_state(uid)
        return compute_rates(state, self._tables) if state is not None else None

    # -- Actions ---------------------------------------------------------

    async def apply(self, uid: int, action: Action, *args: Any) -> ActionResult:
        """Run an engine action for one player under that player's lock.

        On success the session adopts the new state; on failure it is
        left exactly as it was.

        Raises:
            KeyError: If *uid* has no live session.
        """
        session = self._sessions.get(uid)
        if session is None:
            raise KeyError(f"No live session for uid {uid}")
        async with session.lock:
            result = action(session.state, *args, tables=self._tables)
            if result.ok:
                session.state = result.state
        return result

    # -- Tick ------------------------------------------------------------

    def step_all(self) -> list[int]:
        """Apply one tick to every session. Returns uids that reached a stage.

        A session whose lock is held is skipped; it is ticked next time.
        """
        advanced: list[int] = []
        for session in list(self._sessions.values()):
            if session.lock.locked():
                continue
            result = handle_tick(session.state, self._tables)
            session.state = result.state
            if result.stage_reached:
                advanced.append(session.uid)
                index = result.state.route_index
                self._events.emit(StageReached(
                    uid=session.uid,
                    route_index=index,
                    stage_name=self._tables.route[index].name,
                ))
        return advanced
