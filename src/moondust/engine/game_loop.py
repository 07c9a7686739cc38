"""Main game loop — asyncio-based fixed tick.

Responsibilities:
- Apply the tick to every live player
- Push the new state to each connected client
- Periodic auto-save (fire-and-forget)

Saving never blocks the loop: the flush runs as a background task and
its failures are logged by the store.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Optional

from moondust.network.serialization import game_state_message
from moondust.util.events import AutosaveDue

if TYPE_CHECKING:
    from moondust.engine.player_service import PlayerService
    from moondust.loaders.game_config_loader import GameConfig
    from moondust.network.server import Server
    from moondust.persistence.player_store import PlayerStore
    from moondust.util.events import EventBus

log = logging.getLogger(__name__)


class GameLoop:
    """The central fixed-period tick loop.

    Args:
        event_bus: Global event bus.
        player_service: Live session map.
        player_store: Write-behind persistence.
        server: WebSocket server used to push state (optional).
        game_config: Tick length and auto-save period.
    """

    def __init__(
        self,
        event_bus: EventBus,
        player_service: PlayerService,
        player_store: Optional[PlayerStore] = None,
        server: Optional[Server] = None,
        game_config: GameConfig | None = None,
    ) -> None:
        self._events = event_bus
        self._players = player_service
        self._store = player_store
        self._server = server
        self._running = False
        self._step_interval = (game_config.step_length_ms / 1000.0) if game_config else 1.0
        self._autosave_ticks = game_config.autosave_ticks if game_config else 15
        self._tasks: set[asyncio.Task] = set()

        # --- Monitoring counters ---
        self.tick_count: int = 0
        self.started_at: float = 0.0
        self.last_tick_duration_ms: float = 0.0
        self.avg_tick_duration_ms: float = 0.0
        self._tick_duration_sum: float = 0.0

    async def run(self) -> None:
        """Start the game loop. Runs until stop() is called."""
        self._running = True
        self.started_at = time.monotonic()
        while self._running:
            t0 = time.monotonic()
            try:
                await self.step()
            except Exception:
                log.exception("Tick %d failed", self.tick_count)
            elapsed = time.monotonic() - t0
            elapsed_ms = elapsed * 1000

            self.last_tick_duration_ms = elapsed_ms
            self._tick_duration_sum += elapsed_ms
            self.avg_tick_duration_ms = self._tick_duration_sum / max(self.tick_count, 1)

            await asyncio.sleep(max(0.0, self._step_interval - elapsed))

    @property
    def uptime_seconds(self) -> float:
        """Seconds since the loop started."""
        if self.started_at == 0.0:
            return 0.0
        return time.monotonic() - self.started_at

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Signal the game loop to stop."""
        self._running = False

    async def step(self) -> None:
        """One tick of the game loop."""
        self.tick_count += 1
        if not self._players.all_sessions:
            return

        # 1. Advance every player (passive income, route travel)
        self._players.step_all()

        # 2. Push the new state to connected clients
        if self._server is not None:
            tables = self._players.tables
            await asyncio.gather(*(
                self._server.send_to(uid, game_state_message(session.state, tables))
                for uid, session in self._players.all_sessions.items()
            ))

        # 3. Periodic auto-save
        if self._store is not None and self.tick_count % self._autosave_ticks == 0:
            self._events.emit(AutosaveDue(tick=self.tick_count))
            for session in self._players.all_sessions.values():
                self._store.mark(session.state)
            self.spawn(self._store.flush())

    def spawn(self, coro) -> asyncio.Task:
        """Run *coro* in the background, keeping a reference until done."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for all background tasks (used at shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
