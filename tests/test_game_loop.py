"""Tests for the game loop — ticking, state push and auto-save."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from moondust.engine.game_loop import GameLoop
from moondust.engine.player_service import PlayerService
from moondust.loaders.game_config_loader import GameConfig
from moondust.models.player import PlayerState, Track
from moondust.persistence.player_store import PlayerStore
from moondust.util.events import AutosaveDue, EventBus


class FakeServer:
    """Records pushes instead of writing to sockets."""

    def __init__(self, connected: set[int]) -> None:
        self.connected = connected
        self.sent: list[tuple[int, dict[str, Any]]] = []

    async def send_to(self, uid: int, data: dict[str, Any]) -> bool:
        if uid not in self.connected:
            return False
        self.sent.append((uid, data))
        return True


def _setup(autosave_ticks: int = 3, uids=(1, 2)):
    bus = EventBus()
    players = PlayerService(bus)
    for uid in uids:
        state = PlayerState.new(uid, f"p{uid}")
        state.levels[Track.PROBE] = 1
        players.register(state)
    database = AsyncMock()
    database.save_players = AsyncMock(side_effect=lambda states: len(list(states)))
    store = PlayerStore(database)
    server = FakeServer(set(uids))
    loop = GameLoop(bus, players, store, server,
                    GameConfig(autosave_ticks=autosave_ticks))
    return bus, players, database, store, server, loop


@pytest.mark.asyncio
async def test_step_ticks_and_pushes():
    _, players, _, _, server, loop = _setup()
    await loop.step()

    assert loop.tick_count == 1
    assert players.get_state(1).currency == 1
    assert sorted(uid for uid, _ in server.sent) == [1, 2]
    uid, msg = server.sent[0]
    assert msg["type"] == "game_state"
    assert msg["player"]["currency"] == "1"


@pytest.mark.asyncio
async def test_step_without_players():
    _, _, database, _, server, loop = _setup(uids=())
    await loop.step()
    assert loop.tick_count == 1
    assert server.sent == []
    database.save_players.assert_not_called()


@pytest.mark.asyncio
async def test_autosave_every_n_ticks():
    bus, _, database, store, _, loop = _setup(autosave_ticks=3)
    due: list[AutosaveDue] = []
    bus.on(AutosaveDue, due.append)

    for _ in range(2):
        await loop.step()
    await loop.drain()
    database.save_players.assert_not_called()

    await loop.step()
    await loop.drain()
    assert due == [AutosaveDue(tick=3)]
    assert database.save_players.call_count == 1
    saved = list(database.save_players.call_args.args[0])
    assert sorted(s.uid for s in saved) == [1, 2]
    assert all(s.currency == 3 for s in saved)
    assert store.pending_uids == []


@pytest.mark.asyncio
async def test_failed_autosave_does_not_stop_loop():
    _, players, database, store, _, loop = _setup(autosave_ticks=1)
    database.save_players.side_effect = RuntimeError("db gone")

    await loop.step()
    await loop.drain()
    await loop.step()
    await loop.drain()

    assert loop.tick_count == 2
    assert players.get_state(1).currency == 2
    assert store.failed_flushes == 2
    assert store.pending_uids == [1, 2]


def test_stop_and_uptime():
    _, _, _, _, _, loop = _setup()
    assert loop.uptime_seconds == 0.0
    assert not loop.is_running
    loop.stop()
    assert not loop.is_running
