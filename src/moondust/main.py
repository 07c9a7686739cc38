"""Game server entry point.

Initializes all components and starts the asyncio event loop:
1. Load configuration (server settings, economy tables)
2. Initialize persistence (database, write-behind store)
3. Create services (sessions, auth, router, server, game loop)
4. Wire up event handlers
5. Start network servers (WebSocket + REST)
6. Start game loop (1s tick)

Usage:
    python -m moondust.main [--config DIR]
    # or via entry point:
    moondust
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Optional

from moondust.engine.game_loop import GameLoop
from moondust.engine.player_service import PlayerService
from moondust.loaders.game_config_loader import GameConfig, load_game_config
from moondust.loaders.table_loader import load_tables
from moondust.models.tables import DEFAULT_TABLES, EconomyTables
from moondust.network.auth import AuthService
from moondust.network.handlers import register_all_handlers
from moondust.network.router import Router
from moondust.network.server import Server
from moondust.persistence.database import Database
from moondust.persistence.player_store import PlayerStore
from moondust.util.events import (
    AutosaveDue,
    EventBus,
    PlayerConnected,
    PlayerDisconnected,
    PlayerRebirthed,
    StageReached,
)

log = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "config"


# ---------------------------------------------------------------------------
# Service container
# ---------------------------------------------------------------------------


@dataclass
class Services:
    """Holds references to all services."""

    game_config: Optional[GameConfig] = None
    event_bus: Optional[EventBus] = None
    database: Optional[Database] = None
    player_store: Optional[PlayerStore] = None
    player_service: Optional[PlayerService] = None
    auth_service: Optional[AuthService] = None
    router: Optional[Router] = None
    server: Optional[Server] = None
    game_loop: Optional[GameLoop] = None
    rest_server: Optional[object] = None


# ===================================================================
# 1. Load configuration
# ===================================================================


def load_configuration(config_dir: str = DEFAULT_CONFIG_DIR) -> tuple[GameConfig, EconomyTables]:
    """Load server settings and economy tables from YAML files."""
    log.info("Loading configuration …")
    game_config = load_game_config(os.path.join(config_dir, "game.yaml"))
    tables = load_tables(os.path.join(config_dir, game_config.economy_path))
    log.info("  route:        %d stages (%s → %s)",
             len(tables.route), tables.route[0].name, tables.route[-1].name)
    return game_config, tables


# ===================================================================
# 2. Initialize persistence layer
# ===================================================================


async def init_persistence(game_config: GameConfig) -> tuple[Database, PlayerStore]:
    """Open the database and wrap it in a write-behind store."""
    log.info("Initializing persistence …")
    database = Database(game_config.db_path)
    await database.connect()
    return database, PlayerStore(database)


# ===================================================================
# 3. Create services
# ===================================================================


def create_services(
    game_config: GameConfig,
    database: Database,
    player_store: PlayerStore,
    tables: EconomyTables = DEFAULT_TABLES,
) -> Services:
    """Instantiate all services with proper dependency injection."""
    log.info("Creating services …")
    gc = game_config
    event_bus = EventBus()
    player_service = PlayerService(event_bus, tables)
    auth_service = AuthService(database, gc)
    router = Router()
    server = Server(
        router,
        host=gc.ws_host,
        port=gc.ws_port,
        ping_interval=gc.ws_ping_interval,
        ping_timeout=gc.ws_ping_timeout,
        max_size=gc.ws_max_message_size,
    )
    game_loop = GameLoop(event_bus, player_service, player_store, server, gc)
    log.info("  all services created")

    return Services(
        game_config=gc,
        event_bus=event_bus,
        database=database,
        player_store=player_store,
        player_service=player_service,
        auth_service=auth_service,
        router=router,
        server=server,
        game_loop=game_loop,
    )


# ===================================================================
# 4. Wire up event handlers
# ===================================================================


def wire_events(services: Services) -> None:
    """Register event handlers on the EventBus."""
    log.info("Wiring event handlers …")
    bus = services.event_bus

    bus.on(PlayerConnected, lambda evt: log.info(
        "Player %s connected (uid=%d)", evt.nickname, evt.uid))
    bus.on(PlayerDisconnected, lambda evt: log.info(
        "Player uid=%d left — %d online", evt.uid, len(services.player_service.all_sessions)))
    bus.on(StageReached, lambda evt: log.info(
        "Player uid=%d reached %s (stage %d)", evt.uid, evt.stage_name, evt.route_index))
    bus.on(PlayerRebirthed, lambda evt: log.info(
        "Player uid=%d rebirthed — %d prestige points", evt.uid, evt.prestige_points))
    bus.on(AutosaveDue, lambda evt: log.info(
        "Auto-save started at tick %d for %d players",
        evt.tick, len(services.player_service.all_sessions)))

    log.info("  event handlers registered")


# ===================================================================
# 5. Start network servers
# ===================================================================


async def start_network(services: Services) -> None:
    """Start the WebSocket server and REST API so clients can connect."""
    log.info("Starting network servers …")
    register_all_handlers(services)
    await services.server.start()

    from moondust.network.rest_api import create_app
    import uvicorn

    rest_app = create_app(services)
    config = uvicorn.Config(
        rest_app,
        host="0.0.0.0",
        port=services.game_config.rest_port,
        log_level="info",
        access_log=False,
    )
    rest_server = uvicorn.Server(config)
    services.rest_server = rest_server
    services.game_loop.spawn(rest_server.serve())
    log.info("  REST API listening on http://0.0.0.0:%d", services.game_config.rest_port)


# ===================================================================
# 6. Start game loop
# ===================================================================


async def start_game_loop(services: Services) -> None:
    """Run the game loop until a shutdown signal, then clean up."""
    log.info("Starting game loop …")
    loop = asyncio.get_running_loop()

    def _request_shutdown() -> None:
        log.info("Shutdown signal received — stopping …")
        services.game_loop.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _request_shutdown)

    await services.game_loop.run()

    # --- Cleanup after loop exits ---
    log.info("Shutting down …")
    await shutdown(services)


async def shutdown(services: Services) -> None:
    """Persist every live player and close all components."""
    if services.server is not None:
        await services.server.stop()
    if services.rest_server is not None:
        services.rest_server.should_exit = True
    if services.player_store is not None and services.player_service is not None:
        for session in services.player_service.all_sessions.values():
            services.player_store.mark(session.state)
        saved = await services.player_store.flush()
        log.info("  final save: %d players", saved)
    if services.game_loop is not None:
        await services.game_loop.drain()
    if services.database is not None:
        await services.database.close()
        log.info("  database closed")
    log.info("  goodbye")


# ===================================================================
# Entry points
# ===================================================================


async def _start(config_dir: str = DEFAULT_CONFIG_DIR) -> None:
    """Initialize and run all server components."""
    game_config, tables = load_configuration(config_dir)
    logging.getLogger().setLevel(game_config.log_level.upper())
    log.info("=== Moon Dust server starting ===")

    database, player_store = await init_persistence(game_config)
    services = create_services(game_config, database, player_store, tables)
    wire_events(services)
    await start_network(services)
    await start_game_loop(services)


def main() -> None:
    """Entry point for the game server."""
    parser = argparse.ArgumentParser(description="Moon Dust idle game server")
    parser.add_argument("--config", default=DEFAULT_CONFIG_DIR,
                        help="configuration directory (default: %(default)s)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    asyncio.run(_start(config_dir=args.config))


if __name__ == "__main__":
    main()
