"""Message handlers — central registry of all message type handlers.

Each handler is an async function that receives a parsed GameMessage
and the sender UID, and returns an optional response dict.

The handler signature is::

    async def handle_xyz(message: GameMessage, sender_uid: int) -> dict | None:
        ...

Only ``auth_request`` is open to guests; the router refuses every other
type unless the sender has a live session, so action handlers can rely
on one.  Engine rejections become ``{"type": "error", "code": ...,
"message": ...}`` responses; the player's live state is left untouched in
that case.  Purchases and rebirths are persisted in the background right
after the response is built, so the player never waits on the database.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, TYPE_CHECKING

from moondust.engine.simulation import (
    SimulationError,
    handle_click,
    handle_rebirth,
    handle_spend_prestige,
    handle_upgrade,
)
from moondust.models.messages import AuthResponse, GameMessage
from moondust.network.router import error_reply
from moondust.network.serialization import game_state_message, serialize_player
from moondust.util.events import PlayerConnected, PlayerDisconnected, PlayerRebirthed

if TYPE_CHECKING:
    from moondust.main import Services
    from moondust.models.player import PlayerState

log = logging.getLogger(__name__)

# Module-level reference set by register_all_handlers()
_services: Optional[Services] = None

# Background save tasks, kept referenced until they finish
_pending_saves: set[asyncio.Task] = set()


def _svc() -> Services:
    """Get the Services container. Raises if not initialized."""
    assert _services is not None, "handlers: services not initialized"
    return _services


def _rejected(error: SimulationError) -> dict[str, Any]:
    return error_reply(error.value, error.message)


def _state_reply(state: PlayerState) -> dict[str, Any]:
    return game_state_message(state, _svc().player_service.tables)


def _save_soon(state: PlayerState) -> None:
    """Queue *state* and flush the store in the background."""
    store = _svc().player_store
    if store is None:
        return
    store.mark(state)
    task = asyncio.create_task(store.flush())
    _pending_saves.add(task)
    task.add_done_callback(_pending_saves.discard)


def has_session(uid: int) -> bool:
    """True if *uid* is an authenticated player with a live session."""
    return uid > 0 and _svc().player_service.get(uid) is not None


# ===================================================================
# Auth
# ===================================================================

async def handle_auth_request(
    message: GameMessage, sender_uid: int,
) -> Optional[dict[str, Any]]:
    """Handle ``auth_request`` — bind a guest connection to a stored player.

    A connection authenticates once; switching players needs a new
    connection.
    """
    svc = _svc()
    if sender_uid > 0:
        return error_reply("already_authenticated",
                           "This connection is already bound to a player.")

    token = getattr(message, "token", "")
    if not token:
        return error_reply("auth_failed", "Token not provided.")

    stored = await svc.auth_service.authenticate(token)
    if stored is None:
        return error_reply("auth_failed", "Authentication failed. Invalid token.")

    session = svc.player_service.register(stored)
    svc.event_bus.emit(PlayerConnected(uid=session.uid, nickname=session.state.nickname))
    return AuthResponse(
        success=True,
        uid=session.uid,
        player=serialize_player(session.state, svc.player_service.tables),
    ).model_dump()


# ===================================================================
# Queries
# ===================================================================

async def handle_state_request(
    message: GameMessage, sender_uid: int,
) -> Optional[dict[str, Any]]:
    """Handle ``state_request`` — return the sender's current state."""
    return _state_reply(_svc().player_service.get(sender_uid).state)


# ===================================================================
# Actions
# ===================================================================

async def handle_click_request(
    message: GameMessage, sender_uid: int,
) -> Optional[dict[str, Any]]:
    """Handle ``click`` — accrue one click of production."""
    result = await _svc().player_service.apply(sender_uid, handle_click)
    return _state_reply(result.state)


async def handle_buy_upgrade(
    message: GameMessage, sender_uid: int,
) -> Optional[dict[str, Any]]:
    """Handle ``buy_upgrade`` — buy the next level of a track."""
    track = getattr(message, "track", "")
    result = await _svc().player_service.apply(sender_uid, handle_upgrade, track)
    if not result.ok:
        log.info("Upgrade rejected: uid=%d track=%r reason=%s",
                 sender_uid, track, result.error.value)
        return _rejected(result.error)

    _save_soon(result.state)
    return _state_reply(result.state)


async def handle_rebirth_request(
    message: GameMessage, sender_uid: int,
) -> Optional[dict[str, Any]]:
    """Handle ``rebirth`` — reset the run for a prestige point."""
    svc = _svc()
    result = await svc.player_service.apply(sender_uid, handle_rebirth)
    if not result.ok:
        log.info("Rebirth rejected: uid=%d reason=%s", sender_uid, result.error.value)
        return _rejected(result.error)

    svc.event_bus.emit(PlayerRebirthed(
        uid=sender_uid, prestige_points=result.state.prestige_points,
    ))
    _save_soon(result.state)
    return _state_reply(result.state)


async def handle_spend_prestige_request(
    message: GameMessage, sender_uid: int,
) -> Optional[dict[str, Any]]:
    """Handle ``spend_prestige`` — raise a track's prestige multiplier."""
    track = getattr(message, "track", "")
    result = await _svc().player_service.apply(sender_uid, handle_spend_prestige, track)
    if not result.ok:
        log.info("Prestige spend rejected: uid=%d track=%r reason=%s",
                 sender_uid, track, result.error.value)
        return _rejected(result.error)

    _save_soon(result.state)
    return _state_reply(result.state)


# ===================================================================
# Disconnect
# ===================================================================

async def handle_disconnect(uid: int) -> None:
    """Save and drop a player's session when the connection closes."""
    svc = _svc()
    state = svc.player_service.unregister(uid)
    if state is None:
        log.info("Player %d disconnected without a session", uid)
        return
    log.info("Player %s disconnected (uid=%d)", state.nickname, uid)
    if svc.player_store is not None:
        await svc.player_store.save_now(state)
    svc.event_bus.emit(PlayerDisconnected(uid=uid))


# ===================================================================
# Registration
# ===================================================================

def register_all_handlers(services: Services) -> None:
    """Register all message handlers on the router.

    Called once during startup from ``main.py``.

    Args:
        services: Fully initialized Services container.
    """
    global _services
    _services = services

    router = services.router
    router.set_session_check(has_session)

    # -- Auth (open to guests) -------------------------------------------
    router.register("auth_request", handle_auth_request, requires_session=False)

    # -- Queries ---------------------------------------------------------
    router.register("state_request", handle_state_request)

    # -- Actions ---------------------------------------------------------
    router.register("click", handle_click_request)
    router.register("buy_upgrade", handle_buy_upgrade)
    router.register("rebirth", handle_rebirth_request)
    router.register("spend_prestige", handle_spend_prestige_request)

    if services.server is not None:
        services.server.set_disconnect_callback(handle_disconnect)

    registered = router.registered_types
    log.info("Registered %d message handlers: %s", len(registered), ", ".join(registered))
