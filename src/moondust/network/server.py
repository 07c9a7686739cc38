"""WebSocket server — one connection per player session.

Every connection starts as a guest with a negative UID.  A successful
``auth_request`` rebinds it to the player's UID; from then on the game
loop can push ``game_state`` messages to it with :meth:`Server.send_to`.
Uses the ``websockets`` library with asyncio.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

import websockets
from pydantic import ValidationError
from websockets.asyncio.server import ServerConnection, Server as WSServer

if TYPE_CHECKING:
    from moondust.network.router import Router

log = logging.getLogger(__name__)

DisconnectCallback = Callable[[int], Awaitable[None]]

SUPERSEDED_CLOSE_CODE = 1008


class Server:
    """asyncio WebSocket server with a uid ↔ connection table.

    Args:
        router: Dispatches parsed messages to handlers.
        host: Bind address.
        port: Bind port.
        ping_interval: Seconds between keepalive pings.
        ping_timeout: Seconds to wait for a pong before dropping the client.
        max_size: Largest accepted incoming frame, in bytes.
        on_disconnect: Awaited with the player UID when an authenticated
            connection goes away. Guests never trigger it.
    """

    def __init__(self, router: Router, host: str = "0.0.0.0", port: int = 8765,
                 ping_interval: int = 30, ping_timeout: int = 10,
                 max_size: int = 1_048_576,
                 on_disconnect: Optional[DisconnectCallback] = None) -> None:
        self._router = router
        self._host = host
        self._port = port
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._max_size = max_size
        self._on_disconnect = on_disconnect
        self._connections: dict[int, ServerConnection] = {}  # uid → ws
        self._ws_to_uid: dict[int, int] = {}  # id(ws) → uid
        self._server: Optional[WSServer] = None
        self._next_guest_uid = -1

    # -- Lifecycle -------------------------------------------------------

    async def start(self) -> None:
        self._server = await websockets.serve(
            self._on_connect,
            self._host,
            self._port,
            origins=None,
            ping_interval=self._ping_interval,
            ping_timeout=self._ping_timeout,
            max_size=self._max_size,
        )
        log.info("WebSocket server listening on ws://%s:%d", self._host, self._port)

    async def stop(self) -> None:
        """Close the listening socket and every open connection."""
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        log.info("WebSocket server stopped")

    def set_disconnect_callback(self, callback: DisconnectCallback) -> None:
        self._on_disconnect = callback

    # -- Session table ---------------------------------------------------

    def register_session(self, uid: int, ws: ServerConnection) -> None:
        """Point *uid* at *ws*.

        A guest entry previously held by *ws* is dropped.  If another
        connection already owns *uid* it is closed with code 1008, so a
        player is only ever connected once.
        """
        previous_uid = self._ws_to_uid.get(id(ws))
        if previous_uid is not None and previous_uid != uid:
            self._connections.pop(previous_uid, None)

        current = self._connections.get(uid)
        if current is not None and current is not ws:
            log.info("Player uid=%d connected again — closing the older connection", uid)
            asyncio.ensure_future(current.close(SUPERSEDED_CLOSE_CODE, "Superseded by new connection"))

        self._connections[uid] = ws
        self._ws_to_uid[id(ws)] = uid
        log.debug("Session registered: uid=%d", uid)

    def unregister_session(self, ws: ServerConnection) -> Optional[int]:
        """Forget *ws*. Returns its UID if it still owned that UID.

        A connection that was superseded returns None, so closing it
        leaves the newer session alone.
        """
        uid = self._ws_to_uid.pop(id(ws), None)
        if uid is None or self._connections.get(uid) is not ws:
            return None
        del self._connections[uid]
        return uid

    def get_uid(self, ws: ServerConnection) -> Optional[int]:
        return self._ws_to_uid.get(id(ws))

    @property
    def connected_uids(self) -> list[int]:
        """Authenticated player UIDs, ascending."""
        return sorted(uid for uid in self._connections if uid > 0)

    # -- Sending ---------------------------------------------------------

    async def send_to(self, uid: int, data: dict[str, Any]) -> bool:
        """Push *data* to one player. False if the player is not connected."""
        ws = self._connections.get(uid)
        if ws is None:
            return False
        try:
            await ws.send(json.dumps(data, ensure_ascii=False, default=str))
        except websockets.ConnectionClosed:
            log.debug("Push to uid=%d dropped, connection closed", uid)
            return False
        return True

    async def _send_error(self, ws: ServerConnection, code: str, message: str,
                          request_id: Any = None) -> None:
        reply: dict[str, Any] = {"type": "error", "code": code, "message": message}
        if request_id is not None:
            reply["request_id"] = request_id
        await ws.send(json.dumps(reply, ensure_ascii=False))

    # -- Connection handling ---------------------------------------------

    async def _on_connect(self, ws: ServerConnection) -> None:
        guest_uid = self._next_guest_uid
        self._next_guest_uid -= 1
        self.register_session(guest_uid, ws)
        remote = ws.remote_address
        log.info("Client connected: guest=%d remote=%s", guest_uid, remote)

        try:
            async for raw_msg in ws:
                await self._handle_message(ws, raw_msg)
        except websockets.ConnectionClosed as e:
            log.info("Client disconnected: uid=%s code=%s remote=%s",
                     self.get_uid(ws), e.code, remote)
        except Exception:
            log.exception("Connection error: uid=%s remote=%s", self.get_uid(ws), remote)
        else:
            log.info("Client closed: uid=%s remote=%s", self.get_uid(ws), remote)
        finally:
            await self._close_session(ws)

    async def _close_session(self, ws: ServerConnection) -> None:
        uid = self.unregister_session(ws)
        if uid is None or uid <= 0 or self._on_disconnect is None:
            return
        try:
            await self._on_disconnect(uid)
        except Exception:
            log.exception("Disconnect handling failed for uid=%d", uid)

    async def _handle_message(self, ws: ServerConnection, raw_msg: Any) -> None:
        """Decode one frame, route it and send the reply (if any)."""
        uid = self.get_uid(ws) or 0

        try:
            if isinstance(raw_msg, bytes):
                raw_msg = raw_msg.decode("utf-8")
            data = json.loads(raw_msg)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            await self._send_error(ws, "invalid_json", f"Invalid JSON: {e}")
            return
        if not isinstance(data, dict):
            await self._send_error(ws, "invalid_message", "Message must be a JSON object")
            return

        request_id = data.get("request_id")
        msg_type = data.get("type", "")
        log.debug("Received: type=%s uid=%d", msg_type, uid)

        try:
            response = await self._router.route(data, uid)
        except ValidationError as exc:
            log.info("Invalid message: type=%s uid=%d errors=%d", msg_type, uid, exc.error_count())
            await self._send_error(ws, "invalid_message",
                                   f"Invalid {msg_type or 'untyped'} message", request_id)
            return
        except Exception as exc:
            log.exception("Handler error: type=%s uid=%d", msg_type, uid)
            await self._send_error(ws, "internal_error", str(exc), request_id)
            return

        if response is None:
            return

        # Bind the player UID before replying so pushes reach this ws
        if msg_type == "auth_request" and response.get("success") and response.get("uid"):
            self.register_session(response["uid"], ws)
            log.info("Session authenticated: guest=%d → uid=%d", uid, response["uid"])

        if request_id is not None:
            response["request_id"] = request_id
        await ws.send(json.dumps(response, ensure_ascii=False, default=str))
