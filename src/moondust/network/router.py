"""Message router — maps a message ``type`` to its handler.

Every route declares whether it needs an authenticated player.  The
router checks that once, before the handler runs, so action handlers can
assume the sender has a live session.  ``auth_request`` is the only
route open to guest connections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from moondust.models.messages import ErrorResponse, GameMessage, parse_message

log = logging.getLogger(__name__)

Handler = Callable[[GameMessage, int], Awaitable[Optional[dict[str, Any]]]]
SessionCheck = Callable[[int], bool]


def error_reply(code: str, message: str) -> dict[str, Any]:
    """Wire form of an ``error`` message."""
    return ErrorResponse(code=code, message=message).model_dump()


def _guests_only(uid: int) -> bool:
    return False


@dataclass(frozen=True)
class Route:
    handler: Handler
    requires_session: bool = True


class Router:
    """Dispatches parsed messages to handlers.

    Args:
        has_session: Tells whether a UID belongs to a player with a live
            session. Until one is set, every gated route is refused.
    """

    def __init__(self, has_session: Optional[SessionCheck] = None) -> None:
        self._routes: dict[str, Route] = {}
        self._has_session = has_session or _guests_only

    def set_session_check(self, has_session: SessionCheck) -> None:
        self._has_session = has_session

    def register(self, msg_type: str, handler: Handler,
                 requires_session: bool = True) -> None:
        """Bind *handler* to *msg_type*, replacing any earlier binding."""
        self._routes[msg_type] = Route(handler, requires_session)
        log.debug("Route registered: %s (session %s)",
                  msg_type, "required" if requires_session else "optional")

    @property
    def registered_types(self) -> list[str]:
        return list(self._routes)

    async def route(self, raw: dict[str, Any], sender_uid: int) -> Optional[dict[str, Any]]:
        """Validate *raw* and run its handler.

        Returns the handler's reply, or an error reply for an unknown type
        or a sender without a session.

        Raises:
            pydantic.ValidationError: If *raw* does not fit its message model.
        """
        message = parse_message(raw)
        entry = self._routes.get(message.type)
        if entry is None:
            log.debug("No route for message type: %s", message.type)
            return error_reply("unknown_message", f"Unknown message type: {message.type!r}")
        if entry.requires_session and not self._has_session(sender_uid):
            return error_reply("not_authenticated", "Player not authenticated.")
        return await entry.handler(message, sender_uid)
