"""Typed event bus — decoupled communication between loop, handlers and main.

Handlers run synchronously inside :meth:`EventBus.emit`; anything slow
must be scheduled as a task by the handler itself.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, TypeVar, Type

T = TypeVar("T")


# -- Session events ------------------------------------------------------

@dataclass(frozen=True)
class PlayerConnected:
    """A player authenticated and joined the session map."""
    uid: int
    nickname: str


@dataclass(frozen=True)
class PlayerDisconnected:
    """A player's connection closed and the session was removed."""
    uid: int


# -- Progression events --------------------------------------------------

@dataclass(frozen=True)
class StageReached:
    """A tick moved a player onto the next route stage."""
    uid: int
    route_index: int
    stage_name: str


@dataclass(frozen=True)
class PlayerRebirthed:
    """A player completed the route and reset for a prestige point."""
    uid: int
    prestige_points: int


# -- Loop events ---------------------------------------------------------

@dataclass(frozen=True)
class AutosaveDue:
    """The loop reached an auto-save tick."""
    tick: int


# -- Event Bus -----------------------------------------------------------

class EventBus:
    """Simple synchronous event bus with typed events.

    Usage:
        bus = EventBus()
        bus.on(StageReached, lambda e: print(e.stage_name))
        bus.emit(StageReached(uid=1, route_index=1, stage_name="Lua"))
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def on(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """Register a handler for an event type."""
        self._handlers[event_type].append(handler)

    def off(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """Unregister a handler."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: object) -> None:
        """Emit an event to all registered handlers."""
        for handler in self._handlers.get(type(event), []):
            handler(event)

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
