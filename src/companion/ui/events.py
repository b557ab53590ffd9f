"""Typed event bus used to observe panel lifecycle and callback routing.

Components publish small dataclass events instead of calling each other,
which keeps the registry, the router and any UI listeners independent.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for every event published on an :class:`EventBus`."""


# =============================================================================
# Panel events
# =============================================================================


@dataclass(slots=True)
class PanelRegistered(Event):
    """A surface instance joined the live set.

    Attributes:
        instance_id: Identity of the registered instance.
        count: Number of live instances after registration.
    """

    instance_id: str
    count: int


@dataclass(slots=True)
class PanelUnregistered(Event):
    """A surface instance left the live set."""

    instance_id: str
    count: int


@dataclass(slots=True)
class VisiblePanelChanged(Event):
    """The foreground instance changed; ``None`` when no panel is visible."""

    instance_id: str | None


# =============================================================================
# Callback events
# =============================================================================


@dataclass(slots=True)
class CallbackRouted(Event):
    """An external callback finished routing.

    Attributes:
        route: Path of the callback (``/auth``, ``/openrouter``...).
        outcome: Value of the :class:`~companion.callbacks.router.CallbackOutcome`.
        instance_id: Target instance, when one was resolved.
    """

    route: str
    outcome: str
    instance_id: str | None = None


@dataclass(slots=True)
class CallbackRejected(Event):
    """An auth callback failed state validation."""

    route: str
    reason: str
    instance_id: str | None = None


_QUIET_EVENT_TYPES: set[type] = {VisiblePanelChanged}


class EventBus(Generic[E]):
    """Publish/subscribe bus keyed by event class.

    Bound methods are held through :class:`weakref.WeakMethod` so a disposed
    listener object drops out on its own; plain functions are held strongly.
    Not thread-safe: publish from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` synchronously to every live handler of its type.

        A handler that raises is logged and the remaining handlers still run.
        """

        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s", _handler_name(handler), event_type.__name__
                )
        for handler_ref in dead:
            handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    __slots__ = ("_target", "_weak")

    def __init__(self, target: Any, weak: bool) -> None:
        self._target = target
        self._weak = weak

    @classmethod
    def create(cls, handler: Handler) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), weak=True)
            except TypeError:
                pass
        return cls(handler, weak=False)

    def resolve(self) -> Handler | None:
        if self._weak:
            return self._target()
        return self._target

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "PanelRegistered",
    "PanelUnregistered",
    "VisiblePanelChanged",
    "CallbackRouted",
    "CallbackRejected",
]
