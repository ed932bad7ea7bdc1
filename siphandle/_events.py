"""
Typed event channel for SIP plugin events.

This module provides the publish/subscribe side of a handle: an emitter keyed
by event kind, and a declarative, decorator-based base class for grouping
subscribers.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Callable, Optional

from ._types import EventCallback, EventKind, EventKindLike, HandleEvent
from ._utils import logger


def _normalize(kind: EventKindLike) -> str:
    if isinstance(kind, (EventKind, HandleEvent)):
        return kind.value
    return str(kind)


# ============================================================================
# Event Emitter
# ============================================================================


class EventEmitter:
    """
    Registry of callbacks keyed by event kind.

    Emitting never blocks: synchronous callbacks run in place, coroutine
    callbacks are scheduled on the running loop. Callback errors are logged
    and never reach the emitter.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventCallback]] = {}
        self._tasks: set[asyncio.Future] = set()

    def on(self, kind: EventKindLike, callback: EventCallback) -> EventCallback:
        """
        Subscribe a callback to an event kind.

        Args:
            kind: Event kind (EventKind, HandleEvent or its string value)
            callback: Called with the event data

        Returns:
            The callback, so this can be used as a decorator factory target
        """
        self._listeners.setdefault(_normalize(kind), []).append(callback)
        return callback

    def off(self, kind: EventKindLike, callback: EventCallback) -> None:
        """Unsubscribe a callback; unknown callbacks are ignored."""
        listeners = self._listeners.get(_normalize(kind), [])
        if callback in listeners:
            listeners.remove(callback)

    def once(self, kind: EventKindLike, callback: EventCallback) -> EventCallback:
        """Subscribe a callback that is removed after its first call."""

        def wrapper(data):
            self.off(kind, wrapper)
            return callback(data)

        return self.on(kind, wrapper)

    def listeners(self, kind: EventKindLike) -> list[EventCallback]:
        """Return a copy of the callbacks subscribed to a kind."""
        return list(self._listeners.get(_normalize(kind), []))

    def emit(self, kind: EventKindLike, data=None) -> bool:
        """
        Publish an event to every subscriber of its kind.

        Returns:
            True if at least one subscriber was called
        """
        listeners = self.listeners(kind)
        for callback in listeners:
            name = getattr(callback, "__name__", callback)
            try:
                result = callback(data)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(
                        lambda t, name=name: self._on_task_done(t, name)
                    )
            except Exception as e:
                logger.error(f"Error in event callback {name}: {e}")
        return bool(listeners)

    def _on_task_done(self, task: asyncio.Future, name) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error in event callback {name}: {error}")


# ============================================================================
# Event Handler Decorator
# ============================================================================


def event_handler(*kinds: EventKindLike):
    """
    Decorator marking a method as subscriber for one or more event kinds.

    Example:
        >>> class MyEvents(Events):
        ...     @event_handler(EventKind.INCOMING)
        ...     def on_incoming(self, data):
        ...         print(f"Incoming call from {data['username']}")
        ...
        ...     @event_handler(EventKind.RINGING, EventKind.PROCEEDING)
        ...     def on_progress(self, data):
        ...         print("Remote party alerted")
    """

    def decorator(func: Callable) -> Callable:
        func._event_handler_kinds = tuple(_normalize(k) for k in kinds)
        func._is_event_handler = True
        return func

    return decorator


class Events:
    """
    Base class for declarative SIP event subscribers.

    Inherit from this class, decorate methods with ``@event_handler(...)``
    and bind an instance to a handle:

        >>> handle.events = MyEvents()
    """

    # Class-level reference to decorator for standalone use
    event_handler = staticmethod(event_handler)

    def __init__(self) -> None:
        self._handlers: list[tuple[Callable, tuple[str, ...]]] = []
        self._bound: Optional[EventEmitter] = None
        self._discover_handlers()

    def _discover_handlers(self) -> None:
        """Discover all methods decorated with @event_handler."""
        for name in dir(self):
            if name.startswith("_") or name == "event_handler":
                continue

            attr = getattr(self, name)
            if callable(attr) and getattr(attr, "_is_event_handler", False):
                self._handlers.append((attr, attr._event_handler_kinds))

        logger.debug(
            f"Discovered {len(self._handlers)} event handlers in {self.__class__.__name__}"
        )

    def bind(self, emitter: EventEmitter) -> None:
        """Subscribe every discovered handler to an emitter."""
        if self._bound is not None:
            self.unbind()
        for handler, kinds in self._handlers:
            for kind in kinds:
                emitter.on(kind, handler)
        self._bound = emitter

    def unbind(self) -> None:
        """Remove every discovered handler from the bound emitter."""
        if self._bound is None:
            return
        for handler, kinds in self._handlers:
            for kind in kinds:
                self._bound.off(kind, handler)
        self._bound = None
