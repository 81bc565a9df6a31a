"""
questlog EventBus: async publish/subscribe for domain events.

Purpose
-------
Decouples the gamification and schedule services from whatever wants to
react to their outcomes (notifications, analytics, audit sinks). Services
publish ``gamification.leveled_up`` and friends; subscribers never run inside
the store's transactions.

Responsibilities
----------------
- Register/unregister listeners, optionally with wildcards (``"gamification.*"``)
- Run matching listeners in priority order, each under a timeout
- Isolate failures: one failing or slow listener never blocks the others
  and never fails the publishing operation

Design Decisions
----------------
- Instance-based, created by the ServiceContainer.
- Sync and async callbacks are both accepted.
- Wildcards follow shell-style matching on the dotted event name.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from dataclasses import dataclass, field
from enum import IntEnum
from fnmatch import fnmatchcase
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from questlog.core.logging.logger import get_logger

logger = get_logger(__name__)

EventPayload = Dict[str, Any]
CallbackType = Callable[[EventPayload], Union[Awaitable[Any], Any]]


class ListenerPriority(IntEnum):
    """Lower value runs first."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


@dataclass(slots=True)
class EventListener:
    pattern: str
    callback: CallbackType
    priority: ListenerPriority = ListenerPriority.NORMAL
    identifier: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    once: bool = False

    def matches(self, event_name: str) -> bool:
        if "*" not in self.pattern and "?" not in self.pattern:
            return self.pattern == event_name
        return fnmatchcase(event_name, self.pattern)


class EventBus:
    """
    Async pub/sub with wildcard routing and per-listener error isolation.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("gamification.leveled_up", on_level_up)
    >>> await bus.publish("gamification.leveled_up", {"user_id": "u1", "new_level": 3})
    """

    def __init__(self, *, listener_timeout_seconds: float = 5.0) -> None:
        self._listeners: List[EventListener] = []
        self._listener_timeout = float(listener_timeout_seconds)
        self._published = 0
        self._listener_errors = 0

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """Register ``callback`` for an event name or wildcard pattern."""
        listener = EventListener(
            pattern=event_name,
            callback=callback,
            priority=priority,
            once=once,
        )
        if identifier:
            listener.identifier = identifier
        self._listeners.append(listener)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        before = len(self._listeners)
        self._listeners = [
            listener
            for listener in self._listeners
            if not (listener.pattern == event_name and listener.identifier == identifier)
        ]
        return len(self._listeners) < before

    def clear(self) -> None:
        self._listeners.clear()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return len(self._listeners)
        return sum(1 for listener in self._listeners if listener.matches(event_name))

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Deliver ``data`` to every matching listener, in priority order.

        Returns the results of listeners that completed successfully.
        """
        self._published += 1
        matching = sorted(
            (listener for listener in self._listeners if listener.matches(event_name)),
            key=lambda listener: listener.priority,
        )
        if not matching:
            return []

        once_ids = {listener.identifier for listener in matching if listener.once}
        if once_ids:
            self._listeners = [
                listener
                for listener in self._listeners
                if listener.identifier not in once_ids
            ]

        results: List[Any] = []
        for listener in matching:
            try:
                outcome = listener.callback(dict(data))
                if inspect.isawaitable(outcome):
                    outcome = await asyncio.wait_for(outcome, self._listener_timeout)
                results.append(outcome)
            except Exception as exc:
                self._listener_errors += 1
                logger.error(
                    "EventBus: listener failed",
                    extra={
                        "event_name": event_name,
                        "listener_id": listener.identifier,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=True,
                )

        logger.debug(
            "EventBus: event published",
            extra={"event_name": event_name, "listener_count": len(matching)},
        )
        return results

    def get_metrics_summary(self) -> Dict[str, int]:
        return {
            "listeners": len(self._listeners),
            "published": self._published,
            "listener_errors": self._listener_errors,
        }
