"""Async domain event bus."""

from questlog.core.event.bus import EventBus, EventListener, EventPayload, ListenerPriority

__all__ = ["EventBus", "EventListener", "EventPayload", "ListenerPriority"]
