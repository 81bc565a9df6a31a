"""
Common plumbing for questlog services.

Every service receives its ``ConfigManager``, ``EventBus`` and logger from
the ``ServiceContainer``; this base class wraps the three so subclasses
read tuning values, publish domain events and log operations the same way.
Persistence goes through the Store port held by each subclass; nothing
here touches sessions or transactions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from logging import Logger

    from questlog.core.config.manager import ConfigManager
    from questlog.core.event.bus import EventBus


class BaseService:
    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    # ========================================================================
    # Configuration
    # ========================================================================

    def get_config(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def require_config(self, key: str) -> Any:
        """Like ``get_config`` but raises ``ConfigurationError`` when unset."""
        return self._config.require(key)

    # ========================================================================
    # Events and logging
    # ========================================================================

    async def emit_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        """
        Publish ``payload`` on the bus. Listener failures and timeouts are
        contained by the bus, so a broken subscriber never fails the
        operation that emitted the event.
        """
        self.log.debug("Publishing %s", event_type, extra={"event_type": event_type})
        await self._events.publish(event_type, dict(payload))

    def log_operation(self, operation: str, **fields: Any) -> None:
        self.log.info(operation, extra={"operation": operation, **fields})
