"""
Base class for the engine's async services.

A service holds the per-user lock, loads aggregates through the store, runs
the pure rules, persists, and only then publishes the recorded domain
events. Game rules themselves never live here.

    class GamificationService(BaseService):
        def __init__(self, store, event_bus):
            super().__init__(event_bus, get_logger(__name__))
            self.store = store
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from questify.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from questify.core.event.bus import EventBus
    from questify.domain.models.base import DomainEvent


class BaseService:
    def __init__(self, event_bus: EventBus, logger: Logger) -> None:
        self._events = event_bus
        self.log = logger

    async def emit_domain_events(self, events: Iterable[DomainEvent]) -> None:
        """Publish in recording order, stamping each payload with `occurred_at`."""
        for event in events:
            await self._events.publish(
                event.event_name,
                {**event.payload, "occurred_at": event.occurred_at.isoformat()},
            )

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(f"Service operation: {operation}", extra={"operation": operation, **context})

    def validate_positive_int(self, value: int, name: str) -> None:
        """
        Raises:
            ValidationError: If value is not a positive int (bools rejected)
        """
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(name, f"must be a positive integer, got {value!r}")

    def validate_not_blank(self, value: str, name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, "must be a non-empty string")
