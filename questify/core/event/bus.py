"""
Async pub/sub for engine results.

The engine publishes its events (level-ups, unlocks, quest completions) only
after the writes behind them have committed. Notification collaborators
subscribe by exact name or `*` wildcard; a failing or slow listener is
logged and counted, never propagated to the publisher.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import Counter
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from questify.core.event.registry import ListenerRegistry
from questify.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from questify.core.logging.logger import get_logger

if TYPE_CHECKING:
    from questify.core.config.manager import ConfigManager

logger = get_logger(__name__)

DEFAULT_LISTENER_TIMEOUT = 5.0


class EventBus:
    """
    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("achievement.unlocked", show_toast)
    >>> await bus.publish("achievement.unlocked", {"user_id": "u-1", "achievement_id": "first_task"})
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._registry = ListenerRegistry()
        self._published: Counter[str] = Counter()
        self._errors: Counter[str] = Counter()
        self._background: Set[asyncio.Task[Any]] = set()

        self._critical_timeout = self._timeout(
            "core.event.listener_timeout.critical_seconds", critical_timeout_seconds
        )
        self._high_timeout = self._timeout(
            "core.event.listener_timeout.high_seconds", high_timeout_seconds
        )

    def _timeout(self, key: str, override: Optional[float]) -> float:
        if override is not None:
            return float(override)
        if self._config_manager is None:
            return DEFAULT_LISTENER_TIMEOUT
        value = self._config_manager.get(key, DEFAULT_LISTENER_TIMEOUT)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid listener timeout in config, using default",
                extra={"config_key": key, "value": value},
            )
            return DEFAULT_LISTENER_TIMEOUT

    # ========================================================================
    # SUBSCRIPTION
    # ========================================================================

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe `callback` to an event name or wildcard pattern.

        Returns the listener identifier for `unsubscribe`. Subscribing the
        same identifier to the same pattern twice is a no-op.

        Raises:
            ValueError: If the callback does not take exactly one argument
        """
        try:
            params = inspect.signature(callback).parameters
        except (TypeError, ValueError):
            params = None
        if params is not None and len(params) != 1:
            raise ValueError(
                f"Event listener must take exactly one payload argument, "
                f"'{getattr(callback, '__qualname__', callback)!s}' takes {len(params)}"
            )

        listener = EventListener.create(event_name, callback, priority, identifier, once)
        if not self._registry.add(listener):
            logger.warning(
                "Duplicate event listener ignored",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        return self._registry.remove(event_name, identifier)

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return len(self._registry)
        return self._registry.count_for(event_name)

    # ========================================================================
    # PUBLISH
    # ========================================================================

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Deliver `data` to every matching listener.

        Returns the CRITICAL, HIGH and NORMAL listener results in that order;
        a listener that failed or timed out contributes None. LOW listeners
        are scheduled in the background and contribute nothing.
        """
        self._published[event_name] += 1
        tiers: Dict[ListenerPriority, List[EventListener]] = {p: [] for p in ListenerPriority}
        for listener in self._registry.take(event_name):
            tiers[listener.priority].append(listener)

        results: List[Any] = []
        for listener in tiers[ListenerPriority.CRITICAL]:
            results.append(await self._run(listener, event_name, data, self._critical_timeout))
        for listener in tiers[ListenerPriority.HIGH]:
            results.append(await self._run(listener, event_name, data, self._high_timeout))

        normal = tiers[ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(*(self._run(lst, event_name, data) for lst in normal))
            )

        for listener in tiers[ListenerPriority.LOW]:
            task = asyncio.create_task(self._run(listener, event_name, data))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

        return results

    async def _run(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        timeout: Optional[float] = None,
    ) -> Any:
        try:
            if inspect.iscoroutinefunction(listener.callback):
                call = listener.callback(payload)
            else:
                call = asyncio.get_running_loop().run_in_executor(None, listener.callback, payload)
            if timeout is not None and timeout > 0:
                return await asyncio.wait_for(call, timeout=timeout)
            return await call
        except Exception as exc:
            self._errors[event_name] += 1
            logger.error(
                "Event listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "error_type": type(exc).__name__,
                },
                exc_info=exc,
            )
            return None

    async def drain(self) -> None:
        """Wait for outstanding LOW listeners."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def get_metrics_summary(self) -> Dict[str, Any]:
        return {
            "total_events_published": sum(self._published.values()),
            "events_by_type": dict(self._published),
            "total_errors": sum(self._errors.values()),
            "errors_by_event": dict(self._errors),
            "total_listeners": len(self._registry),
        }
