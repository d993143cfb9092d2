"""
In-process event bus for settlement notifications.

The settlement service publishes after a unit of work commits. Handlers run
synchronously on the publishing thread, highest priority first and in
subscription order within a priority. A failing handler is logged and skipped.
Settlements run on many threads, so the subscriber table and the history sit
behind one re-entrant lock; handlers themselves run outside it.
"""

import threading
import time
from collections import deque
from datetime import datetime
from typing import Any, Callable, NamedTuple, Optional, Protocol, TypeVar, Union, overload

from lotledger.events.events import BaseEvent
from lotledger.system import LoggerFactory

EventT = TypeVar("EventT", bound=BaseEvent)
Handler = Callable[[Any], None]

logger = LoggerFactory.get_logger()


class IEventBus(Protocol):
    """What the settlement service needs from a bus."""

    def publish(self, event: BaseEvent) -> None: ...

    def subscribe(
        self,
        event_type: Union[str, type[BaseEvent]],
        handler: Handler,
        priority: int = 0,
    ) -> "SubscriptionToken": ...

    def unsubscribe(self, event_type: str, handler: Handler) -> None: ...

    def get_history(
        self,
        event_type: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[BaseEvent]: ...

    def clear_history(self) -> None: ...


class _Subscriber(NamedTuple):
    priority: int
    handler: Handler


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None) or repr(handler)


def _resolve_event_type(event_type: Union[str, type[BaseEvent]]) -> str:
    if isinstance(event_type, str):
        return event_type
    declared = event_type.model_fields.get("event_type")
    if declared is None or not isinstance(declared.default, str):
        raise ValueError(f"Event class {event_type.__name__} missing event_type default")
    return declared.default


class SubscriptionToken:
    """Handle returned by subscribe(); unsubscribes once, also as a context manager."""

    def __init__(self, bus: "EventBus", event_type: str, handler: Handler):
        self.bus = bus
        self.event_type = event_type
        self.handler = handler
        self._active = True

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self.bus.unsubscribe(self.event_type, self.handler)

    def __enter__(self) -> "SubscriptionToken":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()


class EventBus:
    """
    Synchronous, thread-safe publish/subscribe.

    Args:
        max_history: Number of published events retained, oldest dropped first.
            0 keeps everything.
        display_events: Event types echoed to the console through the
            lotledger.events.<type> loggers; ["*"] echoes all of them.

    Example:
        bus = EventBus(display_events=["*"])
        with bus.subscribe(PositionClosedEvent, notify):
            service.settle(request)
    """

    def __init__(self, max_history: int = 10_000, display_events: Optional[list[str]] = None):
        self._table: dict[str, list[_Subscriber]] = {}
        self._dispatch_order: dict[str, tuple[_Subscriber, ...]] = {}
        self._history: deque[BaseEvent] = deque(maxlen=max_history or None)
        self._display_events = frozenset(display_events or ())
        self._lock = threading.RLock()

    def _should_display_event(self, event: BaseEvent) -> bool:
        return "*" in self._display_events or event.event_type in self._display_events

    def _ordered(self, event_type: str) -> tuple[_Subscriber, ...]:
        with self._lock:
            order = self._dispatch_order.get(event_type)
            if order is None:
                # sorted() is stable, so equal priorities keep subscription order
                order = tuple(sorted(self._table.get(event_type, ()), key=lambda s: -s.priority))
                self._dispatch_order[event_type] = order
            return order

    def publish(self, event: BaseEvent) -> None:
        """Record the event, echo it when configured, then run its handlers."""
        started = time.perf_counter()
        with self._lock:
            self._history.append(event)

        if self._should_display_event(event):
            LoggerFactory.get_logger(f"lotledger.events.{event.event_type}").info(
                "event.display", **event.model_dump()
            )

        subscribers = self._ordered(event.event_type)
        failures = 0
        for subscriber in subscribers:
            try:
                subscriber.handler(event)
            except Exception as exc:
                failures += 1
                logger.error(
                    "event_bus.handler.failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    handler=_handler_name(subscriber.handler),
                    error=repr(exc),
                )
        logger.debug(
            "event_bus.event.published",
            event_type=event.event_type,
            event_id=event.event_id,
            handlers=len(subscribers),
            failures=failures,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )

    @overload
    def subscribe(self, event_type: str, handler: Callable[[BaseEvent], None], priority: int = 0) -> SubscriptionToken: ...
    @overload
    def subscribe(self, event_type: type[EventT], handler: Callable[[EventT], None], priority: int = 0) -> SubscriptionToken: ...

    def subscribe(self, event_type: Union[str, type[BaseEvent]], handler: Handler, priority: int = 0) -> SubscriptionToken:
        """Register a handler for an event type name or event class. Higher priority runs first."""
        name = _resolve_event_type(event_type)
        with self._lock:
            self._table.setdefault(name, []).append(_Subscriber(priority, handler))
            self._dispatch_order.pop(name, None)
        logger.debug("event_bus.handler.subscribed", event_type=name, handler=_handler_name(handler), priority=priority)
        return SubscriptionToken(self, name, handler)

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        """Remove every registration of handler for event_type; unknown handlers are ignored."""
        with self._lock:
            current = self._table.get(event_type)
            if not current:
                return
            kept = [s for s in current if s.handler != handler]
            if len(kept) == len(current):
                return
            self._table[event_type] = kept
            self._dispatch_order.pop(event_type, None)
        logger.debug("event_bus.handler.unsubscribed", event_type=event_type, handler=_handler_name(handler))

    def get_history(
        self,
        event_type: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[BaseEvent]:
        """Published events, oldest first. limit keeps the most recent matches."""
        with self._lock:
            snapshot = list(self._history)
        matches = [
            e
            for e in snapshot
            if (event_type is None or e.event_type == event_type) and (since is None or e.occurred_at >= since)
        ]
        return matches[-limit:] if limit is not None else matches

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def get_subscriber_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._table.get(event_type, ()))
