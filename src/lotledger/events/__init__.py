"""
Event infrastructure for LotLedger.

- Event classes: immutable Pydantic events validated against JSON Schema contracts
  - BaseEvent: envelope fields only
  - ValidatedEvent: domain events with payload validation
  - ExitSettledEvent, PositionClosedEvent: settlement notifications
- EventBus: synchronous publish/subscribe for the orchestrator
"""

from lotledger.events.event_bus import EventBus, IEventBus, SubscriptionToken
from lotledger.events.events import BaseEvent, ExitSettledEvent, PositionClosedEvent, ValidatedEvent

__all__ = [
    "BaseEvent",
    "ValidatedEvent",
    "ExitSettledEvent",
    "PositionClosedEvent",
    "IEventBus",
    "EventBus",
    "SubscriptionToken",
]
