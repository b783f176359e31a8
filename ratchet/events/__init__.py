"""Event persistence and publication.

This package provides:
- EventStore: Durable, append-only event persistence
- EventPublisher: Delivery of committed event summaries
- EventTypeRegistry: Event class lookup for serializing stores
"""

from .publisher import (
    EventPublisher,
    InMemoryEventPublisher,
    NullEventPublisher,
    RetryingEventPublisher,
    Subscriber,
    SummarySubscription,
)
from .registry import EventTypeRegistry
from .store import EventStore, InMemoryEventStore

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "EventPublisher",
    "InMemoryEventPublisher",
    "NullEventPublisher",
    "RetryingEventPublisher",
    "Subscriber",
    "SummarySubscription",
    "EventTypeRegistry",
]
