"""Domain primitives for event sourcing.

This module contains the core building blocks that users extend to create
their domain models:

- Aggregate: Base class for aggregates that stage events
- Command: Base class for command messages
- Event: Base class for event payloads
- VersionedEvent: An event with its assigned sequence number
- EventSummary: Published notification of a committed event
"""

from .aggregate import Aggregate
from .command import Command
from .event import Event, EventSummary, VersionedEvent, utc_now
from .exceptions import (
    ConcurrencyConflict,
    DuplicateCommandHandler,
    IdentityMismatch,
    InvalidOperation,
    MissingCommandHandler,
    NestedUnitOfWorkNotSupported,
    PublicationFailed,
    RatchetError,
    RetriesExhausted,
    StorageUnavailable,
    UnitOfWorkStateError,
    UnsupportedEventKind,
    ValidationFailure,
)

__all__ = [
    "Aggregate",
    "Command",
    "Event",
    "EventSummary",
    "VersionedEvent",
    "utc_now",
    # Errors
    "RatchetError",
    "ValidationFailure",
    "InvalidOperation",
    "IdentityMismatch",
    "UnsupportedEventKind",
    "ConcurrencyConflict",
    "StorageUnavailable",
    "MissingCommandHandler",
    "DuplicateCommandHandler",
    "NestedUnitOfWorkNotSupported",
    "UnitOfWorkStateError",
    "PublicationFailed",
    "RetriesExhausted",
]
