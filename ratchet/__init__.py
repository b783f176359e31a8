"""ratchet - event-sourced aggregates and command processing for Python.

This module provides the public API: aggregates replayed from an
append-only event store, a unit of work separating persistence from
publication, and a command dispatcher with optimistic concurrency retries.
"""

from .domain import Aggregate, Command, Event, EventSummary, VersionedEvent
from .routing import applies_event, handles_command, intercepts
from .application import Application, ApplicationBuilder
from .commands import CommandDispatcher, DispatchResult, HandlerRegistry, RetryPolicy
from .config import RatchetSettings
from .unit_of_work import UnitOfWork

__all__ = [
    # Application
    "Application",
    "ApplicationBuilder",
    "RatchetSettings",
    # Domain primitives
    "Aggregate",
    "Command",
    "Event",
    "EventSummary",
    "VersionedEvent",
    # Command processing
    "CommandDispatcher",
    "DispatchResult",
    "HandlerRegistry",
    "RetryPolicy",
    "UnitOfWork",
    # Decorators
    "applies_event",
    "handles_command",
    "intercepts",
]
