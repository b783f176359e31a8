"""Exceptions raised by the ratchet engine.

Every failure surfaces synchronously from command dispatch. Only
``ConcurrencyConflict`` is eligible for automatic retry.
"""

from collections.abc import Sequence


class RatchetError(Exception):
    """Base class for all errors raised by ratchet."""


class ValidationFailure(RatchetError):
    """Raised when a business rule rejects a command.

    Raised from inside an aggregate behavior before any event is staged.
    Never retried.
    """


class InvalidOperation(ValidationFailure):
    """Raised by a behavior operation when the command is invalid for the
    current aggregate state."""


class IdentityMismatch(RatchetError):
    """Raised when an event targets a different aggregate than the one
    applying or storing it."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Event targets aggregate {actual!r}, expected {expected!r}")
        self.expected = expected
        self.actual = actual


class UnsupportedEventKind(RatchetError):
    """Raised when an aggregate is asked to apply an event kind it does not
    recognise. Indicates a data or versioning bug."""

    def __init__(self, aggregate_kind: str, event_kind: str):
        super().__init__(f"{aggregate_kind} cannot apply event kind {event_kind!r}")
        self.aggregate_kind = aggregate_kind
        self.event_kind = event_kind


class ConcurrencyConflict(RatchetError):
    """Raised when an append collides with an existing (aggregate id,
    sequence number) pair.

    This indicates that another process has modified the aggregate
    between when it was loaded and when changes were attempted to be saved.
    """

    def __init__(self, aggregate_id: str, sequence_number: int, message: str | None = None):
        super().__init__(
            message
            or f"Sequence number {sequence_number} already exists for aggregate {aggregate_id!r}"
        )
        self.aggregate_id = aggregate_id
        self.sequence_number = sequence_number


class StorageUnavailable(RatchetError):
    """Raised when the event store cannot be reached. Not retried by ratchet."""


class MissingCommandHandler(RatchetError):
    """Raised when no handler is registered for a command type."""

    def __init__(self, command_kind: str):
        super().__init__(f"No handler registered for command {command_kind!r}")
        self.command_kind = command_kind


class DuplicateCommandHandler(RatchetError):
    """Raised when a second handler is registered for a command type."""

    def __init__(self, command_kind: str):
        super().__init__(f"A handler is already registered for command {command_kind!r}")
        self.command_kind = command_kind


class NestedUnitOfWorkNotSupported(RatchetError):
    """Raised when a unit of work is started while another one is active in
    the same execution context."""


class UnitOfWorkStateError(RatchetError):
    """Raised when a unit of work operation is invoked in the wrong state."""


class PublicationFailed(RatchetError):
    """Raised by publishers when committed summaries could not be delivered."""


class RetriesExhausted(RatchetError):
    """Composed failure raised once the retry policy stops retrying.

    Attributes:
        failures: Every failure observed, most recent first.
    """

    def __init__(self, command_kind: str, failures: Sequence[BaseException]):
        self.command_kind = command_kind
        self.failures: tuple[BaseException, ...] = tuple(failures)
        super().__init__(
            f"Command {command_kind!r} failed after {len(self.failures)} attempt(s): "
            + "; ".join(str(failure) for failure in self.failures)
        )

    @property
    def attempts(self) -> int:
        return len(self.failures)
