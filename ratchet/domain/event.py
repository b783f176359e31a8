from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID


def utc_now() -> datetime:
    """Get the current UTC timestamp.

    Returns:
        Current datetime with UTC timezone information
    """
    return datetime.now(tz=timezone.utc)


class Event(BaseModel):
    """Immutable fact describing something that happened to an aggregate.

    Subclasses declare the payload fields. The event kind is the class name
    unless ``event_kind`` is overridden. Events carry no ordering of their
    own: their position in an aggregate's stream is assigned when they are
    saved and lives on the surrounding ``VersionedEvent``.

    Examples:
        >>> class UserRenamed(Event):
        ...     name: str
        >>>
        >>> event = UserRenamed(aggregate_id="U1", name="Alice")
        >>> event.event_kind()
        'UserRenamed'
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str = Field(description="ID of the aggregate this event targets")

    @classmethod
    def event_kind(cls) -> str:
        return cls.__name__


T = TypeVar("T", bound=Event)


class VersionedEvent(BaseModel, Generic[T]):
    """An event together with its position in the aggregate's stream.

    Versioned events are created by the repository at save time and are the
    unit of persistence and replay. Sequence numbers start at 1 and grow by
    one per event for a given aggregate with no gaps.

    Attributes:
        id: Unique identifier for this stored event
        aggregate_id: ID of the aggregate that produced this event
        sequence_number: Position in the aggregate's event stream (1-indexed)
        event: The typed event payload
        timestamp: When the event was saved (UTC timezone)
        correlation_id: Correlation ID of the operation that produced the event
        causation_id: ID of what directly caused the event (typically the command_id)
    """

    model_config = ConfigDict(frozen=True)

    id: ULID = Field(
        default_factory=ULID,
        description="Unique identifier for this event instance",
    )
    aggregate_id: str = Field(description="ID of the aggregate that produced this event")
    sequence_number: int = Field(
        ge=1,
        description="Position in aggregate's event stream (1-indexed, gap-free)",
    )
    event: T = Field(description="Typed event payload")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event was persisted (UTC timezone)",
    )
    correlation_id: ULID | None = Field(
        default=None,
        description="Correlation ID for tracing the entire logical operation",
    )
    causation_id: ULID | None = Field(
        default=None,
        description="ID of what directly caused this event (typically the command_id)",
    )

    @property
    def event_kind(self) -> str:
        return self.event.event_kind()

    @property
    def key(self) -> tuple[str, int]:
        """The (aggregate id, sequence number) pair the store keeps unique."""
        return (self.aggregate_id, self.sequence_number)


class EventSummary(BaseModel):
    """Lightweight notification published for a committed event.

    Summaries deliberately exclude the event payload so that subscribers
    stay decoupled from the event store schema. Subscribers that need the
    payload load it from the event store.
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str
    aggregate_kind: str
    sequence_number: int
    event_kind: str

    @classmethod
    def of(cls, versioned: VersionedEvent[Any], aggregate_kind: str) -> "EventSummary":
        return cls(
            aggregate_id=versioned.aggregate_id,
            aggregate_kind=aggregate_kind,
            sequence_number=versioned.sequence_number,
            event_kind=versioned.event_kind,
        )
