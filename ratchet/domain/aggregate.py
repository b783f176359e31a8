from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from pydantic import BaseModel, Field

from ..routing import setup_command_routing, setup_event_applying
from .event import Event, VersionedEvent
from .exceptions import IdentityMismatch

if TYPE_CHECKING:
    from ..routing import MessageRouter, TransitionTable

A = TypeVar("A", bound="Aggregate")


class Aggregate(BaseModel):
    """Base class for all event-sourced aggregates.

    An aggregate is the consistency boundary for state changes. Its state is
    never assigned directly by business logic: behavior operations decide
    which events happen and transitions apply them. Because replay and new
    events go through the same transitions, replaying an aggregate's history
    rebuilds exactly the state that the original commands produced.

    Behavior operations are marked with ``@handles_command`` and transitions
    with ``@applies_event``. The set of transitions is closed per aggregate
    class: applying any other event kind raises UnsupportedEventKind.

    Examples:
        >>> class UserRenamed(Event):
        ...     name: str
        >>>
        >>> class RenameUser(Command[None]):
        ...     name: str
        >>>
        >>> class User(Aggregate):
        ...     name: str = ""
        ...
        ...     @handles_command
        ...     def rename(self, cmd: RenameUser) -> None:
        ...         if not cmd.name:
        ...             raise InvalidOperation("Name must not be empty")
        ...         self.apply_new(UserRenamed(aggregate_id=self.id, name=cmd.name))
        ...
        ...     @applies_event
        ...     def on_renamed(self, evt: UserRenamed) -> None:
        ...         self.name = evt.name
        >>>
        >>> user = User(id="U1")
        >>> user.handle(RenameUser(aggregate_id="U1", name="Alice"))
        >>> user.name, user.version
        ('Alice', 1)

    Attributes:
        id: Identifier of this aggregate instance.
        version: Number of events applied so far, historical and staged.
        staged: Events applied by behavior operations that have not been
            saved yet. Excluded from serialization.
    """

    id: str
    version: int = 0
    staged: list[Event] = Field(default_factory=list, exclude=True)

    _command_router: ClassVar["MessageRouter"]
    _transitions: ClassVar["TransitionTable"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Set up command routing and the transition table when a subclass is defined."""
        super().__init_subclass__(**kwargs)  # type: ignore[arg-type]
        cls._command_router = setup_command_routing(cls)
        cls._transitions = setup_event_applying(cls)

    @classmethod
    def aggregate_kind(cls) -> str:
        return cls.__name__

    @classmethod
    def handled_commands(cls) -> list[type]:
        """Command types this aggregate has behavior operations for."""
        return cls._command_router.message_types()

    @classmethod
    def applied_events(cls) -> list[type[Event]]:
        """Event types this aggregate's transition table recognises."""
        return list(cls._transitions)

    @classmethod
    def from_history(cls: type[A], aggregate_id: str, history: Sequence[VersionedEvent[Any]]) -> A | None:
        """Rebuild an aggregate from its history.

        Returns:
            The replayed aggregate, or None when there is no history.
        """
        if not history:
            return None
        aggregate = cls(id=aggregate_id)
        aggregate.replay(history)
        return aggregate

    @property
    def persisted_version(self) -> int:
        """Version of the aggregate before any staged event."""
        return self.version - len(self.staged)

    def handle(self, command: BaseModel) -> Any:
        """Route a command to its behavior operation.

        Raises:
            MissingCommandHandler: If the aggregate has no behavior for the command.
        """
        return self._command_router.route(self, command)

    def apply_new(self, event: Event) -> None:
        """Apply a new event produced by a behavior operation and stage it.

        Raises:
            IdentityMismatch: If the event targets another aggregate.
            UnsupportedEventKind: If the aggregate has no transition for the event.
        """
        if event.aggregate_id != self.id:
            raise IdentityMismatch(self.id, event.aggregate_id)
        self._transitions.apply(self, event)
        self.version += 1
        self.staged.append(event)

    def replay(self, history: Sequence[VersionedEvent[Any]]) -> None:
        """Apply historical events in sequence order.

        Replayed events are never staged. After replay the version equals
        the sequence number of the last event.

        Raises:
            IdentityMismatch: If an event belongs to another aggregate.
            ValueError: If the history is not contiguous with the current version.
        """
        for versioned in history:
            if versioned.aggregate_id != self.id:
                raise IdentityMismatch(self.id, versioned.aggregate_id)
            if versioned.sequence_number != self.version + 1:
                raise ValueError(
                    f"History of {self.aggregate_kind()} {self.id!r} is not contiguous: "
                    f"expected sequence {self.version + 1}, got {versioned.sequence_number}"
                )
            self._transitions.apply(self, versioned.event)
            self.version = versioned.sequence_number

    def changed_since(self, version: int) -> bool:
        return self.version > version

    def staged_events(self) -> list[Event]:
        return list(self.staged)

    def mark_staged_persisted(self) -> None:
        """Forget staged events once the repository has appended them.

        The version is unchanged: the staged events are now history.
        """
        self.staged.clear()
