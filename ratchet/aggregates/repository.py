import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Generic, TypeVar

from ..context import get_context
from ..domain import EventSummary, VersionedEvent
from ..events import EventStore

if TYPE_CHECKING:
    from ..domain import Aggregate
    from ..unit_of_work import UnitOfWork

A = TypeVar("A", bound="Aggregate")

LOGGER = logging.getLogger(__name__)


class AggregateFactory(Generic[A]):
    """Factory for creating empty aggregate instances of a specific type."""

    def __init__(self, aggregate_type: type[A]):
        self._aggregate_type = aggregate_type

    def get_type(self) -> type[A]:
        return self._aggregate_type

    def create(self, aggregate_id: str) -> A:
        """Create a new, empty aggregate instance with the given ID."""
        return self._aggregate_type(id=aggregate_id)


class AggregateRepository(Generic[A]):
    """Loads aggregates by replaying their history and saves staged events.

    The repository never caches aggregates: every load replays the event
    store so a retried command always starts from fresh state. It never
    publishes and never retries either. A ConcurrencyConflict raised by the
    event store propagates to the caller, since only the command-level retry
    policy knows whether re-running the whole command is safe.
    """

    __slots__ = ("factory", "aggregate_type", "event_store")

    def __init__(self, aggregate_factory: AggregateFactory[A], event_store: EventStore):
        self.factory = aggregate_factory
        self.aggregate_type = aggregate_factory.get_type()
        self.event_store = event_store

    async def get_by_id(self, aggregate_id: str) -> A | None:
        """Load an aggregate by replaying its history.

        Returns:
            The aggregate, or None when it has no history.
        """
        history = await self.event_store.load(aggregate_id)
        if not history:
            return None
        aggregate = self.factory.create(aggregate_id)
        aggregate.replay(history)
        return aggregate

    async def get_or_create(self, aggregate_id: str) -> A:
        """Load an aggregate, or create an empty one for a first command."""
        aggregate = await self.get_by_id(aggregate_id)
        if aggregate is None:
            aggregate = self.factory.create(aggregate_id)
        return aggregate

    async def save(self, aggregate: A, unit_of_work: "UnitOfWork | None" = None) -> list[EventSummary]:
        """Append the aggregate's staged events to the event store.

        Sequence numbers are assigned here, starting right after the version
        the aggregate was loaded at. When a unit of work is given, the
        appended events and their summaries are recorded in it so they are
        published on commit.

        Returns:
            One summary per appended event, in sequence order.

        Raises:
            ConcurrencyConflict: If another writer already used one of the
                sequence numbers.
        """
        base_version = aggregate.persisted_version
        if not aggregate.changed_since(base_version):
            return []

        ctx = get_context()
        staged = aggregate.staged_events()
        versioned = [
            VersionedEvent(
                aggregate_id=aggregate.id,
                sequence_number=base_version + offset,
                event=event,
                correlation_id=ctx.correlation_id,
                causation_id=ctx.command_id,
            )
            for offset, event in enumerate(staged, start=1)
        ]
        summaries = [EventSummary.of(event, aggregate.aggregate_kind()) for event in versioned]

        await self.event_store.append(aggregate.id, versioned)
        aggregate.mark_staged_persisted()

        LOGGER.debug(
            "Saved %d event(s)",
            len(versioned),
            extra={
                "aggregate_kind": aggregate.aggregate_kind(),
                "aggregate_id": aggregate.id,
                "version": aggregate.version,
            },
        )
        if unit_of_work is not None:
            unit_of_work.record(versioned, summaries)
        return summaries

    @asynccontextmanager
    async def acquire(
        self,
        unit_of_work: "UnitOfWork",
        aggregate_id: str,
        create: bool = True,
    ) -> AsyncIterator[A | None]:
        """Load an aggregate for the duration of a block and save it afterwards.

        The aggregate is saved into ``unit_of_work`` only if the block
        completes and staged new events. If the block raises, the staged
        events are never appended.

        Args:
            unit_of_work: The active unit of work of the current command.
            aggregate_id: The aggregate to load.
            create: Yield an empty aggregate instead of None when the
                aggregate has no history.
        """
        if create:
            aggregate: A | None = await self.get_or_create(aggregate_id)
        else:
            aggregate = await self.get_by_id(aggregate_id)

        yield aggregate

        if aggregate is not None and aggregate.changed_since(aggregate.persisted_version):
            await self.save(aggregate, unit_of_work)
