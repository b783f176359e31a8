"""Event store interface and in-memory implementation."""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any

from ..domain import VersionedEvent
from ..domain.exceptions import ConcurrencyConflict, IdentityMismatch


class EventStore(ABC):
    """Abstract interface for durable, append-only event persistence.

    Each aggregate's events form a stream keyed by (aggregate id, sequence
    number). The store never assigns sequence numbers: callers compute
    them and the store only guarantees that no pair is written twice. That
    uniqueness check is the only serialization point between concurrent
    commands targeting the same aggregate.
    """

    @abstractmethod
    async def load(self, aggregate_id: str) -> list[VersionedEvent[Any]]:
        """Load the full history of an aggregate.

        Args:
            aggregate_id: The aggregate whose events should be loaded.

        Returns:
            Events ordered by sequence number. Empty if the aggregate has no
            history. Never a partial stream.

        Raises:
            StorageUnavailable: If the underlying storage cannot be reached.
        """
        ...

    @abstractmethod
    async def append(self, aggregate_id: str, events: list[VersionedEvent[Any]]) -> None:
        """Append a batch of events atomically.

        Either every event of the batch is stored or none is.

        Args:
            aggregate_id: The aggregate the batch belongs to.
            events: Events carrying their pre-assigned sequence numbers.

        Raises:
            ConcurrencyConflict: If any (aggregate_id, sequence_number) pair
                already exists.
            IdentityMismatch: If an event of the batch targets another aggregate.
            ValueError: If the batch repeats a sequence number.
            StorageUnavailable: If the underlying storage cannot be reached.
        """
        ...

    @staticmethod
    def check_batch(aggregate_id: str, events: list[VersionedEvent[Any]]) -> None:
        """Reject batches that mix aggregates or repeat a sequence number."""
        seen: set[int] = set()
        for event in events:
            if event.aggregate_id != aggregate_id:
                raise IdentityMismatch(aggregate_id, event.aggregate_id)
            if event.sequence_number in seen:
                raise ValueError(
                    f"Batch for aggregate {aggregate_id!r} repeats sequence number "
                    f"{event.sequence_number}"
                )
            seen.add(event.sequence_number)


class InMemoryEventStore(EventStore):
    """Dictionary-based in-memory event store.

    Stores events in a dictionary keyed by aggregate ID. The uniqueness check
    and the insertion of a batch happen under a lock, so concurrent appends
    behave like a store with a unique index: the first writer of a
    sequence number wins and every other writer gets ConcurrencyConflict.

    This implementation is suitable for unit tests, development and
    examples. It is not durable.
    """

    def __init__(self) -> None:
        self.by_aggregate_id: dict[str, dict[int, VersionedEvent[Any]]] = defaultdict(dict)
        self.events_in_order: list[VersionedEvent[Any]] = []
        self._lock = asyncio.Lock()

    async def load(self, aggregate_id: str) -> list[VersionedEvent[Any]]:
        stream = self.by_aggregate_id.get(aggregate_id, {})
        return [stream[sequence] for sequence in sorted(stream)]

    async def append(self, aggregate_id: str, events: list[VersionedEvent[Any]]) -> None:
        if not events:
            return
        self.check_batch(aggregate_id, events)

        async with self._lock:
            stream = self.by_aggregate_id[aggregate_id]
            for event in events:
                if event.sequence_number in stream:
                    raise ConcurrencyConflict(aggregate_id, event.sequence_number)
            for event in events:
                stream[event.sequence_number] = event
            self.events_in_order.extend(events)

    def count(self, aggregate_id: str | None = None) -> int:
        """Number of stored events, for one aggregate or overall."""
        if aggregate_id is None:
            return len(self.events_in_order)
        return len(self.by_aggregate_id.get(aggregate_id, {}))
