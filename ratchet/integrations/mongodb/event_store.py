"""MongoDB implementation of EventStore.

Events are stored one document per event in a single collection:

    {
        "_id": "<event ULID>",
        "aggregate_id": "U1",
        "sequence_number": 6,
        "event_kind": "UserRenamed",
        "payload": {...},
        "timestamp": ISODate(...),
        "correlation_id": "<ULID>" | null,
        "causation_id": "<ULID>" | null
    }

A unique compound index on (aggregate_id, sequence_number) is the
concurrency guard.
"""

import logging
from typing import Any

from pymongo.errors import BulkWriteError, ConnectionFailure, DuplicateKeyError, OperationFailure
from ulid import ULID

from ratchet.domain import VersionedEvent
from ratchet.domain.exceptions import ConcurrencyConflict, StorageUnavailable
from ratchet.events import EventStore, EventTypeRegistry

from .config import MongoConfiguration

LOGGER = logging.getLogger(__name__)

DUPLICATE_KEY = 11000
WRITE_CONFLICT = 112
CONFLICT_CODES = (DUPLICATE_KEY, WRITE_CONFLICT)


def _is_conflict(error: OperationFailure) -> bool:
    if isinstance(error, BulkWriteError):
        write_errors = (error.details or {}).get("writeErrors", [])
        return any(e.get("code") in CONFLICT_CODES for e in write_errors)
    # Concurrent transactions inserting the same key abort with WriteConflict;
    # other transient failures such as a stepdown are not conflicts.
    return error.code in CONFLICT_CODES


class MongoEventStore(EventStore):
    """MongoDB implementation of the EventStore interface.

    Each append runs in a transaction, so a batch is either fully stored or
    not at all. Duplicate keys and transaction write conflicts are reported
    as ConcurrencyConflict. Connection failures and every other operation
    failure are reported as StorageUnavailable.

    Implements the HasLifecycle protocol: the unique index is created on
    startup and the client is closed on shutdown.

    Attributes:
        config: MongoDB configuration providing the client and collection.
        registry: Event kind to event class lookup used when loading.

    Examples:
        >>> store = MongoEventStore(MongoConfiguration(), EventTypeRegistry.from_aggregates([User]))
        >>> await store.initialize_schema()
        >>> await store.append("U1", [VersionedEvent(aggregate_id="U1", sequence_number=1, event=...)])
        >>> await store.load("U1")
    """

    def __init__(self, config: MongoConfiguration, registry: EventTypeRegistry):
        self.config = config
        self.registry = registry

    async def initialize_schema(self) -> None:
        """Create the unique (aggregate_id, sequence_number) index."""
        try:
            await self.config.events.create_index(
                [("aggregate_id", 1), ("sequence_number", 1)],
                unique=True,
                name="aggregate_sequence_unique",
            )
        except ConnectionFailure as e:
            raise StorageUnavailable(f"MongoDB is unavailable: {e}") from e

    async def on_startup(self) -> None:
        await self.initialize_schema()

    async def on_shutdown(self) -> None:
        await self.config.close()

    async def load(self, aggregate_id: str) -> list[VersionedEvent[Any]]:
        try:
            cursor = self.config.events.find({"aggregate_id": aggregate_id}).sort(
                "sequence_number", 1
            )
            documents = await cursor.to_list()
        except ConnectionFailure as e:
            raise StorageUnavailable(f"MongoDB is unavailable: {e}") from e
        return [self._from_document(document) for document in documents]

    async def append(self, aggregate_id: str, events: list[VersionedEvent[Any]]) -> None:
        if not events:
            return
        self.check_batch(aggregate_id, events)
        documents = [self._to_document(event) for event in events]

        try:
            async with self.config.client.start_session() as session:
                async with await session.start_transaction():
                    await self.config.events.insert_many(documents, ordered=True, session=session)
        except DuplicateKeyError as e:
            raise ConcurrencyConflict(aggregate_id, events[0].sequence_number) from e
        except OperationFailure as e:
            if _is_conflict(e):
                LOGGER.debug(
                    "Append conflicted",
                    extra={"aggregate_id": aggregate_id, "code": e.code},
                )
                raise ConcurrencyConflict(aggregate_id, events[0].sequence_number) from e
            raise StorageUnavailable(f"MongoDB append failed: {e}") from e
        except ConnectionFailure as e:
            raise StorageUnavailable(f"MongoDB is unavailable: {e}") from e

    def _to_document(self, versioned: VersionedEvent[Any]) -> dict[str, Any]:
        return {
            "_id": str(versioned.id),
            "aggregate_id": versioned.aggregate_id,
            "sequence_number": versioned.sequence_number,
            "event_kind": versioned.event_kind,
            "payload": versioned.event.model_dump(mode="json"),
            "timestamp": versioned.timestamp,
            "correlation_id": str(versioned.correlation_id) if versioned.correlation_id else None,
            "causation_id": str(versioned.causation_id) if versioned.causation_id else None,
        }

    def _from_document(self, document: dict[str, Any]) -> VersionedEvent[Any]:
        event_type = self.registry.resolve(document["event_kind"])
        return VersionedEvent(
            id=ULID.from_str(document["_id"]),
            aggregate_id=document["aggregate_id"],
            sequence_number=document["sequence_number"],
            event=event_type.model_validate(document["payload"]),
            timestamp=document["timestamp"],
            correlation_id=(
                ULID.from_str(document["correlation_id"]) if document.get("correlation_id") else None
            ),
            causation_id=(
                ULID.from_str(document["causation_id"]) if document.get("causation_id") else None
            ),
        )
