"""MongoDB configuration using pydantic-settings."""

from functools import cached_property
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient


class MongoConfiguration(BaseSettings):
    """Configuration and factory for MongoDB resources.

    All settings can be configured via environment variables with the
    RATCHET_MONGO_ prefix. For example:
    - RATCHET_MONGO_URI=mongodb://localhost:27017/?replicaSet=rs0
    - RATCHET_MONGO_DATABASE=myapp
    - RATCHET_MONGO_EVENTS_COLLECTION=domain_events

    Appends run inside multi-document transactions, so the server must be
    a replica set or a sharded cluster.

    Attributes:
        uri: MongoDB connection URI.
        database: Database name to use.
        events_collection: Collection name for event storage.
        server_selection_timeout_ms: How long to wait for a reachable server
            before reporting the store as unavailable.

    Example:
        >>> config = MongoConfiguration()
        >>> store = MongoEventStore(config, EventTypeRegistry.from_aggregates([User]))
        >>> app = ApplicationBuilder().use_event_store(store).register_aggregate(User).build()
        >>> async with app:  # creates indexes, closes the client on exit
        ...     ...
    """

    uri: str = "mongodb://localhost:27017"
    database: str = "ratchet"
    events_collection: str = "events"
    server_selection_timeout_ms: int = Field(default=5000, ge=1)

    model_config = {"env_prefix": "RATCHET_MONGO_"}

    @cached_property
    def client(self) -> AsyncMongoClient[dict[str, Any]]:
        """The MongoDB async client, created lazily and cached for reuse."""
        return AsyncMongoClient(
            self.uri,
            tz_aware=True,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
        )

    @cached_property
    def db(self) -> AsyncDatabase[dict[str, Any]]:
        return self.client[self.database]

    @cached_property
    def events(self) -> AsyncCollection[dict[str, Any]]:
        return self.db[self.events_collection]

    async def close(self) -> None:
        """Close the client if it was created."""
        if "client" in self.__dict__:
            await self.client.close()
            for name in ("client", "db", "events"):
                self.__dict__.pop(name, None)
