"""MongoDB integration for ratchet.

Installation:
    pip install ratchet-eventsourcing[mongodb]

Usage:
    >>> from ratchet.integrations.mongodb import MongoConfiguration, MongoEventStore
    >>>
    >>> config = MongoConfiguration(uri="mongodb://localhost:27017/?replicaSet=rs0")
    >>> store = MongoEventStore(config, EventTypeRegistry.from_aggregates([User]))
    >>> await store.initialize_schema()
"""

from .config import MongoConfiguration
from .event_store import MongoEventStore

__all__ = [
    "MongoConfiguration",
    "MongoEventStore",
]
