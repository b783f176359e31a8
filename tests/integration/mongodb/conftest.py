"""Pytest fixtures for MongoDB integration tests."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

if TYPE_CHECKING:
    from ratchet.integrations.mongodb import MongoConfiguration

# Assumes a single-node replica set is running locally on port 27017
LOCAL_MONGO_URI = "mongodb://localhost:27017/?replicaSet=rs0&directConnection=true"


@asynccontextmanager
async def create_config(
    request: pytest.FixtureRequest,
    prefix: str = "test",
) -> AsyncIterator["MongoConfiguration"]:
    """Create a MongoConfiguration with cleanup."""
    from ratchet.integrations.mongodb import MongoConfiguration

    db_name = f"{prefix}_{request.node.name}"[:63]
    config = MongoConfiguration(uri=LOCAL_MONGO_URI, database=db_name)
    await config.client.drop_database(config.database)
    try:
        yield config
    finally:
        await config.close()


@pytest_asyncio.fixture
async def mongo_config(request: pytest.FixtureRequest) -> AsyncIterator["MongoConfiguration"]:
    """Create a MongoConfiguration pointing to local MongoDB."""
    async with create_config(request) as config:
        yield config
