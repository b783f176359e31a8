"""Central test fixtures - imports from unified test_app."""

from collections.abc import Iterator

import pytest
from ulid import ULID

from ratchet import Application, ApplicationBuilder
from ratchet.aggregates import AggregateFactory, AggregateRepository
from ratchet.config import RatchetSettings
from ratchet.context import clear_context
from ratchet.events import InMemoryEventPublisher, InMemoryEventStore

# Import all test domain objects from unified test app
from tests.fixtures.test_app import (
    BankAccount,
    ExecutionTracker,
    User,
)


@pytest.fixture(autouse=True)
def reset_execution_context() -> Iterator[None]:
    """Start every test without a tracing context."""
    clear_context()
    yield
    clear_context()


@pytest.fixture
def aggregate_id() -> str:
    """Generate a unique aggregate ID."""
    return str(ULID())


@pytest.fixture
def settings() -> RatchetSettings:
    """Settings with defaults, independent of the environment."""
    return RatchetSettings(
        retry_max_attempts=3,
        retry_delay=0.0,
        publish_max_attempts=1,
        publish_retry_delay=0.0,
        log_level="INFO",
    )


@pytest.fixture
def event_store() -> InMemoryEventStore:
    """Create an in-memory event store."""
    return InMemoryEventStore()


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    """Create an in-memory event publisher."""
    return InMemoryEventPublisher()


@pytest.fixture
def user_repository(event_store: InMemoryEventStore) -> AggregateRepository[User]:
    """Create a repository for User aggregates."""
    return AggregateRepository(AggregateFactory(User), event_store)


@pytest.fixture
def execution_tracker() -> ExecutionTracker:
    """Create an execution tracker middleware."""
    return ExecutionTracker()


@pytest.fixture
def app(
    settings: RatchetSettings,
    event_store: InMemoryEventStore,
    publisher: InMemoryEventPublisher,
) -> Application:
    """Application with correlation tracking, retries and both test aggregates."""
    return (
        ApplicationBuilder(settings)
        .use_event_store(event_store)
        .use_publisher(publisher)
        .use_correlation_tracking()
        .use_retry()
        .register_aggregate(User)
        .register_aggregate(BankAccount)
        .build()
    )
