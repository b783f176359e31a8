from typing import Any

import pytest

from ratchet import Application, ApplicationBuilder
from ratchet.commands import CommandDispatcher, Handler, HandlerRegistry, Middleware
from ratchet.domain import (
    Command,
    DuplicateCommandHandler,
    EventSummary,
    InvalidOperation,
    MissingCommandHandler,
    NestedUnitOfWorkNotSupported,
)
from ratchet.events import InMemoryEventPublisher, InMemoryEventStore
from ratchet.routing import intercepts
from ratchet.unit_of_work import UnitOfWork
from tests.fixtures.test_app import (
    CloseAccount,
    DepositMoney,
    ExecutionTracker,
    FlakyPublisher,
    OpenAccount,
    RegisterUser,
    RenameUser,
    User,
)


class Unrouted(Command[None]):
    pass


class Relay(Command[None]):
    pass


@pytest.mark.asyncio
async def test_first_command_creates_aggregate_at_sequence_one(
    app: Application,
    event_store: InMemoryEventStore,
    publisher: InMemoryEventPublisher,
):
    result = await app.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))

    expected = EventSummary(
        aggregate_id="U1", aggregate_kind="User", sequence_number=1, event_kind="UserRegistered"
    )
    assert result.summaries == (expected,)
    assert result.attempts == 1
    assert result.published
    assert publisher.summaries_in_order == [expected]
    assert [e.sequence_number for e in await event_store.load("U1")] == [1]


@pytest.mark.asyncio
async def test_dispatch_returns_handler_value(app: Application):
    await app.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))

    result = await app.dispatch(RenameUser(aggregate_id="U1", name="Bob"))

    assert result.value == "Bob"
    assert result.summaries[0].sequence_number == 2


@pytest.mark.asyncio
async def test_multi_event_command_is_one_contiguous_batch(
    app: Application,
    publisher: InMemoryEventPublisher,
):
    await app.dispatch(OpenAccount(aggregate_id="A1", owner="Alice"))
    await app.dispatch(DepositMoney(aggregate_id="A1", amount=10))

    result = await app.dispatch(CloseAccount(aggregate_id="A1"))

    assert [(s.sequence_number, s.event_kind) for s in result.summaries] == [
        (3, "MoneyWithdrawn"),
        (4, "AccountClosed"),
    ]
    assert [s.sequence_number for s in publisher.summaries_in_order] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_validation_failure_leaves_store_and_feed_unchanged(
    app: Application,
    event_store: InMemoryEventStore,
    publisher: InMemoryEventPublisher,
):
    await app.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))

    with pytest.raises(InvalidOperation):
        await app.dispatch(RenameUser(aggregate_id="U1", name="", can_retry=True))

    assert event_store.count("U1") == 1
    assert len(publisher.summaries_in_order) == 1
    user = await app.repository(User).get_by_id("U1")
    assert user is not None and user.name == "Alice"


@pytest.mark.asyncio
async def test_missing_handler_fails_before_middleware(
    event_store: InMemoryEventStore,
    publisher: InMemoryEventPublisher,
    execution_tracker: ExecutionTracker,
):
    app = (
        ApplicationBuilder()
        .use_event_store(event_store)
        .use_publisher(publisher)
        .register_middleware(execution_tracker)
        .register_aggregate(User)
        .build()
    )

    with pytest.raises(MissingCommandHandler) as exc_info:
        await app.dispatch(Unrouted(aggregate_id="X"))

    assert exc_info.value.command_kind == "Unrouted"
    assert execution_tracker.executions == []


@pytest.mark.asyncio
async def test_middleware_wraps_execution_in_registration_order(
    event_store: InMemoryEventStore,
    publisher: InMemoryEventPublisher,
):
    order: list[str] = []

    class Named(Middleware):
        def __init__(self, name: str) -> None:
            self.name = name

        @intercepts
        async def record(self, command: Command, next: Handler) -> Any:
            order.append(f"{self.name}:start")
            result = await next(command)
            order.append(f"{self.name}:end")
            return result

    registry = HandlerRegistry()

    async def handle(command: RegisterUser, unit_of_work: UnitOfWork) -> None:
        order.append("handler")

    registry.register(RegisterUser, handle)
    dispatcher = CommandDispatcher(registry, publisher, [Named("outer"), Named("inner")])

    await dispatcher.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))

    assert order == ["outer:start", "inner:start", "handler", "inner:end", "outer:end"]


@pytest.mark.asyncio
async def test_custom_handler_receives_unit_of_work(publisher: InMemoryEventPublisher):
    seen: list[UnitOfWork] = []

    async def handle(command: Relay, unit_of_work: UnitOfWork) -> str:
        seen.append(unit_of_work)
        assert unit_of_work.is_active
        return "done"

    app = ApplicationBuilder().use_publisher(publisher).register_handler(Relay, handle).build()

    result = await app.dispatch(Relay(aggregate_id="R1"))

    assert result.value == "done"
    assert result.summaries == ()
    assert len(seen) == 1 and not seen[0].is_active


@pytest.mark.asyncio
async def test_dispatch_from_inside_a_handler_is_rejected(
    event_store: InMemoryEventStore,
    publisher: InMemoryEventPublisher,
):
    builder = ApplicationBuilder().use_event_store(event_store).use_publisher(publisher)
    app: Application

    async def relay(command: Relay, unit_of_work: UnitOfWork) -> None:
        await app.dispatch(RegisterUser(aggregate_id=command.aggregate_id, name="Nested"))

    app = builder.register_aggregate(User).register_handler(Relay, relay).build()

    with pytest.raises(NestedUnitOfWorkNotSupported):
        await app.dispatch(Relay(aggregate_id="U1"))

    assert event_store.count() == 0
    assert publisher.summaries_in_order == []


@pytest.mark.asyncio
async def test_publication_failure_is_reported_not_raised(event_store: InMemoryEventStore):
    failing = FlakyPublisher(failures=1)
    app = (
        ApplicationBuilder()
        .use_event_store(event_store)
        .use_publisher(failing)
        .register_aggregate(User)
        .build()
    )

    result = await app.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))

    assert not result.published
    assert isinstance(result.publication_error, ConnectionError)
    assert event_store.count("U1") == 1


def test_duplicate_handler_registration_is_rejected():
    async def handle(command: RegisterUser, unit_of_work: UnitOfWork) -> None:
        pass

    builder = ApplicationBuilder().register_aggregate(User).register_handler(RegisterUser, handle)

    with pytest.raises(DuplicateCommandHandler):
        builder.build()


def test_registry_lookup_is_by_exact_type():
    registry = HandlerRegistry()

    async def handle(command: Command, unit_of_work: UnitOfWork) -> None:
        pass

    registry.register(Command, handle)

    assert Command in registry
    with pytest.raises(MissingCommandHandler):
        registry.get(Relay)


@pytest.mark.asyncio
async def test_handler_rolling_back_itself_returns_empty_result():
    publisher = InMemoryEventPublisher()

    async def handle(command: RegisterUser, unit_of_work: UnitOfWork) -> str:
        unit_of_work.rollback()
        return "skipped"

    app = ApplicationBuilder().use_publisher(publisher).register_handler(RegisterUser, handle).build()

    result = await app.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))

    assert result.value == "skipped"
    assert result.summaries == ()
    assert result.published
    assert publisher.summaries_in_order == []
