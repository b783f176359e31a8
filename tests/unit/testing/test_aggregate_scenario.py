from decimal import Decimal

import pytest

from ratchet.domain import Event, InvalidOperation
from ratchet.testing import AggregateScenario
from tests.fixtures.test_app import (
    AccountClosed,
    AccountOpened,
    BankAccount,
    CloseAccount,
    DepositMoney,
    MoneyDeposited,
    MoneyWithdrawn,
    OpenAccount,
    RegisterUser,
    RenameUser,
    User,
    UserRegistered,
    UserRenamed,
    WithdrawMoney,
)


@pytest.mark.asyncio
async def test_scenario_with_exact_payload_match():
    async with AggregateScenario(User, "U1") as scenario:
        scenario.given_no_events().when(
            RegisterUser(aggregate_id="U1", name="Alice")
        ).should_emit(UserRegistered(aggregate_id="U1", name="Alice"))


@pytest.mark.asyncio
async def test_scenario_with_type_match():
    async with AggregateScenario(User) as scenario:
        scenario.when(
            RegisterUser(aggregate_id=scenario.aggregate_id, name="Bob")
        ).should_emit(UserRegistered)


@pytest.mark.asyncio
async def test_scenario_with_given_events():
    async with AggregateScenario(BankAccount, "A1") as scenario:
        scenario.given(
            AccountOpened(aggregate_id="A1", owner="Charlie"),
            MoneyDeposited(aggregate_id="A1", amount=Decimal("100.00")),
        ).when(
            WithdrawMoney(aggregate_id="A1", amount=Decimal("50.00"))
        ).should_emit(MoneyWithdrawn(aggregate_id="A1", amount=Decimal("50.00")))


@pytest.mark.asyncio
async def test_scenario_with_multiple_events_from_one_command():
    async with AggregateScenario(BankAccount, "A1") as scenario:
        scenario.given(
            AccountOpened(aggregate_id="A1", owner="Dave"),
            MoneyDeposited(aggregate_id="A1", amount=Decimal("10.00")),
        ).when(CloseAccount(aggregate_id="A1")).should_emit(
            MoneyWithdrawn(aggregate_id="A1", amount=Decimal("10.00")),
            AccountClosed,
        )


@pytest.mark.asyncio
async def test_scenario_expecting_error():
    async with AggregateScenario(BankAccount, "A1") as scenario:
        scenario.given(AccountOpened(aggregate_id="A1", owner="Eve")).when(
            WithdrawMoney(aggregate_id="A1", amount=Decimal("1.00"))
        ).should_raise(InvalidOperation).should_emit_nothing()


@pytest.mark.asyncio
async def test_scenario_checks_state():
    async with AggregateScenario(User, "U1") as scenario:
        scenario.given(UserRegistered(aggregate_id="U1", name="Alice")).when(
            RenameUser(aggregate_id="U1", name="Bob")
        ).should_have_state(lambda user: user.name == "Bob" and user.version == 2)


@pytest.mark.asyncio
async def test_unmet_expectation_fails():
    with pytest.raises(AssertionError, match="should stage event"):
        async with AggregateScenario(User, "U1") as scenario:
            scenario.given(UserRegistered(aggregate_id="U1", name="Alice")).when(
                RenameUser(aggregate_id="U1", name="Bob")
            ).should_emit(UserRenamed(aggregate_id="U1", name="Carol"))


@pytest.mark.asyncio
async def test_unexpected_events_fail_should_emit_nothing():
    with pytest.raises(AssertionError, match="should not stage any events"):
        async with AggregateScenario(BankAccount, "A1") as scenario:
            scenario.given(AccountOpened(aggregate_id="A1", owner="Eve")).when(
                DepositMoney(aggregate_id="A1", amount=Decimal("5.00"))
            ).should_emit_nothing()


@pytest.mark.asyncio
async def test_errors_in_block_skip_expectations():
    with pytest.raises(RuntimeError):
        async with AggregateScenario(BankAccount, "A1") as scenario:
            scenario.when(OpenAccount(aggregate_id="A1", owner="Frank")).should_emit(AccountClosed)
            raise RuntimeError("setup failed")


@pytest.mark.asyncio
async def test_event_types_match_exactly():
    with pytest.raises(AssertionError, match="should stage an event of type Event"):
        async with AggregateScenario(User, "U1") as scenario:
            scenario.when(RegisterUser(aggregate_id="U1", name="Alice")).should_emit(Event)


@pytest.mark.asyncio
async def test_given_events_become_numbered_history():
    async with AggregateScenario(User, "U1") as scenario:
        scenario.given(
            UserRegistered(aggregate_id="U1", name="Alice"),
            UserRenamed(aggregate_id="U1", name="Bob"),
        ).when(RenameUser(aggregate_id="U1", name="Carol"))

    assert [v.sequence_number for v in scenario.history] == [1, 2]
    assert scenario.outcome is not None
    assert scenario.outcome.aggregate.persisted_version == 2
    assert scenario.outcome.aggregate.version == 3
    assert scenario.outcome.staged_kinds() == ["UserRenamed"]


@pytest.mark.asyncio
async def test_failure_message_lists_every_unmet_check():
    with pytest.raises(AssertionError) as exc_info:
        async with AggregateScenario(BankAccount, "A1") as scenario:
            scenario.when(
                WithdrawMoney(aggregate_id="A1", amount=Decimal("1.00"))
            ).should_emit(MoneyWithdrawn).should_have_state(lambda account: account.version == 1)

    message = str(exc_info.value)
    assert "should stage an event of type MoneyWithdrawn" in message
    assert "should leave BankAccount in the expected state" in message
    assert "errors: ['InvalidOperation']" in message
