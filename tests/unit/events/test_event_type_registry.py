import pytest

from ratchet.domain import Event, UnsupportedEventKind
from ratchet.events import EventTypeRegistry
from tests.fixtures.test_app import BankAccount, MoneyDeposited, User, UserRenamed


def test_from_aggregates_registers_every_applied_event():
    registry = EventTypeRegistry.from_aggregates([User, BankAccount])

    assert registry.resolve("UserRenamed") is UserRenamed
    assert registry.resolve("MoneyDeposited") is MoneyDeposited


def test_registering_same_class_twice_is_allowed():
    registry = EventTypeRegistry()
    registry.register(UserRenamed)
    registry.register(UserRenamed)

    assert registry.resolve("UserRenamed") is UserRenamed


def test_conflicting_event_kinds_are_rejected():
    class OtherRename(Event):
        name: str

        @classmethod
        def event_kind(cls) -> str:
            return "UserRenamed"

    registry = EventTypeRegistry.from_aggregates([User])

    with pytest.raises(ValueError, match="already registered"):
        registry.register(OtherRename)


def test_unknown_event_kind_is_unsupported():
    registry = EventTypeRegistry()

    with pytest.raises(UnsupportedEventKind) as exc_info:
        registry.resolve("Nope")

    assert exc_info.value.event_kind == "Nope"
