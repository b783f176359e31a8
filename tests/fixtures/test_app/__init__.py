"""Test application package."""

from .aggregates import BankAccount, User
from .aggregates.bank_account import (
    AccountClosed,
    AccountOpened,
    CloseAccount,
    DepositMoney,
    MoneyDeposited,
    MoneyWithdrawn,
    OpenAccount,
    WithdrawMoney,
)
from .aggregates.user import (
    DeactivateUser,
    RegisterUser,
    RenameUser,
    UserDeactivated,
    UserRegistered,
    UserRenamed,
)
from .middleware import ExecutionTracker
from .stores import (
    ConflictingEventStore,
    FlakyPublisher,
    UnavailableEventStore,
    YieldingEventStore,
)

__all__ = [
    "BankAccount",
    "User",
    "OpenAccount",
    "DepositMoney",
    "WithdrawMoney",
    "CloseAccount",
    "AccountOpened",
    "MoneyDeposited",
    "MoneyWithdrawn",
    "AccountClosed",
    "RegisterUser",
    "RenameUser",
    "DeactivateUser",
    "UserRegistered",
    "UserRenamed",
    "UserDeactivated",
    "ExecutionTracker",
    "YieldingEventStore",
    "ConflictingEventStore",
    "UnavailableEventStore",
    "FlakyPublisher",
]
