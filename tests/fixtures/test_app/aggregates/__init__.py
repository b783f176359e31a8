from .bank_account import BankAccount
from .user import User

__all__ = ["BankAccount", "User"]
