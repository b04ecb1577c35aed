"""SQLModel table exports."""

from .account import Account, AccountType
from .budget import Budget
from .category import Category
from .goal import Goal
from .loan import InterestModel, Loan, LoanStatus, PaymentFrequency
from .transaction import EntryKind, LedgerEntry
from .user import User

__all__ = [
    "Account",
    "AccountType",
    "Budget",
    "Category",
    "EntryKind",
    "Goal",
    "InterestModel",
    "LedgerEntry",
    "Loan",
    "LoanStatus",
    "PaymentFrequency",
    "User",
]
