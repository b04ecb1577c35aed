"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .budget import SQLModelBudgetRepository
from .category import SQLModelCategoryRepository
from .goal import SQLModelGoalRepository
from .loan import SQLModelLoanRepository
from .transaction import HistoryRow, SQLModelTransactionRepository
from .user import SQLModelUserRepository

__all__ = [
    "HistoryRow",
    "SQLModelAccountRepository",
    "SQLModelBudgetRepository",
    "SQLModelCategoryRepository",
    "SQLModelGoalRepository",
    "SQLModelLoanRepository",
    "SQLModelTransactionRepository",
    "SQLModelUserRepository",
]
