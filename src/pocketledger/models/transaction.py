"""SQLModel definitions for ledger entries."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from ..money import utcnow

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .account import Account
    from .category import Category


class EntryKind(str, Enum):
    """Direction of a ledger entry relative to its account."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    CONTRIBUTION = "contribution"

    @property
    def sign(self) -> int:
        return 1 if self in (EntryKind.INCOME, EntryKind.TRANSFER_IN) else -1


class LedgerEntry(SQLModel, table=True):
    """One immutable money movement against one account.

    ``amount`` is always positive; ``kind`` carries the direction.
    """

    __tablename__: ClassVar[str] = "ledger_entry"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    account_id: int = Field(foreign_key="account.id", nullable=False, index=True, ondelete="CASCADE")
    category_id: Optional[int] = Field(default=None, foreign_key="category.id")
    amount: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    kind: EntryKind = Field(nullable=False, index=True)
    description: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    # Budget periods match on this date; falls back to created_at when absent.
    transaction_date: Optional[date] = Field(default=None)

    loan_id: Optional[int] = Field(default=None, foreign_key="loan.id", ondelete="SET NULL")
    goal_id: Optional[int] = Field(default=None, foreign_key="goal.id", ondelete="SET NULL")
    transfer_ref: Optional[str] = Field(default=None, index=True, max_length=36)

    account: "Account" = Relationship(
        back_populates="entries",
        sa_relationship=relationship("Account", back_populates="entries"),
    )
    category: "Category | None" = Relationship(sa_relationship=relationship("Category"))

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.kind.sign

    @property
    def logical_date(self) -> date:
        return self.transaction_date or self.created_at.date()
