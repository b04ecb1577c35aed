"""Account model holding the balance aggregate."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from ..money import utcnow

if TYPE_CHECKING:  # pragma: no cover
    from .transaction import LedgerEntry


class AccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    MOBILE = "mobile"
    SAVINGS = "savings"


class Account(SQLModel, table=True):
    """A money container whose balance is only moved by ledger operations."""

    __tablename__: ClassVar[str] = "account"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    account_type: AccountType = Field(default=AccountType.BANK, nullable=False)
    name: str = Field(nullable=False, max_length=128)
    initial_balance: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    balance: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    entries: list["LedgerEntry"] = Relationship(
        back_populates="account",
        sa_relationship=relationship(
            "LedgerEntry",
            back_populates="account",
            cascade="all, delete-orphan",
        ),
    )
