"""Loan entities."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..money import utcnow


class InterestModel(str, Enum):
    SIMPLE = "simple"
    COMPOUND = "compound"
    EMI = "emi"


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half-yearly"
    YEARLY = "yearly"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    PaymentFrequency.MONTHLY: 12,
    PaymentFrequency.QUARTERLY: 4,
    PaymentFrequency.HALF_YEARLY: 2,
    PaymentFrequency.YEARLY: 1,
}


class LoanStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Loan(SQLModel, table=True):
    """Borrowed principal repaid from the owner's accounts."""

    __tablename__: ClassVar[str] = "loan"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    lender_name: str = Field(nullable=False, max_length=100)
    purpose: str = Field(nullable=False, max_length=255)
    principal_amount: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    interest_rate: Decimal = Field(default=Decimal("0.00"), max_digits=7, decimal_places=2)
    interest_type: InterestModel = Field(default=InterestModel.SIMPLE, nullable=False)
    payment_frequency: PaymentFrequency = Field(default=PaymentFrequency.MONTHLY, nullable=False)
    start_date: date = Field(nullable=False)
    due_date: date = Field(nullable=False)
    grace_period_months: int = Field(default=0, ge=0)
    notes: Optional[str] = Field(default=None)
    paid_amount: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    status: LoanStatus = Field(default=LoanStatus.ACTIVE, nullable=False, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    @property
    def remaining(self) -> Decimal:
        return self.principal_amount - self.paid_amount
