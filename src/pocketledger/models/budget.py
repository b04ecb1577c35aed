"""Budgeting tables."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..money import utcnow


class Budget(SQLModel, table=True):
    """Spending limit for one (owner, category) scope over a date window.

    A null ``category_id`` is the whole-account budget.
    """

    __tablename__: ClassVar[str] = "budget"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id")
    amount_limit: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    start_date: date = Field(nullable=False)
    end_date: date = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
