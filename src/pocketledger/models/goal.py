"""Savings goal table."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..money import utcnow


class Goal(SQLModel, table=True):
    """Savings target; progress is derived from the ledger, never stored."""

    __tablename__: ClassVar[str] = "goal"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=100)
    target_amount: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    deadline: date = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
