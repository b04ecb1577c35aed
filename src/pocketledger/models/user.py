"""User model scoping every owned aggregate."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..money import utcnow


class User(SQLModel, table=True):
    """Owner of accounts, ledger entries, budgets, goals and loans.

    Credentials live with the authentication collaborator; the engine only
    needs a stable owner id.
    """

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(nullable=False, unique=True, index=True, max_length=64)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
