"""SQLModel implementation of Budget repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.budget import Budget
from ..database import SessionFactory


def current_budget_statement(user_id: int, category_id: Optional[int]):
    """Select the budget for an (owner, category) scope; null category is whole-account."""
    statement = select(Budget).where(Budget.user_id == user_id)
    if category_id is None:
        statement = statement.where(Budget.category_id.is_(None))  # type: ignore[union-attr]
    else:
        statement = statement.where(Budget.category_id == category_id)
    return statement.order_by(Budget.created_at.desc(), Budget.id.desc())  # type: ignore


class SQLModelBudgetRepository:
    """SQLModel-based budget repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, budget_id: int, *, user_id: int) -> Optional[Budget]:
        with self.session_factory() as session:
            obj = session.exec(
                select(Budget).where(Budget.id == budget_id, Budget.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def get_current(self, *, user_id: int, category_id: Optional[int] = None) -> Optional[Budget]:
        """Return the budget currently in force for the scope, if any."""
        with self.session_factory() as session:
            obj = session.exec(current_budget_statement(user_id, category_id)).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Budget]:
        with self.session_factory() as session:
            statement = (
                select(Budget)
                .where(Budget.user_id == user_id)
                .order_by(Budget.start_date.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows
