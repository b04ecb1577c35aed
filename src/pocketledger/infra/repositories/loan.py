"""SQLModel implementation of Loan repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.loan import Loan, LoanStatus
from ..database import SessionFactory


class SQLModelLoanRepository:
    """SQLModel-based loan repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, loan_id: int, *, user_id: int) -> Optional[Loan]:
        """Retrieve a loan by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Loan).where(Loan.id == loan_id, Loan.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Loan]:
        """List loans, newest first."""
        with self.session_factory() as session:
            statement = (
                select(Loan)
                .where(Loan.user_id == user_id)
                .order_by(Loan.created_at.desc(), Loan.id.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_active(self, *, user_id: int) -> list[Loan]:
        """List loans still marked active."""
        with self.session_factory() as session:
            statement = (
                select(Loan)
                .where(Loan.user_id == user_id)
                .where(Loan.status == LoanStatus.ACTIVE)
                .order_by(Loan.created_at.desc(), Loan.id.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows
