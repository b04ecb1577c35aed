"""SQLModel implementation of the ledger entry repository."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import select

from ...models.account import Account
from ...models.category import Category
from ...models.transaction import EntryKind, LedgerEntry
from ..database import SessionFactory


@dataclass(slots=True)
class HistoryRow:
    """Ledger entry with its category and account names resolved."""

    id: int
    account_id: int
    account_name: str
    category_id: Optional[int]
    category_name: Optional[str]
    amount: Decimal
    kind: EntryKind
    description: Optional[str]
    created_at: datetime
    transaction_date: Optional[date]
    loan_id: Optional[int]
    goal_id: Optional[int]


class SQLModelTransactionRepository:
    """Read side of the append-only ledger."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, entry_id: int, *, user_id: int) -> Optional[LedgerEntry]:
        with self.session_factory() as session:
            obj = session.exec(
                select(LedgerEntry)
                .where(LedgerEntry.id == entry_id)
                .where(LedgerEntry.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[LedgerEntry]:
        """Every entry for the owner, oldest first."""
        with self.session_factory() as session:
            statement = (
                select(LedgerEntry)
                .where(LedgerEntry.user_id == user_id)
                .order_by(LedgerEntry.created_at, LedgerEntry.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_by_loan(self, loan_id: int, *, user_id: int) -> list[LedgerEntry]:
        """Repayment entries tied to a loan."""
        with self.session_factory() as session:
            statement = (
                select(LedgerEntry)
                .where(LedgerEntry.user_id == user_id)
                .where(LedgerEntry.loan_id == loan_id)
                .order_by(LedgerEntry.created_at, LedgerEntry.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_by_transfer(self, transfer_ref: str, *, user_id: int) -> list[LedgerEntry]:
        """Both halves of a transfer, outgoing half first."""
        with self.session_factory() as session:
            statement = (
                select(LedgerEntry)
                .where(LedgerEntry.user_id == user_id)
                .where(LedgerEntry.transfer_ref == transfer_ref)
                .order_by(LedgerEntry.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def history(self, *, user_id: int) -> list[HistoryRow]:
        """Transaction history, newest first, with names resolved."""
        with self.session_factory() as session:
            statement = (
                select(LedgerEntry, Account.name, Category.name)
                .join(Account, Account.id == LedgerEntry.account_id)
                .outerjoin(Category, Category.id == LedgerEntry.category_id)
                .where(LedgerEntry.user_id == user_id)
                .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())  # type: ignore
            )
            return [
                HistoryRow(
                    id=entry.id,
                    account_id=entry.account_id,
                    account_name=account_name,
                    category_id=entry.category_id,
                    category_name=category_name,
                    amount=entry.amount,
                    kind=entry.kind,
                    description=entry.description,
                    created_at=entry.created_at,
                    transaction_date=entry.transaction_date,
                    loan_id=entry.loan_id,
                    goal_id=entry.goal_id,
                )
                for entry, account_name, category_name in session.exec(statement).all()
            ]
