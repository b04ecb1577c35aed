"""SQLModel implementation of Account repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.account import Account
from ..database import SessionFactory


class SQLModelAccountRepository:
    """SQLModel-based account repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, account_id: int, *, user_id: int) -> Optional[Account]:
        """Retrieve an account by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Account).where(Account.id == account_id, Account.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Account]:
        """Account balance list, oldest account first."""
        with self.session_factory() as session:
            statement = (
                select(Account)
                .where(Account.user_id == user_id)
                .order_by(Account.created_at, Account.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, account: Account, *, user_id: int) -> Account:
        """Create a new account whose balance starts at its initial balance."""
        with self.session_factory() as session:
            account.user_id = user_id
            account.balance = account.initial_balance
            session.add(account)
            session.commit()
            session.refresh(account)
            session.expunge(account)
            return account

    def delete(self, account_id: int, *, user_id: int) -> bool:
        """Delete an account together with its ledger entries."""
        with self.session_factory() as session:
            account = session.exec(
                select(Account).where(Account.id == account_id, Account.user_id == user_id)
            ).first()
            if account is None:
                return False
            session.delete(account)
            session.commit()
            return True
