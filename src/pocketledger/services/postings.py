"""Account-store and ledger-append primitives shared by money movements.

Every helper here runs inside a caller-owned session so that a balance change
and its ledger entry commit or roll back together. Balance changes are
guarded ``UPDATE`` statements (compare-and-swap on the row) and must be the
first statements a movement issues, so the database write lock serialises
concurrent operations on the same account before anything is read.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from ..domain.errors import InsufficientFunds, InvalidArgument, NotFound
from ..models.account import Account
from ..models.category import Category
from ..models.transaction import EntryKind, LedgerEntry
from ..money import to_money


def require_positive(amount, *, field: str = "amount") -> Decimal:
    """Normalise *amount* to money and reject zero or negative values."""

    if amount is None:
        raise InvalidArgument(f"{field} is required")
    try:
        value = to_money(amount)
    except ValueError as exc:
        raise InvalidArgument(f"{field} must be a number") from exc
    if value <= 0:
        raise InvalidArgument(f"{field} must be greater than zero")
    return value


def require_category(session: Session, *, user_id: int, category_id: Optional[int]) -> None:
    """Reject a category the owner does not have; ``None`` means uncategorised."""

    if category_id is None:
        return
    category = session.exec(
        select(Category).where(Category.id == category_id, Category.user_id == user_id)
    ).first()
    if category is None:
        raise NotFound(f"Category {category_id} not found")


def debit_account(session: Session, *, user_id: int, account_id: int, amount: Decimal) -> None:
    """Decrease a balance, refusing to take it below zero."""

    result = session.exec(
        update(Account)
        .where(Account.id == account_id)
        .where(Account.user_id == user_id)
        .where(Account.balance >= amount)
        .values(balance=func.round(Account.balance - amount, 2))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return
    account = session.exec(
        select(Account).where(Account.id == account_id, Account.user_id == user_id)
    ).first()
    if account is None:
        raise NotFound(f"Account {account_id} not found")
    raise InsufficientFunds(account_id, account.balance, amount)


def credit_account(session: Session, *, user_id: int, account_id: int, amount: Decimal) -> int:
    """Increase a balance; returns the number of rows touched (0 or 1)."""

    result = session.exec(
        update(Account)
        .where(Account.id == account_id)
        .where(Account.user_id == user_id)
        .values(balance=func.round(Account.balance + amount, 2))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def apply_entry_to_balance(
    session: Session, *, user_id: int, account_id: int, kind: EntryKind, amount: Decimal
) -> None:
    """Move the balance in the direction *kind* implies."""

    if kind.sign < 0:
        debit_account(session, user_id=user_id, account_id=account_id, amount=amount)
    elif credit_account(session, user_id=user_id, account_id=account_id, amount=amount) != 1:
        raise NotFound(f"Account {account_id} not found")


def append_entry(
    session: Session,
    *,
    user_id: int,
    account_id: int,
    amount: Decimal,
    kind: EntryKind,
    created_at: datetime,
    category_id: Optional[int] = None,
    description: Optional[str] = None,
    transaction_date: Optional[date] = None,
    loan_id: Optional[int] = None,
    goal_id: Optional[int] = None,
    transfer_ref: Optional[str] = None,
) -> LedgerEntry:
    """Append one ledger entry; the caller has already moved the balance."""

    entry = LedgerEntry(
        user_id=user_id,
        account_id=account_id,
        category_id=category_id,
        amount=amount,
        kind=kind,
        description=description,
        created_at=created_at,
        transaction_date=transaction_date,
        loan_id=loan_id,
        goal_id=goal_id,
        transfer_ref=transfer_ref,
    )
    session.add(entry)
    session.flush()
    return entry
