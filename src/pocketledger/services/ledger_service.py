"""Ordinary income/expense posting and ledger read models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlmodel import select

from ..domain.errors import InvalidArgument, NotFound
from ..infra.database import SessionFactory
from ..infra.repositories.account import SQLModelAccountRepository
from ..infra.repositories.transaction import HistoryRow, SQLModelTransactionRepository
from ..logging_config import get_logger
from ..models.account import Account
from ..models.transaction import EntryKind, LedgerEntry
from ..money import ZERO, utcnow
from .budgeting import BudgetCheck, check_expense
from .goals import GoalCompletion, settle_goals
from .postings import append_entry, apply_entry_to_balance, require_category, require_positive

logger = get_logger(__name__)

POSTABLE_KINDS = (EntryKind.INCOME, EntryKind.EXPENSE)


@dataclass(slots=True)
class PostingResult:
    entry: LedgerEntry
    budget_checks: list[BudgetCheck] = field(default_factory=list)
    completed_goals: list[GoalCompletion] = field(default_factory=list)

    @property
    def over_budget(self) -> bool:
        return any(check.exceeded for check in self.budget_checks)


@dataclass(slots=True)
class Reconciliation:
    account_id: int
    stored_balance: Decimal
    derived_balance: Decimal

    @property
    def balanced(self) -> bool:
        return self.stored_balance == self.derived_balance


def _parse_kind(kind) -> EntryKind:
    try:
        parsed = EntryKind(kind)
    except ValueError as exc:
        raise InvalidArgument(f"Unknown transaction type: {kind!r}") from exc
    if parsed not in POSTABLE_KINDS:
        raise InvalidArgument("Only income and expense can be posted directly")
    return parsed


def _budget_checks(
    session_factory: SessionFactory,
    *,
    user_id: int,
    amount: Decimal,
    as_of: date,
    category_id: Optional[int],
) -> list[BudgetCheck]:
    scopes: list[Optional[int]] = [None]
    if category_id is not None:
        scopes.append(category_id)
    checks = []
    for scope in scopes:
        check = check_expense(
            session_factory, user_id=user_id, amount=amount, as_of=as_of, category_id=scope
        )
        if check is not None:
            checks.append(check)
    return checks


def create_transaction(
    session_factory: SessionFactory,
    *,
    user_id: int,
    account_id: int,
    amount,
    kind,
    category_id: Optional[int] = None,
    description: Optional[str] = None,
    transaction_date: Optional[date] = None,
    clock: Callable[[], datetime] = utcnow,
) -> PostingResult:
    """Post an income or expense and keep the account balance in step.

    Expenses report any budget overrun as advisory checks computed before
    the posting; they never stop it. Goals met by the new entry are
    completed in the same transaction.
    """

    entry_kind = _parse_kind(kind)
    value = require_positive(amount)
    now = clock()

    checks: list[BudgetCheck] = []
    if entry_kind is EntryKind.EXPENSE:
        checks = _budget_checks(
            session_factory,
            user_id=user_id,
            amount=value,
            as_of=transaction_date or now.date(),
            category_id=category_id,
        )

    with session_factory() as session:
        apply_entry_to_balance(
            session, user_id=user_id, account_id=account_id, kind=entry_kind, amount=value
        )
        require_category(session, user_id=user_id, category_id=category_id)
        entry = append_entry(
            session,
            user_id=user_id,
            account_id=account_id,
            amount=value,
            kind=entry_kind,
            created_at=now,
            category_id=category_id,
            description=description,
            transaction_date=transaction_date,
        )
        completed = settle_goals(session, user_id=user_id)
        session.expunge(entry)

    logger.info(
        "Transaction posted",
        extra={
            "entry_id": entry.id,
            "account_id": account_id,
            "kind": entry_kind.value,
            "amount": value,
        },
    )
    return PostingResult(entry=entry, budget_checks=checks, completed_goals=completed)


def derive_balance(initial_balance: Decimal, entries: Iterable[LedgerEntry]) -> Decimal:
    """Initial balance plus the signed sum of the account's entries."""

    return initial_balance + sum((e.signed_amount for e in entries), ZERO)


def reconcile_account(
    session_factory: SessionFactory, *, user_id: int, account_id: int
) -> Reconciliation:
    """Compare the stored balance against one re-derived from the ledger."""

    with session_factory() as session:
        account = session.exec(
            select(Account).where(Account.id == account_id, Account.user_id == user_id)
        ).first()
        if account is None:
            raise NotFound(f"Account {account_id} not found")
        entries = session.exec(
            select(LedgerEntry).where(LedgerEntry.account_id == account_id)
        ).all()
        result = Reconciliation(
            account_id=account_id,
            stored_balance=account.balance,
            derived_balance=derive_balance(account.initial_balance, entries),
        )
    if not result.balanced:
        logger.error(
            "Account balance does not reconcile with ledger",
            extra={
                "account_id": account_id,
                "stored": result.stored_balance,
                "derived": result.derived_balance,
            },
        )
    return result


def transaction_history(session_factory: SessionFactory, *, user_id: int) -> list[HistoryRow]:
    """Entries newest first with category and account names resolved."""

    return SQLModelTransactionRepository(session_factory).history(user_id=user_id)


def account_balances(session_factory: SessionFactory, *, user_id: int) -> list[Account]:
    """The owner's accounts, oldest first, with their stored balances."""

    return SQLModelAccountRepository(session_factory).list_all(user_id=user_id)


def delete_account(session_factory: SessionFactory, *, user_id: int, account_id: int) -> None:
    """Delete an account; its ledger entries go with it."""

    if not SQLModelAccountRepository(session_factory).delete(account_id, user_id=user_id):
        raise NotFound(f"Account {account_id} not found")
    logger.info("Account deleted", extra={"account_id": account_id, "user_id": user_id})
