"""Budgeting domain services.

Spend is never stored: every evaluation re-scans the ledger, so the figure
cannot drift from the entries it summarises.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from ..domain.errors import InvalidArgument, NotFound
from ..infra.database import SessionFactory
from ..infra.repositories.budget import current_budget_statement
from ..logging_config import get_logger
from ..models.budget import Budget
from ..models.transaction import EntryKind, LedgerEntry
from ..money import ZERO, as_utc, utcnow
from .postings import require_category, require_positive

logger = get_logger(__name__)


@dataclass(slots=True)
class BudgetSnapshot:
    """A budget with its spend re-derived from the ledger."""

    budget: Budget
    spent: Decimal
    in_period: bool

    @property
    def remaining(self) -> Decimal:
        return self.budget.amount_limit - self.spent

    @property
    def exceeded(self) -> bool:
        return self.spent > self.budget.amount_limit


@dataclass(slots=True)
class BudgetCheck:
    """Advisory result for a prospective expense. Never blocks posting."""

    budget_id: int
    category_id: Optional[int]
    limit: Decimal
    spent: Decimal
    amount: Decimal
    in_period: bool

    @property
    def projected(self) -> Decimal:
        return self.spent + self.amount

    @property
    def exceeded(self) -> bool:
        return self.in_period and self.projected > self.limit


def counts_toward(budget: Budget, entry: LedgerEntry, category_id: Optional[int] = None) -> bool:
    """Whether *entry* is spend against *budget*.

    Expenses only, inside the budget window by logical date, and created no
    earlier than the budget itself so older expenses are not charged to a
    budget set afterwards.
    """

    if entry.kind != EntryKind.EXPENSE:
        return False
    if category_id is not None and entry.category_id != category_id:
        return False
    if as_utc(entry.created_at) < as_utc(budget.created_at):
        return False
    return budget.covers(entry.logical_date)


def compute_spend(
    budget: Budget, entries: Iterable[LedgerEntry], category_id: Optional[int] = None
) -> Decimal:
    """Total qualifying expense for *budget* across *entries*."""

    return sum(
        (e.amount for e in entries if counts_toward(budget, e, category_id)),
        ZERO,
    )


def _expense_candidates(session: Session, *, budget: Budget) -> list[LedgerEntry]:
    # Logical-date filtering happens in Python because it falls back to created_at.
    statement = (
        select(LedgerEntry)
        .where(LedgerEntry.user_id == budget.user_id)
        .where(LedgerEntry.kind == EntryKind.EXPENSE)
        .where(LedgerEntry.created_at >= as_utc(budget.created_at))
    )
    if budget.category_id is not None:
        statement = statement.where(LedgerEntry.category_id == budget.category_id)
    return list(session.exec(statement).all())


def _snapshot(session: Session, budget: Budget, as_of: date) -> BudgetSnapshot:
    entries = _expense_candidates(session, budget=budget)
    spent = compute_spend(budget, entries, budget.category_id)
    return BudgetSnapshot(budget=budget, spent=spent, in_period=budget.covers(as_of))


def set_budget(
    session_factory: SessionFactory,
    *,
    user_id: int,
    start_date: date,
    end_date: date,
    amount_limit,
    category_id: Optional[int] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Budget:
    """Replace the budget for the (owner, category) scope.

    The existing budget is retired in the same transaction that inserts the
    new one, so the scope never has zero or two budgets visible.
    """

    limit = require_positive(amount_limit, field="amount_limit")
    if start_date is None or end_date is None:
        raise InvalidArgument("start_date and end_date are required")
    if start_date > end_date:
        raise InvalidArgument("start_date must be on or before end_date")

    scope = Budget.category_id.is_(None) if category_id is None else Budget.category_id == category_id  # type: ignore[union-attr]
    with session_factory() as session:
        require_category(session, user_id=user_id, category_id=category_id)
        retired = session.exec(
            delete(Budget)
            .where(Budget.user_id == user_id)
            .where(scope)
            .execution_options(synchronize_session=False)
        ).rowcount
        budget = Budget(
            user_id=user_id,
            category_id=category_id,
            amount_limit=limit,
            start_date=start_date,
            end_date=end_date,
            created_at=clock(),
        )
        session.add(budget)
        session.flush()
        session.refresh(budget)
        session.expunge(budget)

    logger.info(
        "Budget set",
        extra={
            "budget_id": budget.id,
            "user_id": user_id,
            "category_id": category_id,
            "retired": retired,
        },
    )
    return budget


def evaluate_spend(
    session_factory: SessionFactory,
    *,
    user_id: int,
    as_of: date,
    category_id: Optional[int] = None,
) -> Optional[BudgetSnapshot]:
    """Current budget for the scope with its spend, or ``None`` when there is none."""

    with session_factory() as session:
        budget = session.exec(current_budget_statement(user_id, category_id)).first()
        if budget is None:
            return None
        snapshot = _snapshot(session, budget, as_of)
        session.expunge_all()
    return snapshot


def check_expense(
    session_factory: SessionFactory,
    *,
    user_id: int,
    amount,
    as_of: date,
    category_id: Optional[int] = None,
) -> Optional[BudgetCheck]:
    """Would an expense of *amount* on *as_of* overrun the scope's budget?"""

    value = require_positive(amount)
    snapshot = evaluate_spend(
        session_factory, user_id=user_id, as_of=as_of, category_id=category_id
    )
    if snapshot is None:
        return None
    check = BudgetCheck(
        budget_id=snapshot.budget.id,
        category_id=category_id,
        limit=snapshot.budget.amount_limit,
        spent=snapshot.spent,
        amount=value,
        in_period=snapshot.in_period,
    )
    if check.exceeded:
        logger.warning(
            "Expense would exceed budget",
            extra={
                "budget_id": check.budget_id,
                "limit": check.limit,
                "projected": check.projected,
            },
        )
    return check


def delete_budget(session_factory: SessionFactory, *, user_id: int, budget_id: int) -> None:
    with session_factory() as session:
        result = session.exec(
            delete(Budget)
            .where(Budget.id == budget_id)
            .where(Budget.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound(f"Budget {budget_id} not found")
    logger.info("Budget deleted", extra={"budget_id": budget_id, "user_id": user_id})
