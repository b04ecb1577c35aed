"""Savings goal progress and funded contributions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from ..domain.errors import InvalidArgument, NotFound
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.goal import Goal
from ..models.transaction import EntryKind, LedgerEntry
from ..money import ZERO, as_utc, utcnow
from .postings import append_entry, debit_account, require_positive

logger = get_logger(__name__)

# Progress within a cent of the target counts as met.
GOAL_TOLERANCE = Decimal("0.01")


@dataclass(slots=True)
class GoalCompletion:
    """A goal that was met and removed by the operation that reported it."""

    goal_id: int
    name: str
    target_amount: Decimal
    progress: Decimal


@dataclass(slots=True)
class GoalSnapshot:
    goal: Goal
    progress: Decimal

    @property
    def remaining(self) -> Decimal:
        return max(self.goal.target_amount - self.progress, ZERO)


@dataclass(slots=True)
class ContributionResult:
    entry: LedgerEntry
    progress: Decimal
    completed: bool


def compute_progress(goal: Goal, entries: Iterable[LedgerEntry]) -> Decimal:
    """Sum the ledger activity that counts toward *goal*.

    Only entries created at or after the goal count. Income adds, expenses
    subtract, contributions add when they were made to this goal. Transfers
    move money between the owner's own accounts and are left out.
    """

    total = ZERO
    for entry in entries:
        if as_utc(entry.created_at) < as_utc(goal.created_at):
            continue
        if entry.kind == EntryKind.INCOME:
            total += entry.amount
        elif entry.kind == EntryKind.EXPENSE:
            total -= entry.amount
        elif entry.kind == EntryKind.CONTRIBUTION and entry.goal_id == goal.id:
            total += entry.amount
    return total


def is_met(goal: Goal, progress: Decimal) -> bool:
    return progress >= goal.target_amount - GOAL_TOLERANCE


def _entries_since(session: Session, *, user_id: int, since: datetime) -> list[LedgerEntry]:
    statement = (
        select(LedgerEntry)
        .where(LedgerEntry.user_id == user_id)
        .where(LedgerEntry.created_at >= as_utc(since))
        .order_by(LedgerEntry.created_at, LedgerEntry.id)  # type: ignore
    )
    return list(session.exec(statement).all())


def _complete(session: Session, goal: Goal, progress: Decimal) -> Optional[GoalCompletion]:
    """Delete a met goal; only the caller whose delete hits the row reports it."""

    result = session.exec(
        delete(Goal)
        .where(Goal.id == goal.id)
        .where(Goal.user_id == goal.user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    logger.info(
        "Goal met",
        extra={"goal_id": goal.id, "target": goal.target_amount, "progress": progress},
    )
    return GoalCompletion(
        goal_id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        progress=progress,
    )


def settle_goals(session: Session, *, user_id: int) -> list[GoalCompletion]:
    """Remove every goal the owner has now met.

    Runs inside the session of the ledger operation that may have moved
    progress, after its writes, so the check sees that operation's entries.
    """

    goals = list(session.exec(select(Goal).where(Goal.user_id == user_id)).all())
    if not goals:
        return []
    entries = _entries_since(
        session, user_id=user_id, since=min(as_utc(g.created_at) for g in goals)
    )
    completed: list[GoalCompletion] = []
    for goal in goals:
        progress = compute_progress(goal, entries)
        if is_met(goal, progress):
            completion = _complete(session, goal, progress)
            if completion is not None:
                completed.append(completion)
    return completed


def create_goal(
    session_factory: SessionFactory,
    *,
    user_id: int,
    name: str,
    target_amount,
    deadline: date,
    clock: Callable[[], datetime] = utcnow,
) -> Goal:
    """Create a goal; progress starts counting from its creation time."""

    name = (name or "").strip()
    if not name:
        raise InvalidArgument("Goal name is required")
    target = require_positive(target_amount, field="target_amount")
    if deadline is None:
        raise InvalidArgument("deadline is required")
    now = clock()
    if deadline < now.date():
        raise InvalidArgument("Deadline cannot be in the past")

    with session_factory() as session:
        goal = Goal(
            user_id=user_id,
            name=name,
            target_amount=target,
            deadline=deadline,
            created_at=now,
        )
        session.add(goal)
        session.flush()
        session.refresh(goal)
        session.expunge(goal)
    logger.info("Goal created", extra={"goal_id": goal.id, "user_id": user_id})
    return goal


def contribute(
    session_factory: SessionFactory,
    *,
    user_id: int,
    goal_id: int,
    account_id: int,
    amount,
    clock: Callable[[], datetime] = utcnow,
) -> ContributionResult:
    """Move money from an account into a goal and complete the goal if met.

    The debit, the contribution entry, and the completion check share one
    transaction.
    """

    value = require_positive(amount)
    with session_factory() as session:
        debit_account(session, user_id=user_id, account_id=account_id, amount=value)
        goal = session.exec(
            select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id)
        ).first()
        if goal is None:
            raise NotFound(f"Goal {goal_id} not found")
        entry = append_entry(
            session,
            user_id=user_id,
            account_id=account_id,
            amount=value,
            kind=EntryKind.CONTRIBUTION,
            created_at=clock(),
            description=f"Contribution to {goal.name}",
            goal_id=goal.id,
        )
        progress = compute_progress(
            goal, _entries_since(session, user_id=user_id, since=goal.created_at)
        )
        completions = settle_goals(session, user_id=user_id)
        completed = any(c.goal_id == goal_id for c in completions)
        session.expunge(entry)

    logger.info(
        "Goal contribution posted",
        extra={
            "goal_id": goal_id,
            "account_id": account_id,
            "amount": value,
            "progress": progress,
            "completed": completed,
        },
    )
    return ContributionResult(entry=entry, progress=progress, completed=completed)


def goal_snapshots(session_factory: SessionFactory, *, user_id: int) -> list[GoalSnapshot]:
    """Goals with progress derived from the ledger."""

    with session_factory() as session:
        goals = list(
            session.exec(
                select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at, Goal.id)  # type: ignore
            ).all()
        )
        if not goals:
            return []
        entries = _entries_since(
            session, user_id=user_id, since=min(as_utc(g.created_at) for g in goals)
        )
        snapshots = [GoalSnapshot(goal=g, progress=compute_progress(g, entries)) for g in goals]
        session.expunge_all()
    return snapshots


def delete_goal(session_factory: SessionFactory, *, user_id: int, goal_id: int) -> None:
    with session_factory() as session:
        result = session.exec(
            delete(Goal)
            .where(Goal.id == goal_id)
            .where(Goal.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound(f"Goal {goal_id} not found")
    logger.info("Goal deleted", extra={"goal_id": goal_id, "user_id": user_id})
