"""Loan lifecycle and the repayment processor."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import delete, func, update
from sqlmodel import select

from ..domain.errors import InvalidArgument, NotFound, OverRepayment
from ..infra.database import SessionFactory
from ..infra.repositories.loan import SQLModelLoanRepository
from ..logging_config import get_logger
from ..models.loan import InterestModel, Loan, LoanStatus, PaymentFrequency
from ..models.transaction import EntryKind, LedgerEntry
from ..money import to_money, utcnow
from .amortization import AmortizationPreview, amortize
from .goals import GoalCompletion, settle_goals
from .postings import append_entry, debit_account, require_positive

logger = get_logger(__name__)


@dataclass(slots=True)
class LoanTerms:
    """Fields a caller supplies to open a loan."""

    lender_name: str
    purpose: str
    principal_amount: Decimal | float | str
    interest_rate: Decimal | float | str
    start_date: date
    due_date: date
    interest_type: InterestModel | str = InterestModel.SIMPLE
    payment_frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY
    grace_period_months: int = 0
    notes: Optional[str] = None


@dataclass(slots=True)
class LoanSnapshot:
    loan: Loan
    preview: AmortizationPreview

    @property
    def remaining(self) -> Decimal:
        return self.loan.remaining


@dataclass(slots=True)
class RepaymentResult:
    loan: Loan
    entry: LedgerEntry
    completed_goals: list[GoalCompletion]

    @property
    def remaining(self) -> Decimal:
        return self.loan.remaining


def preview_for(loan: Loan) -> AmortizationPreview:
    return amortize(
        loan.principal_amount,
        loan.interest_rate,
        loan.interest_type,
        loan.start_date,
        loan.due_date,
        loan.grace_period_months,
        loan.payment_frequency,
    )


def _validated(terms: LoanTerms) -> dict:
    lender = (terms.lender_name or "").strip()
    purpose = (terms.purpose or "").strip()
    if not lender or not purpose:
        raise InvalidArgument("Lender and purpose are required")
    if terms.start_date is None or terms.due_date is None:
        raise InvalidArgument("Start and due dates are required")
    if terms.due_date < terms.start_date:
        raise InvalidArgument("Due date must be on or after the start date")
    principal = require_positive(terms.principal_amount, field="principal_amount")
    if terms.interest_rate is None:
        raise InvalidArgument("interest_rate is required")
    try:
        rate = to_money(terms.interest_rate)
    except ValueError as exc:
        raise InvalidArgument("interest_rate must be a number") from exc
    if rate < 0:
        raise InvalidArgument("interest_rate cannot be negative")
    grace = int(terms.grace_period_months or 0)
    if grace < 0:
        raise InvalidArgument("grace_period_months cannot be negative")
    try:
        model = InterestModel(terms.interest_type)
        frequency = PaymentFrequency(terms.payment_frequency)
    except ValueError as exc:
        raise InvalidArgument(str(exc)) from exc
    return {
        "lender_name": lender,
        "purpose": purpose,
        "principal_amount": principal,
        "interest_rate": rate,
        "interest_type": model,
        "payment_frequency": frequency,
        "start_date": terms.start_date,
        "due_date": terms.due_date,
        "grace_period_months": grace,
        "notes": terms.notes,
    }


def create_loan(
    session_factory: SessionFactory,
    *,
    user_id: int,
    terms: LoanTerms,
    clock: Callable[[], datetime] = utcnow,
) -> LoanSnapshot:
    """Persist a new active loan and return it with its repayment preview."""

    fields = _validated(terms)
    with session_factory() as session:
        loan = Loan(user_id=user_id, created_at=clock(), **fields)
        session.add(loan)
        session.flush()
        session.refresh(loan)
        session.expunge(loan)
    logger.info(
        "Loan created",
        extra={"loan_id": loan.id, "user_id": user_id, "principal": loan.principal_amount},
    )
    return LoanSnapshot(loan=loan, preview=preview_for(loan))


def repay(
    session_factory: SessionFactory,
    *,
    user_id: int,
    loan_id: int,
    account_id: int,
    amount,
    clock: Callable[[], datetime] = utcnow,
) -> RepaymentResult:
    """Pay *amount* toward a loan from an account.

    The paid-amount increase is guarded so it can never pass the principal,
    and it runs before the account debit; a short balance rolls both back.
    """

    value = require_positive(amount)
    with session_factory() as session:
        result = session.exec(
            update(Loan)
            .where(Loan.id == loan_id)
            .where(Loan.user_id == user_id)
            .where(Loan.status == LoanStatus.ACTIVE)
            .where(func.round(Loan.paid_amount + value, 2) <= Loan.principal_amount)
            .values(paid_amount=func.round(Loan.paid_amount + value, 2))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            loan = session.exec(
                select(Loan).where(Loan.id == loan_id, Loan.user_id == user_id)
            ).first()
            if loan is None:
                raise NotFound(f"Loan {loan_id} not found")
            if loan.status != LoanStatus.ACTIVE:
                raise InvalidArgument(f"Loan {loan_id} is closed")
            logger.warning(
                "Repayment rejected",
                extra={"loan_id": loan_id, "remaining": loan.remaining, "amount": value},
            )
            raise OverRepayment(loan_id, loan.remaining, value)

        debit_account(session, user_id=user_id, account_id=account_id, amount=value)
        loan = session.exec(select(Loan).where(Loan.id == loan_id)).one()
        entry = append_entry(
            session,
            user_id=user_id,
            account_id=account_id,
            amount=value,
            kind=EntryKind.EXPENSE,
            created_at=clock(),
            description=f"Repayment toward {loan.lender_name}",
            loan_id=loan_id,
        )
        completed = settle_goals(session, user_id=user_id)
        session.expunge_all()

    logger.info(
        "Loan repayment posted",
        extra={
            "loan_id": loan_id,
            "account_id": account_id,
            "amount": value,
            "paid_amount": loan.paid_amount,
        },
    )
    return RepaymentResult(loan=loan, entry=entry, completed_goals=completed)


def set_loan_status(
    session_factory: SessionFactory, *, user_id: int, loan_id: int, status
) -> Loan:
    """Open or close a loan. Full repayment never changes status by itself."""

    try:
        new_status = LoanStatus(status)
    except ValueError as exc:
        raise InvalidArgument(f"Invalid status: {status!r}") from exc
    with session_factory() as session:
        result = session.exec(
            update(Loan)
            .where(Loan.id == loan_id)
            .where(Loan.user_id == user_id)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound(f"Loan {loan_id} not found")
        loan = session.exec(select(Loan).where(Loan.id == loan_id)).one()
        session.expunge(loan)
    logger.info("Loan status changed", extra={"loan_id": loan_id, "status": new_status.value})
    return loan


def delete_loan(session_factory: SessionFactory, *, user_id: int, loan_id: int) -> None:
    """Remove a loan; its repayment entries stay in the ledger unlinked."""

    with session_factory() as session:
        session.exec(
            update(LedgerEntry)
            .where(LedgerEntry.loan_id == loan_id)
            .where(LedgerEntry.user_id == user_id)
            .values(loan_id=None)
            .execution_options(synchronize_session=False)
        )
        result = session.exec(
            delete(Loan)
            .where(Loan.id == loan_id)
            .where(Loan.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound(f"Loan {loan_id} not found")
    logger.info("Loan deleted", extra={"loan_id": loan_id, "user_id": user_id})


def loan_snapshots(
    session_factory: SessionFactory, *, user_id: int, active_only: bool = False
) -> list[LoanSnapshot]:
    """Loans, newest first, with remaining balance and repayment preview."""

    repo = SQLModelLoanRepository(session_factory)
    loans = repo.list_active(user_id=user_id) if active_only else repo.list_all(user_id=user_id)
    return [LoanSnapshot(loan=loan, preview=preview_for(loan)) for loan in loans]
