"""Tests for loan creation, repayment and lifecycle."""

from __future__ import annotations

import threading
from datetime import date

import pytest

from pocketledger.domain.errors import (
    InsufficientFunds,
    InvalidArgument,
    NotFound,
    OverRepayment,
)
from pocketledger.infra.repositories import SQLModelLoanRepository, SQLModelTransactionRepository
from pocketledger.models import EntryKind, LoanStatus
from pocketledger.services import ledger_service, loans
from pocketledger.services.amortization import amortize
from tests.conftest import assert_float_equal, assert_money_equal


def _repay(session_factory, user, loan, account, amount, clock=None):
    kwargs = {"clock": clock} if clock is not None else {}
    return loans.repay(
        session_factory,
        user_id=user.id,
        loan_id=loan.id,
        account_id=account.id,
        amount=amount,
        **kwargs,
    )


def _terms(**overrides):
    fields = dict(
        lender_name="City Bank",
        purpose="Laptop",
        principal_amount="1000",
        interest_rate="12",
        start_date=date(2025, 1, 1),
        due_date=date(2026, 1, 1),
    )
    fields.update(overrides)
    return loans.LoanTerms(**fields)


class TestCreateLoan:
    def test_preview_matches_standalone_amortization(self, session_factory, user, clock):
        snapshot = loans.create_loan(
            session_factory, user_id=user.id, terms=_terms(interest_type="emi"), clock=clock
        )

        expected = amortize(1000, 12, "emi", date(2025, 1, 1), date(2026, 1, 1), 0, "monthly")
        assert snapshot.preview == expected
        assert snapshot.loan.status == LoanStatus.ACTIVE
        assert_money_equal(snapshot.loan.paid_amount, "0")
        assert_money_equal(snapshot.remaining, "1000")

    def test_simple_loan_preview(self, session_factory, user, clock):
        snapshot = loans.create_loan(session_factory, user_id=user.id, terms=_terms(), clock=clock)

        assert_float_equal(snapshot.preview.total_repayment, 1120.0)
        assert_float_equal(snapshot.preview.next_installment_interest, 10.0)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"lender_name": "  "},
            {"purpose": ""},
            {"principal_amount": "0"},
            {"interest_rate": "-1"},
            {"interest_rate": "lots"},
            {"due_date": date(2024, 12, 31)},
            {"interest_type": "balloon"},
            {"payment_frequency": "weekly"},
            {"grace_period_months": -1},
        ],
    )
    def test_invalid_terms_rejected(self, session_factory, user, clock, overrides):
        with pytest.raises(InvalidArgument):
            loans.create_loan(session_factory, user_id=user.id, terms=_terms(**overrides), clock=clock)


class TestRepay:
    def test_repayment_moves_money_and_links_entry(
        self, session_factory, user, account_factory, loan_factory, reload_account, clock
    ):
        account = account_factory(balance="500")
        loan = loan_factory(principal="300")

        result = _repay(session_factory, user, loan, account, "120", clock)

        assert_money_equal(result.loan.paid_amount, "120")
        assert_money_equal(result.remaining, "180")
        assert result.entry.kind == EntryKind.EXPENSE
        assert result.entry.loan_id == loan.id
        assert_money_equal(reload_account(account.id).balance, "380")
        linked = SQLModelTransactionRepository(session_factory).list_by_loan(loan.id, user_id=user.id)
        assert [e.id for e in linked] == [result.entry.id]

    def test_full_repayment_keeps_loan_active(
        self, session_factory, user, account_factory, loan_factory, clock
    ):
        account = account_factory(balance="500")
        loan = loan_factory(principal="300")

        result = _repay(session_factory, user, loan, account, "300", clock)

        assert_money_equal(result.remaining, "0")
        assert result.loan.status == LoanStatus.ACTIVE

    def test_over_repayment_rejected_with_sufficient_balance(
        self, session_factory, user, account_factory, loan_factory, reload_account, clock
    ):
        account = account_factory(balance="1000")
        loan = loan_factory(principal="300")
        _repay(session_factory, user, loan, account, "250", clock)

        with pytest.raises(OverRepayment) as excinfo:
            _repay(session_factory, user, loan, account, "50.01", clock)

        assert_money_equal(excinfo.value.remaining, "50")
        stored = SQLModelLoanRepository(session_factory).get_by_id(loan.id, user_id=user.id)
        assert_money_equal(stored.paid_amount, "250")
        assert_money_equal(reload_account(account.id).balance, "750")

    def test_insufficient_funds_rolls_back_paid_amount(
        self, session_factory, user, account_factory, loan_factory, reload_account, clock
    ):
        account = account_factory(balance="40")
        loan = loan_factory(principal="300")

        with pytest.raises(InsufficientFunds):
            _repay(session_factory, user, loan, account, "50", clock)

        stored = SQLModelLoanRepository(session_factory).get_by_id(loan.id, user_id=user.id)
        assert_money_equal(stored.paid_amount, "0")
        assert_money_equal(reload_account(account.id).balance, "40")
        assert SQLModelTransactionRepository(session_factory).list_all(user_id=user.id) == []

    def test_closed_loan_rejects_repayment(
        self, session_factory, user, account_factory, loan_factory, clock
    ):
        account = account_factory(balance="500")
        loan = loan_factory(principal="300")
        loans.set_loan_status(session_factory, user_id=user.id, loan_id=loan.id, status="closed")

        with pytest.raises(InvalidArgument):
            _repay(session_factory, user, loan, account, "10", clock)

    def test_unknown_or_foreign_loan_not_found(
        self, session_factory, user, other_user, account_factory, loan_factory, clock
    ):
        account = account_factory(balance="500")
        theirs = loan_factory(principal="300", owner=other_user)

        with pytest.raises(NotFound):
            _repay(session_factory, user, theirs, account, "10", clock)

    def test_non_positive_amount_rejected(self, session_factory, user, account_factory, loan_factory):
        account = account_factory(balance="500")
        loan = loan_factory()

        with pytest.raises(InvalidArgument):
            _repay(session_factory, user, loan, account, "0")

    def test_repayments_keep_account_reconciled(
        self, session_factory, user, account_factory, loan_factory, clock
    ):
        account = account_factory(balance="100")
        loan = loan_factory(principal="90")
        for amount in ("10.10", "20.20", "30.30"):
            _repay(session_factory, user, loan, account, amount, clock)

        assert ledger_service.reconcile_account(
            session_factory, user_id=user.id, account_id=account.id
        ).balanced


@pytest.mark.integration
def test_concurrent_repayments_never_exceed_principal(
    session_factory, user, account_factory, loan_factory, reload_account
):
    first = account_factory(name="First", balance="100")
    second = account_factory(name="Second", balance="100")
    loan = loan_factory(principal="100")
    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    lock = threading.Lock()

    def worker(account):
        barrier.wait()
        try:
            result = _repay(session_factory, user, loan, account, "60")
        except OverRepayment as exc:
            result = exc
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(a,)) for a in (first, second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    rejected = [o for o in outcomes if isinstance(o, OverRepayment)]
    accepted = [o for o in outcomes if isinstance(o, loans.RepaymentResult)]
    assert len(rejected) == 1
    assert len(accepted) == 1
    stored = SQLModelLoanRepository(session_factory).get_by_id(loan.id, user_id=user.id)
    assert_money_equal(stored.paid_amount, "60")
    total = reload_account(first.id).balance + reload_account(second.id).balance
    assert_money_equal(total, "140")


class TestLifecycle:
    def test_set_status_round_trip(self, session_factory, user, loan_factory):
        loan = loan_factory()

        closed = loans.set_loan_status(
            session_factory, user_id=user.id, loan_id=loan.id, status=LoanStatus.CLOSED
        )
        reopened = loans.set_loan_status(
            session_factory, user_id=user.id, loan_id=loan.id, status="active"
        )

        assert closed.status == LoanStatus.CLOSED
        assert reopened.status == LoanStatus.ACTIVE

    def test_set_status_validation(self, session_factory, user, loan_factory):
        loan = loan_factory()

        with pytest.raises(InvalidArgument):
            loans.set_loan_status(session_factory, user_id=user.id, loan_id=loan.id, status="paid")
        with pytest.raises(NotFound):
            loans.set_loan_status(session_factory, user_id=user.id, loan_id=999, status="closed")

    def test_delete_loan_keeps_unlinked_entries(
        self, session_factory, user, account_factory, loan_factory, reload_account, clock
    ):
        account = account_factory(balance="500")
        loan = loan_factory(principal="300")
        result = _repay(session_factory, user, loan, account, "100", clock)

        loans.delete_loan(session_factory, user_id=user.id, loan_id=loan.id)

        assert SQLModelLoanRepository(session_factory).get_by_id(loan.id, user_id=user.id) is None
        entry = SQLModelTransactionRepository(session_factory).get_by_id(
            result.entry.id, user_id=user.id
        )
        assert entry.loan_id is None
        assert_money_equal(entry.amount, "100")
        assert_money_equal(reload_account(account.id).balance, "400")
        with pytest.raises(NotFound):
            loans.delete_loan(session_factory, user_id=user.id, loan_id=loan.id)

    def test_snapshots_newest_first_and_active_filter(self, session_factory, user, loan_factory):
        older = loan_factory(lender_name="Old Bank")
        newer = loan_factory(lender_name="New Bank")
        loans.set_loan_status(session_factory, user_id=user.id, loan_id=older.id, status="closed")

        every = loans.loan_snapshots(session_factory, user_id=user.id)
        active = loans.loan_snapshots(session_factory, user_id=user.id, active_only=True)

        assert [s.loan.id for s in every] == [newer.id, older.id]
        assert [s.loan.id for s in active] == [newer.id]
        assert_float_equal(every[0].preview.total_repayment, 1120.0)
