"""Pytest configuration and shared fixtures for PocketLedger tests.

This module provides database fixtures, test data factories, and helper utilities
for testing domain logic, repositories, and services without touching the real app database.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from pocketledger.config import TestConfig
from pocketledger.infra.database import create_db_engine, create_session_factory, init_database
from pocketledger.infra.repositories import (
    SQLModelAccountRepository,
    SQLModelCategoryRepository,
    SQLModelUserRepository,
)
from pocketledger.logging_config import ROOT_LOGGER_NAME
from pocketledger.models import Account, AccountType, Category, Goal, User
from pocketledger.money import to_money
from pocketledger.services import goals, loans

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point every config at a per-test data directory."""

    data_dir = tmp_path / "data"
    monkeypatch.setenv("POCKETLEDGER_DATA_DIR", str(data_dir))
    monkeypatch.delenv("POCKETLEDGER_DATABASE_URL", raising=False)
    yield data_dir

    # setup_logging attaches handlers to the package logger; drop them between tests.
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


class FakeClock:
    """Deterministic clock; every call returns a strictly later timestamp."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def test_config(isolated_data_dir) -> TestConfig:
    return TestConfig()


@pytest.fixture(scope="function")
def db_engine(test_config):
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: engine with the package's pragmas and busy timeout applied
    """
    engine = create_db_engine(test_config)
    init_database(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Transactional session factory matching what the services expect."""

    return create_session_factory(db_engine)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user(session_factory) -> User:
    """Create a default user for scoping data."""

    return SQLModelUserRepository(session_factory).get_or_create("tester")


@pytest.fixture
def other_user(session_factory) -> User:
    return SQLModelUserRepository(session_factory).get_or_create("someone-else")


@pytest.fixture
def account_factory(session_factory, user):
    """Factory for creating test accounts.

    Returns:
        Callable: Function that creates and persists Account instances
    """

    def _create_account(
        name: str = "Test Account",
        balance="0.00",
        account_type: AccountType = AccountType.BANK,
        owner: User | None = None,
    ) -> Account:
        owner = owner or user
        account = Account(
            name=name,
            account_type=account_type,
            initial_balance=to_money(balance),
            user_id=owner.id,
        )
        return SQLModelAccountRepository(session_factory).create(account, user_id=owner.id)

    return _create_account


@pytest.fixture
def category_factory(session_factory, user):
    """Factory for creating test categories."""

    def _create_category(
        name: str = "Test Category",
        category_type: str = "expense",
        owner: User | None = None,
    ) -> Category:
        owner = owner or user
        category = Category(name=name, category_type=category_type, user_id=owner.id)
        return SQLModelCategoryRepository(session_factory).create(category, user_id=owner.id)

    return _create_category


@pytest.fixture
def goal_factory(session_factory, user, clock):
    """Factory for creating goals stamped by the test clock."""

    def _create_goal(
        name: str = "Emergency Fund",
        target="500.00",
        deadline: date = date(2025, 12, 31),
        owner: User | None = None,
    ) -> Goal:
        owner = owner or user
        return goals.create_goal(
            session_factory,
            user_id=owner.id,
            name=name,
            target_amount=target,
            deadline=deadline,
            clock=clock,
        )

    return _create_goal


@pytest.fixture
def loan_factory(session_factory, user, clock):
    """Factory for creating loans; returns the persisted ``Loan``."""

    def _create_loan(
        principal="1000.00",
        rate="12",
        interest_type: str = "simple",
        payment_frequency: str = "monthly",
        start: date = date(2025, 1, 1),
        due: date = date(2026, 1, 1),
        grace_period_months: int = 0,
        lender_name: str = "City Bank",
        purpose: str = "Laptop",
        owner: User | None = None,
    ):
        owner = owner or user
        terms = loans.LoanTerms(
            lender_name=lender_name,
            purpose=purpose,
            principal_amount=principal,
            interest_rate=rate,
            start_date=start,
            due_date=due,
            interest_type=interest_type,
            payment_frequency=payment_frequency,
            grace_period_months=grace_period_months,
        )
        return loans.create_loan(session_factory, user_id=owner.id, terms=terms, clock=clock).loan

    return _create_loan


@pytest.fixture
def reload_account(session_factory, user):
    """Fetch an account's current stored state."""

    def _reload(account_id: int, owner: User | None = None) -> Account:
        owner = owner or user
        account = SQLModelAccountRepository(session_factory).get_by_id(
            account_id, user_id=owner.id
        )
        assert account is not None
        return account

    return _reload


# =============================================================================
# Helper Utilities
# =============================================================================


def assert_money_equal(actual, expected):
    """Assert two monetary values are equal to the cent.

    Args:
        actual: Actual value (Decimal, str, int or float)
        expected: Expected value

    Raises:
        AssertionError: If the values differ once rounded to cents
    """
    actual_money = to_money(actual)
    expected_money = to_money(expected)
    assert actual_money == expected_money, f"Expected {expected_money}, got {actual_money}"


def assert_float_equal(actual: float, expected: float, tolerance: float = 0.01):
    """Assert that two floats are equal within a tolerance."""

    assert (
        abs(actual - expected) < tolerance
    ), f"Expected {expected}, got {actual} (diff: {abs(actual - expected)})"
