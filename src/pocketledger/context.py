"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelAccountRepository,
    SQLModelBudgetRepository,
    SQLModelCategoryRepository,
    SQLModelGoalRepository,
    SQLModelLoanRepository,
    SQLModelTransactionRepository,
    SQLModelUserRepository,
)
from .logging_config import setup_logging


@dataclass
class AppContext:
    """Configuration, session factory and repositories wired together."""

    # Configuration
    config: BaseConfig
    engine: Engine

    # Session factory
    session_factory: SessionFactory

    # Repositories
    user_repo: SQLModelUserRepository
    account_repo: SQLModelAccountRepository
    category_repo: SQLModelCategoryRepository
    transaction_repo: SQLModelTransactionRepository
    budget_repo: SQLModelBudgetRepository
    goal_repo: SQLModelGoalRepository
    loan_repo: SQLModelLoanRepository

    dev_mode: bool = False

    def user_id_for(self, username: str) -> int:
        """Resolve a username to its owner id, creating the owner on first use."""

        user = self.user_repo.get_or_create(username)
        return user.id


def create_app_context(
    config: Optional[BaseConfig] = None, *, configure_logging: bool = True
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    if configure_logging:
        setup_logging(config)

    # Create database engine and initialize schema
    engine = create_db_engine(config)
    init_database(engine)

    session_factory = create_session_factory(engine)

    return AppContext(
        config=config,
        engine=engine,
        dev_mode=config.DEV_MODE,
        session_factory=session_factory,
        user_repo=SQLModelUserRepository(session_factory),
        account_repo=SQLModelAccountRepository(session_factory),
        category_repo=SQLModelCategoryRepository(session_factory),
        transaction_repo=SQLModelTransactionRepository(session_factory),
        budget_repo=SQLModelBudgetRepository(session_factory),
        goal_repo=SQLModelGoalRepository(session_factory),
        loan_repo=SQLModelLoanRepository(session_factory),
    )
