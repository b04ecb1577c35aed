"""Transfers between two of the owner's accounts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from ..domain.errors import InvalidDestination, NotFound
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.account import Account
from ..models.transaction import EntryKind, LedgerEntry
from ..money import utcnow
from .goals import GoalCompletion, settle_goals
from .postings import (
    append_entry,
    credit_account,
    debit_account,
    require_category,
    require_positive,
)

logger = get_logger(__name__)


@dataclass(slots=True)
class TransferResult:
    transfer_ref: str
    amount: Decimal
    outgoing: LedgerEntry
    incoming: LedgerEntry
    completed_goals: list[GoalCompletion]


def transfer(
    session_factory: SessionFactory,
    *,
    user_id: int,
    from_account_id: int,
    to_account_id: int,
    amount,
    from_category_id: Optional[int] = None,
    to_category_id: Optional[int] = None,
    description: Optional[str] = None,
    clock: Callable[[], datetime] = utcnow,
) -> TransferResult:
    """Move *amount* from one account to another in a single transaction.

    Debit, credit and both ledger halves commit together or not at all.
    The destination category defaults to the source category.
    """

    value = require_positive(amount)
    if from_account_id == to_account_id:
        raise InvalidDestination("Cannot transfer to the same account")
    if to_category_id is None:
        to_category_id = from_category_id

    ref = str(uuid.uuid4())
    with session_factory() as session:
        debit_account(session, user_id=user_id, account_id=from_account_id, amount=value)
        if credit_account(session, user_id=user_id, account_id=to_account_id, amount=value) != 1:
            destination = session.get(Account, to_account_id)
            if destination is None:
                raise NotFound(f"Account {to_account_id} not found")
            raise InvalidDestination("Destination account belongs to another user")
        require_category(session, user_id=user_id, category_id=from_category_id)
        require_category(session, user_id=user_id, category_id=to_category_id)

        now = clock()
        outgoing = append_entry(
            session,
            user_id=user_id,
            account_id=from_account_id,
            amount=value,
            kind=EntryKind.TRANSFER_OUT,
            created_at=now,
            category_id=from_category_id,
            description=description or f"Transfer to account {to_account_id}",
            transfer_ref=ref,
        )
        incoming = append_entry(
            session,
            user_id=user_id,
            account_id=to_account_id,
            amount=value,
            kind=EntryKind.TRANSFER_IN,
            created_at=now,
            category_id=to_category_id,
            description=description or f"Transfer from account {from_account_id}",
            transfer_ref=ref,
        )
        # Settlement follows every ledger-affecting operation, transfers included.
        completed = settle_goals(session, user_id=user_id)
        session.expunge(outgoing)
        session.expunge(incoming)

    logger.info(
        "Transfer posted",
        extra={
            "transfer_ref": ref,
            "from_account_id": from_account_id,
            "to_account_id": to_account_id,
            "amount": value,
        },
    )
    return TransferResult(
        transfer_ref=ref,
        amount=value,
        outgoing=outgoing,
        incoming=incoming,
        completed_goals=completed,
    )
