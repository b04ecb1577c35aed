"""Failure kinds surfaced by ledger operations."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every domain failure raised by the engine."""

    kind = "internal"


class NotFound(LedgerError, LookupError):
    """Referenced account, loan, goal or budget is absent or not owned by the caller."""

    kind = "not_found"


class InvalidArgument(LedgerError, ValueError):
    """Missing field, non-positive amount, or otherwise malformed request."""

    kind = "invalid_argument"


class InvalidDestination(InvalidArgument):
    """Transfer target is the source account or belongs to another owner."""

    kind = "invalid_destination"


class InsufficientFunds(LedgerError):
    """Debit exceeds the account balance."""

    kind = "insufficient_funds"

    def __init__(self, account_id: int, balance, amount) -> None:
        super().__init__(
            f"Account {account_id} balance {balance} is less than requested {amount}"
        )
        self.account_id = account_id
        self.balance = balance
        self.amount = amount


class OverRepayment(LedgerError):
    """Repayment exceeds the loan's remaining balance."""

    kind = "over_repayment"

    def __init__(self, loan_id: int, remaining, amount) -> None:
        super().__init__(f"Loan {loan_id} has {remaining} remaining; cannot repay {amount}")
        self.loan_id = loan_id
        self.remaining = remaining
        self.amount = amount


class StorageError(LedgerError):
    """Unexpected database failure; the enclosing transaction was rolled back."""

    kind = "internal"
