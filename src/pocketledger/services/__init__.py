"""Service module exports."""

from . import (
    amortization,
    budgeting,
    goals,
    ledger_service,
    loans,
    postings,
    transfers,
)

__all__ = [
    "amortization",
    "budgeting",
    "goals",
    "ledger_service",
    "loans",
    "postings",
    "transfers",
]
