"""Domain-level definitions shared by services and repositories."""

from .errors import (
    InsufficientFunds,
    InvalidArgument,
    InvalidDestination,
    LedgerError,
    NotFound,
    OverRepayment,
    StorageError,
)

__all__ = [
    "InsufficientFunds",
    "InvalidArgument",
    "InvalidDestination",
    "LedgerError",
    "NotFound",
    "OverRepayment",
    "StorageError",
]
