"""Fixed-point money helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Return *value* as a 2-decimal ``Decimal`` using half-up rounding."""

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # Go through repr so 0.1 becomes Decimal("0.1") rather than its binary expansion.
        amount = Decimal(repr(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return *value* as aware UTC; SQLite hands datetimes back without an offset."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
