"""Loan repayment and interest preview.

Pure functions with no persistence. The loan-creation path and standalone
previews both call :func:`amortize`, so a saved loan always shows the
figures its preview showed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from ..domain.errors import InvalidArgument
from ..models.loan import InterestModel, PaymentFrequency

DAYS_PER_YEAR = 365


@dataclass(slots=True, frozen=True)
class AmortizationPreview:
    total_repayment: float
    interest_amount: float
    next_installment_interest: float


def _finite(value: float) -> float:
    """Report non-finite intermediate results as zero."""

    return value if math.isfinite(value) else 0.0


def _parse_model(value) -> InterestModel:
    try:
        return InterestModel(value)
    except ValueError as exc:
        raise InvalidArgument(f"Unknown interest model: {value!r}") from exc


def _parse_frequency(value) -> PaymentFrequency:
    try:
        return PaymentFrequency(value)
    except ValueError as exc:
        raise InvalidArgument(f"Unknown payment frequency: {value!r}") from exc


def term_years(start: date | None, due: date | None, grace_months: int = 0) -> float:
    """Interest-bearing term in years: the date span less the grace period."""

    if start is None or due is None:
        return 0.0
    years = abs((due - start).days) / DAYS_PER_YEAR
    if grace_months and grace_months > 0:
        years = max(0.0, years - grace_months / 12)
    return years


def amortize(
    principal,
    annual_rate_percent,
    interest_model,
    start: date | None,
    due: date | None,
    grace_months: int = 0,
    payment_frequency=PaymentFrequency.MONTHLY,
) -> AmortizationPreview:
    """Total repayment, interest, and next-installment interest for a loan.

    ``simple`` accrues ``P * r * T``. ``compound`` compounds at the payment
    frequency. ``emi`` uses the equal monthly installment formula and falls
    back to repaying exactly the principal when the rate or term is zero.
    """

    model = _parse_model(interest_model)
    frequency = _parse_frequency(payment_frequency)
    p = float(principal or 0)
    rate = float(annual_rate_percent or 0) / 100
    years = term_years(start, due, grace_months)
    periods = frequency.periods_per_year

    if model is InterestModel.SIMPLE:
        interest = p * rate * years
        total = p + interest
    elif model is InterestModel.COMPOUND:
        try:
            total = p * math.pow(1 + rate / periods, periods * years)
        except OverflowError:
            total = math.inf
        except ValueError:
            # Negative base with a fractional exponent.
            total = math.nan
        interest = total - p
    else:
        monthly_rate = rate / 12
        months = years * 12
        if months > 0 and monthly_rate > 0:
            try:
                growth = math.pow(1 + monthly_rate, months)
                installment = p * monthly_rate * growth / (growth - 1)
            except (OverflowError, ZeroDivisionError):
                installment = math.nan
            total = installment * months
            interest = total - p
        else:
            total = p
            interest = 0.0

    if model is InterestModel.SIMPLE:
        next_interest = p * rate / periods
    else:
        next_interest = (total - p) / ((years * periods) or 1)

    return AmortizationPreview(
        total_repayment=_finite(total),
        interest_amount=_finite(interest),
        next_installment_interest=_finite(next_interest),
    )
