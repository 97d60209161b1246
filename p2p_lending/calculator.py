"""Repayment calculations shared by the loan state machine and previews."""

from __future__ import annotations

import calendar
from datetime import datetime
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import TYPE_CHECKING

from p2p_lending.exceptions import (
    BelowMinimumError,
    IllegalTransitionError,
    InvalidAmountError,
)
from p2p_lending.money import Amount

if TYPE_CHECKING:
    from p2p_lending.models.lending.loan import Loan

MONTHS_PER_YEAR = 12


def coerce_rate(value: Decimal | int | str | float) -> Decimal:
    """Normalise an interest rate percentage to a non-negative ``Decimal``."""
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid interest rate: {value!r}")
    try:
        # str() keeps 12.5 as 12.5 instead of its binary expansion
        rate = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Invalid interest rate: {value!r}") from e
    if not rate.is_finite() or rate < 0:
        raise InvalidAmountError(f"Interest rate must be a non-negative number, got {value!r}")
    return rate


def validate_terms(principal: Amount, interest_rate_percent: Decimal, duration_months: int) -> None:
    """Raise ``InvalidAmountError`` unless the loan terms are usable."""
    if not isinstance(principal, Amount) or not principal.is_positive():
        raise InvalidAmountError(f"Principal must be a positive amount, got {principal}")
    coerce_rate(interest_rate_percent)
    if isinstance(duration_months, bool) or not isinstance(duration_months, int) or duration_months <= 0:
        raise InvalidAmountError(
            f"Duration must be a positive number of months, got {duration_months!r}"
        )


def projected_interest(
    principal: Amount,
    interest_rate_percent: Decimal | int | str,
    duration_months: int,
) -> Amount:
    """Simple interest on an annualised rate over ``duration_months``."""
    rate = coerce_rate(interest_rate_percent)
    validate_terms(principal, rate, duration_months)
    return principal.multiply_by_rate(rate, Fraction(duration_months, MONTHS_PER_YEAR))


def projected_total_obligation(
    principal: Amount,
    interest_rate_percent: Decimal | int | str,
    duration_months: int,
) -> Amount:
    """Principal plus simple interest for the full term.

    ``principal * (1 + rate / 100 * months / 12)`` rounded half-up to the
    minor unit. 1 BTC at 12% for 6 months gives 1.06 BTC.
    """
    return principal.add(projected_interest(principal, interest_rate_percent, duration_months))


def suggested_next_payment(loan: Loan, desired_amount: Amount) -> Amount:
    """Clamp ``desired_amount`` into ``[minor unit, outstanding balance]``.

    Never mutates the loan.

    Raises
    ------
    BelowMinimumError
        If ``desired_amount`` is smaller than one minor unit.
    IllegalTransitionError
        If the loan is not active, so no payment can be taken.
    """
    minimum = Amount.minor(loan.principal.unit)
    if desired_amount < minimum:
        raise BelowMinimumError(
            f"Payment {desired_amount} is below the minimum of {minimum} {minimum.unit.code}"
        )
    if not loan.is_active:
        raise IllegalTransitionError(
            f"Loan {loan.loan_id} is {loan.status.value}; it does not accept payments"
        )
    outstanding = loan.outstanding_balance()
    return desired_amount if desired_amount <= outstanding else outstanding


def add_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` by calendar months, clamping the day to the month's end.

    ``add_months(Jan 31, 1)`` is Feb 28 (or 29).
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // MONTHS_PER_YEAR
    month = month_index % MONTHS_PER_YEAR + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
