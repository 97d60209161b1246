"""Loan model and its lifecycle state machine.

Status moves ``pending -> active -> repaid | defaulted`` or
``pending -> cancelled``. Repaid, defaulted and cancelled are terminal.
Every transition validates before it mutates, so a rejected call leaves
the loan exactly as it was.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from p2p_lending.calculator import (
    add_months,
    coerce_rate,
    projected_total_obligation,
    validate_terms,
)
from p2p_lending.exceptions import (
    IllegalTransitionError,
    InvalidAmountError,
    OverRepaymentError,
)
from p2p_lending.models.lending.enums import TERMINAL_LOAN_STATUSES, LoanStatus
from p2p_lending.money import Amount, sum_amounts

logger = logging.getLogger(__name__)


@dataclass
class Repayment:
    """One recorded payment against a loan."""

    amount: Amount
    timestamp: datetime


@dataclass
class Loan:
    """A matched, funded borrowing agreement."""

    loan_id: str
    borrower_id: str
    lender_id: str
    principal: Amount
    interest_rate_percent: Decimal
    duration_months: int
    created_at: datetime
    requires_collateral: bool = False
    request_listing_id: str | None = None
    offer_listing_id: str | None = None
    status: LoanStatus = LoanStatus.PENDING
    total_obligation: Amount | None = None  # Frozen at activation
    amount_repaid: Amount | None = None
    repayment_history: list[Repayment] = field(default_factory=list)
    activated_at: datetime | None = None
    due_at: datetime | None = None
    closed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = LoanStatus(self.status)
        self.interest_rate_percent = coerce_rate(self.interest_rate_percent)
        validate_terms(self.principal, self.interest_rate_percent, self.duration_months)
        if self.amount_repaid is None:
            self.amount_repaid = Amount.zero(self.principal.unit)

    # Queries

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_LOAN_STATUSES

    @property
    def interest_amount(self) -> Amount | None:
        """Interest due over the full term, known once the loan is active."""
        if self.total_obligation is None:
            return None
        return self.total_obligation.subtract(self.principal)

    @property
    def progress(self) -> Decimal:
        """Fraction of the total obligation repaid, between 0 and 1."""
        if self.total_obligation is None:
            return Decimal(0)
        return Decimal(self.amount_repaid.units) / Decimal(self.total_obligation.units)

    def outstanding_balance(self) -> Amount:
        """Total obligation minus what has been repaid.

        Before activation nothing is owed yet, so the balance is zero.
        """
        if self.total_obligation is None:
            return Amount.zero(self.principal.unit)
        return self.total_obligation.subtract(self.amount_repaid)

    def is_overdue(self, now: datetime) -> bool:
        return self.is_active and self.due_at is not None and now > self.due_at

    # Transitions

    def _require_status(self, action: str, *allowed: LoanStatus) -> None:
        if self.status not in allowed:
            raise IllegalTransitionError(
                f"Cannot {action} loan {self.loan_id} in status {self.status.value}"
            )

    def activate(self, now: datetime) -> None:
        """Fix the total obligation and start the repayment clock."""
        self._require_status("activate", LoanStatus.PENDING)
        total = projected_total_obligation(
            self.principal, self.interest_rate_percent, self.duration_months
        )
        self.total_obligation = total
        self.activated_at = now
        self.due_at = add_months(now, self.duration_months)
        self.status = LoanStatus.ACTIVE
        logger.debug("Loan %s activated, obligation %s due %s", self.loan_id, total, self.due_at)

    def cancel(self, now: datetime) -> None:
        self._require_status("cancel", LoanStatus.PENDING)
        if self.repayment_history:
            raise IllegalTransitionError(
                f"Cannot cancel loan {self.loan_id}: repayments have been recorded"
            )
        self.status = LoanStatus.CANCELLED
        self.closed_at = now

    def record_repayment(self, amount: Amount, now: datetime) -> Repayment:
        """Apply a payment; a payment that clears the balance closes the loan as repaid.

        Raises
        ------
        IllegalTransitionError
            If the loan is not active.
        InvalidAmountError
            If ``amount`` is zero or negative.
        OverRepaymentError
            If ``amount`` exceeds the outstanding balance. Nothing is clamped.
        """
        self._require_status("repay", LoanStatus.ACTIVE)
        if not isinstance(amount, Amount) or not amount.is_positive():
            raise InvalidAmountError(f"Repayment must be a positive amount, got {amount}")
        outstanding = self.outstanding_balance()
        if amount > outstanding:
            raise OverRepaymentError(
                f"Repayment of {amount} exceeds outstanding balance {outstanding} on loan {self.loan_id}"
            )

        repayment = Repayment(amount=amount, timestamp=now)
        self.repayment_history.append(repayment)
        self.amount_repaid = self.amount_repaid.add(amount)
        if self.amount_repaid == self.total_obligation:
            self.status = LoanStatus.REPAID
            self.closed_at = now
        return repayment

    def mark_defaulted(self, now: datetime) -> None:
        """Close an overdue loan that still has an outstanding balance."""
        self._require_status("default", LoanStatus.ACTIVE)
        if not now > self.due_at:
            raise IllegalTransitionError(
                f"Loan {self.loan_id} is not past due ({self.due_at.isoformat()})"
            )
        if not self.amount_repaid < self.total_obligation:
            raise IllegalTransitionError(f"Loan {self.loan_id} has no outstanding balance")
        self.status = LoanStatus.DEFAULTED
        self.closed_at = now

    def check_invariants(self) -> None:
        """Raise ``IllegalTransitionError`` if the accounting fields disagree.

        Used when a loan is loaded back from outside the core.
        """
        history_total = sum_amounts((r.amount for r in self.repayment_history), self.principal.unit)
        if history_total != self.amount_repaid:
            raise IllegalTransitionError(
                f"Loan {self.loan_id}: repayment history sums to {history_total}, "
                f"amount repaid is {self.amount_repaid}"
            )
        if self.status == LoanStatus.PENDING:
            if self.total_obligation is not None or self.repayment_history:
                raise IllegalTransitionError(f"Pending loan {self.loan_id} carries activation data")
            return
        if self.status == LoanStatus.CANCELLED:
            if self.repayment_history:
                raise IllegalTransitionError(f"Cancelled loan {self.loan_id} has repayments")
            return
        if self.total_obligation is None or self.due_at is None:
            raise IllegalTransitionError(f"Loan {self.loan_id} was never activated")
        if self.amount_repaid > self.total_obligation:
            raise IllegalTransitionError(f"Loan {self.loan_id} is repaid beyond its obligation")
        fully_repaid = self.amount_repaid == self.total_obligation
        if fully_repaid != (self.status == LoanStatus.REPAID):
            raise IllegalTransitionError(
                f"Loan {self.loan_id} is {self.status.value} with {self.amount_repaid} "
                f"of {self.total_obligation} repaid"
            )
