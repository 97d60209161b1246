"""
Property-based tests for amounts and the loan state machine.

For arbitrary terms and repayment sequences:
- the repayment history always sums to amount_repaid
- amount_repaid never exceeds total_obligation
- total_obligation is never below principal
- a rejected repayment leaves the loan unchanged
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from p2p_lending.calculator import projected_total_obligation
from p2p_lending.exceptions import OverRepaymentError
from p2p_lending.models.lending import Loan, LoanStatus
from p2p_lending.money import Amount, sum_amounts

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# STRATEGIES
# =============================================================================

principals = st.integers(min_value=1, max_value=21_000_000 * 100_000_000).map(Amount)
rates = st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2, allow_nan=False, allow_infinity=False)
durations = st.integers(min_value=1, max_value=120)


@st.composite
def active_loans(draw):
    """Generate an activated loan with arbitrary valid terms."""
    loan = Loan(
        loan_id="loan-prop",
        borrower_id="alice",
        lender_id="bob",
        principal=draw(principals),
        interest_rate_percent=draw(rates),
        duration_months=draw(durations),
        created_at=START,
    )
    loan.activate(START)
    return loan


@st.composite
def payment_plan(draw):
    """A loan plus a list of positive payments, some of which may overshoot."""
    loan = draw(active_loans())
    ceiling = loan.total_obligation.units
    payments = draw(
        st.lists(st.integers(min_value=1, max_value=ceiling + 10), min_size=1, max_size=20)
    )
    return loan, payments


def _snapshot(loan: Loan) -> tuple:
    return (loan.status, loan.amount_repaid, list(loan.repayment_history), loan.closed_at)


# =============================================================================
# PROPERTIES
# =============================================================================


@given(principals, rates, durations)
def test_obligation_never_below_principal(principal: Amount, rate: Decimal, months: int) -> None:
    assert projected_total_obligation(principal, rate, months) >= principal


@given(principals, rates, durations)
def test_obligation_is_deterministic(principal: Amount, rate: Decimal, months: int) -> None:
    assert projected_total_obligation(principal, rate, months) == projected_total_obligation(
        principal, rate, months
    )


@given(st.lists(st.integers(min_value=-10**15, max_value=10**15), max_size=30))
def test_sum_is_exact(units: list[int]) -> None:
    assert sum_amounts(Amount(u) for u in units) == Amount(sum(units))


@given(st.integers(min_value=0, max_value=10**15))
def test_str_parse_roundtrip(units: int) -> None:
    amount = Amount(units)
    assert Amount.parse(str(amount)) == amount


@settings(max_examples=200)
@given(payment_plan())
def test_repayment_sequence_preserves_invariants(plan) -> None:
    loan, payments = plan
    for index, units in enumerate(payments):
        moment = START + timedelta(days=index)
        if loan.status != LoanStatus.ACTIVE:
            break
        before = _snapshot(loan)
        try:
            loan.record_repayment(Amount(units), moment)
        except OverRepaymentError:
            assert _snapshot(loan) == before
            continue

        assert sum_amounts(r.amount for r in loan.repayment_history) == loan.amount_repaid
        assert loan.amount_repaid <= loan.total_obligation
        assert (loan.status == LoanStatus.REPAID) == (loan.amount_repaid == loan.total_obligation)
        loan.check_invariants()


@given(active_loans())
def test_paying_outstanding_balance_repays(loan: Loan) -> None:
    loan.record_repayment(loan.outstanding_balance(), START)
    assert loan.status == LoanStatus.REPAID
    assert loan.outstanding_balance().is_zero()


@given(active_loans())
def test_one_unit_over_is_rejected(loan: Loan) -> None:
    before = _snapshot(loan)
    too_much = loan.outstanding_balance().add(Amount.minor())
    with pytest.raises(OverRepaymentError):
        loan.record_repayment(too_much, START)
    assert _snapshot(loan) == before
