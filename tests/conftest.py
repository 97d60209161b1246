"""Pytest configuration and fixtures."""

import itertools
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from p2p_lending.models.lending import Loan
from p2p_lending.scenarios import SimulatedClock
from p2p_lending.service import LendingService
from tests.helpers import btc


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def start_time() -> datetime:
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time: datetime) -> SimulatedClock:
    """Clock that only moves when a test advances it."""
    return SimulatedClock(start_time)


@pytest.fixture
def id_factory():
    """Sequential ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def service(clock: SimulatedClock, id_factory) -> LendingService:
    return LendingService(clock=clock, id_factory=id_factory)


@pytest.fixture
def sample_borrower_id() -> str:
    return "alice"


@pytest.fixture
def sample_lender_id() -> str:
    return "bob"


@pytest.fixture
def pending_loan(start_time: datetime, sample_borrower_id: str, sample_lender_id: str) -> Loan:
    """1 BTC at 12% for 6 months, not yet activated."""
    return Loan(
        loan_id="loan-test-001",
        borrower_id=sample_borrower_id,
        lender_id=sample_lender_id,
        principal=btc("1.000"),
        interest_rate_percent=Decimal("12"),
        duration_months=6,
        created_at=start_time,
    )


@pytest.fixture
def active_loan(pending_loan: Loan, start_time: datetime) -> Loan:
    pending_loan.activate(start_time)
    return pending_loan

