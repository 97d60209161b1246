"""Marketplace activity scenario: listings, matches, repayments and defaults."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from typing import Any

from p2p_lending.config import ScenarioConfig
from p2p_lending.generators import ListingGenerator, UserGenerator
from p2p_lending.models.lending import ListingKind, Loan
from p2p_lending.money import BTC, Amount, CurrencyUnit
from p2p_lending.service import EventSink, LendingService

logger = logging.getLogger(__name__)


class SimulatedClock:
    """Manually advanced clock handed to the service."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class MarketplaceActivityScenario:
    """Drive a lending service through a realistic stretch of marketplace activity.

    This scenario creates:
    - A pool of users
    - Listings, some of which receive a counter-listing with identical terms
      and are matched into loans
    - Repayment histories: fully repaid loans, loans part-way through, and
      loans that run past due and are marked defaulted
    """

    def __init__(
        self,
        num_users: int = 20,
        num_listings: int = 100,
        match_rate: float = 0.6,
        full_repayment_rate: float = 0.5,
        default_rate: float = 0.1,
        seed: int | None = None,
        start: datetime | None = None,
        sink: EventSink | None = None,
        unit: CurrencyUnit = BTC,
        *,
        config: ScenarioConfig | None = None,
    ) -> None:
        """Initialize marketplace activity scenario.

        Parameters
        ----------
        num_users : int
            Number of distinct users.
        num_listings : int
            Number of primary listings published.
        match_rate : float
            Share of listings that get a counterpart and are matched.
        full_repayment_rate : float
            Share of loans repaid in full.
        default_rate : float
            Share of loans left to run past due and default.
        seed : int | None
            Random seed for reproducibility.
        start : datetime | None
            Simulated start time (default 2024-01-01 UTC).
        sink : EventSink | None
            Receives the service's lifecycle events.
        unit : CurrencyUnit
            Currency every listing and loan is denominated in.
        config : ScenarioConfig | None
            Optional scenario configuration. If provided, overrides the
            count and rate arguments.
        """
        if config is not None:
            num_users = config.num_users
            num_listings = config.num_listings
            match_rate = config.match_rate
            full_repayment_rate = config.full_repayment_rate
            default_rate = config.default_rate
        self.config = config

        if num_users < 2:
            raise ValueError("At least two users are needed to match listings")
        if full_repayment_rate + default_rate > 1:
            raise ValueError("full_repayment_rate + default_rate must not exceed 1")

        self.num_users = num_users
        self.num_listings = num_listings
        self.match_rate = match_rate
        self.full_repayment_rate = full_repayment_rate
        self.default_rate = default_rate
        self.seed = seed

        if seed is not None:
            random.seed(seed)

        self.clock = SimulatedClock(start or datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.service = LendingService(unit=unit, clock=self.clock, sink=sink)
        self._user_gen = UserGenerator(seed=seed)
        self._listing_gen = ListingGenerator(seed=seed, unit=unit)

    def generate(self) -> LendingService:
        """Run the scenario.

        Returns
        -------
        LendingService
            Service holding the resulting listings and loans.
        """
        logger.info(
            "Starting marketplace scenario: %d users, %d listings, %.0f%% matched",
            self.num_users,
            self.num_listings,
            self.match_rate * 100,
        )

        users = self._user_gen.generate_batch(self.num_users)
        loans: list[Loan] = []

        for _ in range(self.num_listings):
            self.clock.advance(timedelta(minutes=random.randint(1, 240)))
            owner = random.choice(users)
            listing = self._listing_gen.generate(owner, created_at=self.clock())
            self.service.add_listing(listing)

            if random.random() >= self.match_rate:
                continue

            counterparty = random.choice([u for u in users if u != owner])
            counterpart = self._listing_gen.generate_counterpart(
                listing, counterparty, created_at=self.clock()
            )
            self.service.add_listing(counterpart)

            if listing.kind == ListingKind.REQUEST:
                loan = self.service.match_listings(listing.listing_id, counterpart.listing_id)
            else:
                loan = self.service.match_listings(counterpart.listing_id, listing.listing_id)
            loans.append(loan)

        logger.info("Matched %d loans", len(loans))

        self._simulate_repayments(loans)

        logger.info("Scenario complete: %s", self.service.summary())
        return self.service

    def _simulate_repayments(self, loans: list[Loan]) -> None:
        """Pay loans down, then run the clock past every due date and default the rest."""
        defaulting: list[Loan] = []
        for loan in loans:
            roll = random.random()
            if roll < self.full_repayment_rate:
                self._repay_in_installments(loan, loan.outstanding_balance())
            elif roll < self.full_repayment_rate + self.default_rate:
                defaulting.append(loan)
                # A defaulter may still have paid something
                partial = loan.outstanding_balance().multiply_by_rate(random.randint(0, 50))
                if partial.is_positive():
                    self.service.record_repayment(loan.loan_id, partial)
            else:
                # Part-way through: pay between 10% and 90%
                partial = loan.outstanding_balance().multiply_by_rate(random.randint(10, 90))
                if partial.is_positive():
                    self.service.record_repayment(loan.loan_id, partial)

        if not defaulting:
            return
        latest_due = max(loan.due_at for loan in defaulting)
        if latest_due >= self.clock():
            self.clock.now = latest_due + timedelta(days=1)
        for loan in defaulting:
            self.service.mark_defaulted(loan.loan_id)
        logger.info("Defaulted %d loans", len(defaulting))

    def _repay_in_installments(self, loan: Loan, total: Amount) -> None:
        """Split ``total`` into one to four payments, the last one clearing the balance."""
        installments = random.randint(1, 4)
        for _ in range(installments - 1):
            chunk = total.multiply_by_rate(100, Fraction(1, installments))
            if chunk.is_zero() or chunk >= loan.outstanding_balance():
                break
            loan = self.service.record_repayment(loan.loan_id, chunk)
        self.service.record_repayment(loan.loan_id, loan.outstanding_balance())

    def stats(self) -> dict[str, Any]:
        """Return listing and loan counts by status."""
        return self.service.summary()
