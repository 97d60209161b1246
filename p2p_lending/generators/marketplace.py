"""Listing and user generators for the lending marketplace."""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

from p2p_lending.generators.base import BaseGenerator
from p2p_lending.models.lending import ListingKind, LoanListing
from p2p_lending.money import BTC, Amount, CurrencyUnit


class UserGenerator(BaseGenerator):
    """Generate marketplace user ids (the identity provider's handles)."""

    def generate(self) -> str:
        return self.fake.unique.user_name()

    def generate_batch(self, count: int) -> list[str]:
        return [self.generate() for _ in range(count)]


class ListingGenerator(BaseGenerator):
    """Generate synthetic loan requests and offers."""

    # Typical marketplace sizes, in BTC
    PRINCIPALS = ["0.01", "0.05", "0.1", "0.25", "0.5", "1", "2"]

    # Annualised simple rates (%), requests skew lower than offers
    REQUEST_RATES = ["4", "5", "6.5", "8", "10"]
    OFFER_RATES = ["6.5", "8", "10", "12", "15"]

    DURATIONS = [1, 3, 6, 12, 18, 24]

    COLLATERAL_PROBABILITY = 0.4

    def __init__(self, seed: int | None = None, unit: CurrencyUnit = BTC) -> None:
        super().__init__(seed)
        self.unit = unit

    def generate(
        self,
        owner_id: str,
        kind: ListingKind | None = None,
        created_at: datetime | None = None,
    ) -> LoanListing:
        """Generate an open listing.

        Parameters
        ----------
        owner_id : str
            User publishing the listing.
        kind : ListingKind | None
            Request or offer; random when omitted.
        created_at : datetime | None
            Listing time; within the last 30 days when omitted.

        Returns
        -------
        LoanListing
            Generated listing.
        """
        kind = kind or random.choice(list(ListingKind))
        rates = self.REQUEST_RATES if kind == ListingKind.REQUEST else self.OFFER_RATES

        if created_at is None:
            created_at = datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 30 * 24 * 60))

        return LoanListing(
            listing_id=self.fake.uuid4(),
            kind=kind,
            principal=Amount.parse(random.choice(self.PRINCIPALS), self.unit),
            interest_rate_percent=Decimal(random.choice(rates)),
            duration_months=random.choice(self.DURATIONS),
            requires_collateral=random.random() < self.COLLATERAL_PROBABILITY,
            owner_id=owner_id,
            created_at=created_at,
        )

    def generate_counterpart(
        self,
        listing: LoanListing,
        owner_id: str,
        created_at: datetime | None = None,
    ) -> LoanListing:
        """Generate the opposite-side listing with identical terms."""
        kind = ListingKind.OFFER if listing.kind == ListingKind.REQUEST else ListingKind.REQUEST
        return LoanListing(
            listing_id=self.fake.uuid4(),
            kind=kind,
            principal=listing.principal,
            interest_rate_percent=listing.interest_rate_percent,
            duration_months=listing.duration_months,
            requires_collateral=listing.requires_collateral,
            owner_id=owner_id,
            created_at=created_at or listing.created_at,
        )

    def generate_batch(self, count: int, owner_ids: list[str]) -> Iterator[LoanListing]:
        """Generate ``count`` listings from randomly chosen owners."""
        for _ in range(count):
            yield self.generate(random.choice(owner_ids))
