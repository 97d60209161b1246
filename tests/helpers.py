"""Builders shared by the test modules."""

from datetime import datetime, timezone
from decimal import Decimal

from p2p_lending.models.lending import ListingKind, LoanListing
from p2p_lending.money import Amount


def btc(text: str) -> Amount:
    """Shorthand for a BTC amount from a decimal string."""
    return Amount.parse(text)


def make_listing(
    listing_id: str,
    kind: ListingKind,
    owner_id: str,
    principal: str = "1.0",
    rate: str = "10",
    months: int = 12,
    created_at: datetime | None = None,
    requires_collateral: bool = False,
) -> LoanListing:
    return LoanListing(
        listing_id=listing_id,
        kind=kind,
        principal=btc(principal),
        interest_rate_percent=Decimal(rate),
        duration_months=months,
        requires_collateral=requires_collateral,
        owner_id=owner_id,
        created_at=created_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
