"""Marketplace listing model."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from p2p_lending.calculator import coerce_rate, validate_terms
from p2p_lending.exceptions import AlreadyMatchedError
from p2p_lending.models.lending.enums import ListingKind, ListingStatus
from p2p_lending.money import Amount


@dataclass
class LoanListing:
    """An open request to borrow or offer to lend, awaiting a counterparty.

    Terms are fixed at creation. Only ``status`` (and ``closed_at``) move,
    once, from ``open`` to ``matched`` or ``withdrawn``.
    """

    listing_id: str
    kind: ListingKind
    principal: Amount
    interest_rate_percent: Decimal  # Annualised simple rate, e.g. 12 for 12%
    duration_months: int
    requires_collateral: bool
    owner_id: str
    created_at: datetime
    status: ListingStatus = ListingStatus.OPEN
    closed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.kind = ListingKind(self.kind)
        self.status = ListingStatus(self.status)
        self.interest_rate_percent = coerce_rate(self.interest_rate_percent)
        validate_terms(self.principal, self.interest_rate_percent, self.duration_months)

    @property
    def is_open(self) -> bool:
        return self.status == ListingStatus.OPEN

    @property
    def terms(self) -> tuple[Amount, Decimal, int]:
        """The fields two listings must share to be matched."""
        return (self.principal, self.interest_rate_percent, self.duration_months)

    def close(self, status: ListingStatus, now: datetime) -> None:
        """Take the listing off the open marketplace."""
        if not self.is_open:
            raise AlreadyMatchedError(
                f"Listing {self.listing_id} is already {self.status.value}"
            )
        if status == ListingStatus.OPEN:
            raise ValueError("A listing can only be closed as matched or withdrawn")
        self.status = status
        self.closed_at = now
