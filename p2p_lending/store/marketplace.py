"""Open marketplace of loan listings with per-listing locking."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from p2p_lending.exceptions import AlreadyMatchedError, ListingNotFoundError
from p2p_lending.models.lending import ListingKind, ListingStatus, LoanListing
from p2p_lending.money import Amount


@dataclass
class ListingFilter:
    """Criteria for browsing open listings. ``None`` means no constraint."""

    kind: ListingKind | None = None
    owner_id: str | None = None
    exclude_owner_id: str | None = None
    requires_collateral: bool | None = None
    min_principal: Amount | None = None
    max_principal: Amount | None = None
    max_interest_rate_percent: Decimal | None = None
    min_interest_rate_percent: Decimal | None = None
    max_duration_months: int | None = None
    search: str | None = None  # Case-insensitive substring of the owner id
    offset: int = 0
    limit: int | None = None

    def matches(self, listing: LoanListing) -> bool:
        """Check a listing against every criterion except pagination."""
        if self.kind is not None and listing.kind != self.kind:
            return False
        if self.owner_id is not None and listing.owner_id != self.owner_id:
            return False
        if self.exclude_owner_id is not None and listing.owner_id == self.exclude_owner_id:
            return False
        if self.requires_collateral is not None and listing.requires_collateral != self.requires_collateral:
            return False
        if self.min_principal is not None and listing.principal < self.min_principal:
            return False
        if self.max_principal is not None and listing.principal > self.max_principal:
            return False
        if self.min_interest_rate_percent is not None and listing.interest_rate_percent < self.min_interest_rate_percent:
            return False
        if self.max_interest_rate_percent is not None and listing.interest_rate_percent > self.max_interest_rate_percent:
            return False
        if self.max_duration_months is not None and listing.duration_months > self.max_duration_months:
            return False
        if self.search and self.search.lower() not in listing.owner_id.lower():
            return False
        return True


@dataclass
class Marketplace:
    """In-memory store owning listings until they are matched or withdrawn."""

    listings: dict[str, LoanListing] = field(default_factory=dict)

    # Relationship indexes
    _open_ids: dict[str, None] = field(default_factory=dict)  # Insertion-ordered set
    _owner_listings: dict[str, list[str]] = field(default_factory=dict)

    # Per-listing locks, created on insert
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock)

    def add_listing(self, listing: LoanListing) -> None:
        """Add an open listing to the marketplace."""
        if not listing.is_open:
            raise AlreadyMatchedError(
                f"Listing {listing.listing_id} is {listing.status.value}; only open listings can be added"
            )
        with self._registry_lock:
            if listing.listing_id in self.listings:
                raise ValueError(f"Listing {listing.listing_id} already exists")
            self.listings[listing.listing_id] = listing
            self._locks[listing.listing_id] = threading.Lock()
            self._open_ids[listing.listing_id] = None
            self._owner_listings.setdefault(listing.owner_id, []).append(listing.listing_id)

    def get_listing(self, listing_id: str) -> LoanListing:
        try:
            return self.listings[listing_id]
        except KeyError:
            raise ListingNotFoundError(f"Listing {listing_id} not found") from None

    @contextmanager
    def locked(self, *listing_ids: str) -> Iterator[tuple[LoanListing, ...]]:
        """Hold the locks of the given listings, always acquired in sorted id order.

        Yields the listings in the order their ids were given.
        """
        listings = tuple(self.get_listing(lid) for lid in listing_ids)
        locks = [self._locks[lid] for lid in sorted(set(listing_ids))]
        for lock in locks:
            lock.acquire()
        try:
            yield listings
        finally:
            for lock in reversed(locks):
                lock.release()

    def close(self, listing: LoanListing, status: ListingStatus, now: datetime) -> None:
        """Remove a listing from the open set. Caller must hold its lock."""
        listing.close(status, now)
        with self._registry_lock:
            self._open_ids.pop(listing.listing_id, None)

    # Query methods
    def open_listings(self, listing_filter: ListingFilter | None = None) -> list[LoanListing]:
        """Open listings matching ``listing_filter``, newest first, paginated."""
        listing_filter = listing_filter or ListingFilter()
        with self._registry_lock:
            candidates = [self.listings[lid] for lid in self._open_ids]
        # Sort is stable, so equal timestamps keep reverse insertion order
        candidates.reverse()
        candidates.sort(key=lambda listing: listing.created_at, reverse=True)
        selected = [listing for listing in candidates if listing_filter.matches(listing)]
        end = None if listing_filter.limit is None else listing_filter.offset + listing_filter.limit
        return selected[listing_filter.offset : end]

    def get_owner_listings(self, owner_id: str) -> list[LoanListing]:
        """All listings ever created by an owner, open or not."""
        return [self.listings[lid] for lid in self._owner_listings.get(owner_id, [])]

    def is_open(self, listing_id: str) -> bool:
        return listing_id in self._open_ids

    def summary(self) -> dict[str, int]:
        """Return listing counts by status."""
        counts = {status.value: 0 for status in ListingStatus}
        for listing in self.listings.values():
            counts[listing.status.value] += 1
        return counts
