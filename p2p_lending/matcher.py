"""Strict-terms matching of loan requests against loan offers.

A request and an offer match only when principal, interest rate and
duration are identical. The functions here build the resulting loan; they
never touch the listings themselves, which the marketplace store closes
once the loan has been accepted by the loan book.
"""

from datetime import datetime

from p2p_lending.exceptions import AlreadyMatchedError, SelfMatchError, TermsMismatchError
from p2p_lending.models.lending import ListingKind, Loan, LoanListing

TERM_FIELDS = ("principal", "interest_rate_percent", "duration_months")


def mismatched_terms(request: LoanListing, offer: LoanListing) -> list[str]:
    """Names of the term fields on which the two listings differ."""
    return [name for name in TERM_FIELDS if getattr(request, name) != getattr(offer, name)]


def check_match(request: LoanListing, offer: LoanListing) -> None:
    """Raise unless ``request`` and ``offer`` can be paired into a loan."""
    if request.kind != ListingKind.REQUEST:
        raise TermsMismatchError(f"Listing {request.listing_id} is not a loan request")
    if offer.kind != ListingKind.OFFER:
        raise TermsMismatchError(f"Listing {offer.listing_id} is not a loan offer")
    for listing in (request, offer):
        if not listing.is_open:
            raise AlreadyMatchedError(
                f"Listing {listing.listing_id} is already {listing.status.value}"
            )
    differing = mismatched_terms(request, offer)
    if differing:
        raise TermsMismatchError(
            f"Request {request.listing_id} and offer {offer.listing_id} differ on: "
            + ", ".join(differing)
        )
    if request.owner_id == offer.owner_id:
        raise SelfMatchError(
            f"Request {request.listing_id} and offer {offer.listing_id} share owner {request.owner_id}"
        )


def match(request: LoanListing, offer: LoanListing, loan_id: str, now: datetime) -> Loan:
    """Pair a request with an offer and return the activated loan."""
    check_match(request, offer)
    loan = Loan(
        loan_id=loan_id,
        borrower_id=request.owner_id,
        lender_id=offer.owner_id,
        principal=request.principal,
        interest_rate_percent=request.interest_rate_percent,
        duration_months=request.duration_months,
        created_at=now,
        requires_collateral=request.requires_collateral or offer.requires_collateral,
        request_listing_id=request.listing_id,
        offer_listing_id=offer.listing_id,
    )
    loan.activate(now)
    return loan


def fund(listing: LoanListing, counterparty_id: str, loan_id: str, now: datetime) -> Loan:
    """Accept a single listing as-is on behalf of ``counterparty_id``.

    Funding a request makes the counterparty the lender; accepting an
    offer makes the counterparty the borrower.
    """
    if not listing.is_open:
        raise AlreadyMatchedError(f"Listing {listing.listing_id} is already {listing.status.value}")
    if listing.owner_id == counterparty_id:
        raise SelfMatchError(f"User {counterparty_id} cannot accept their own listing {listing.listing_id}")

    if listing.kind == ListingKind.REQUEST:
        borrower_id, lender_id = listing.owner_id, counterparty_id
        request_id, offer_id = listing.listing_id, None
    else:
        borrower_id, lender_id = counterparty_id, listing.owner_id
        request_id, offer_id = None, listing.listing_id

    loan = Loan(
        loan_id=loan_id,
        borrower_id=borrower_id,
        lender_id=lender_id,
        principal=listing.principal,
        interest_rate_percent=listing.interest_rate_percent,
        duration_months=listing.duration_months,
        created_at=now,
        requires_collateral=listing.requires_collateral,
        request_listing_id=request_id,
        offer_listing_id=offer_id,
    )
    loan.activate(now)
    return loan
