"""Lending service: the operations the surrounding application calls.

The service composes the marketplace store, the loan book, the matcher and
the repayment calculator. Each mutating operation runs under the locks of
the entities it touches and either completes or raises without changing
anything. Lifecycle events go to an optional sink after the change has
been applied; a failed publish is logged and does not undo or fail the
operation.

Loans handed back to callers are snapshots. The loan book keeps the only
live copy, and every change goes through the operations here.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Protocol

from p2p_lending import calculator, matcher
from p2p_lending.exceptions import SinkError
from p2p_lending.logging import log_context
from p2p_lending.models import Event
from p2p_lending.models.lending import (
    ListingKind,
    ListingStatus,
    Loan,
    LoanListing,
    LoanRole,
    LoanStatus,
)
from p2p_lending.money import BTC, Amount, CurrencyUnit, sum_amounts
from p2p_lending.sinks.serialization import to_dict
from p2p_lending.store import ListingFilter, LoanBook, Marketplace

logger = logging.getLogger(__name__)

EVENT_SOURCE = "p2p-lending"
DEFAULT_EVENT_TOPIC = "lending.loan-events"

AmountLike = Amount | Decimal | str | int


class EventSink(Protocol):
    def send(self, topic: str, record: Any) -> None: ...


@dataclass
class UserStats:
    """Dashboard totals for one user."""

    user_id: str
    total_borrowed: Amount
    total_lent: Amount
    active_loans: int
    interest_earned: Amount


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class LendingService:
    """Marketplace and loan lifecycle operations over in-memory stores.

    Parameters
    ----------
    unit : CurrencyUnit
        Currency of every amount handled (default BTC).
    clock : Callable[[], datetime] | None
        Source of "now"; defaults to the UTC wall clock.
    id_factory : Callable[[], str] | None
        Generator for listing, loan and event ids; defaults to uuid4 hex.
    sink : EventSink | None
        Receives lifecycle events.
    event_topic : str
        Topic events are sent to.
    """

    def __init__(
        self,
        unit: CurrencyUnit = BTC,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        sink: EventSink | None = None,
        event_topic: str = DEFAULT_EVENT_TOPIC,
        marketplace: Marketplace | None = None,
        loan_book: LoanBook | None = None,
    ) -> None:
        self.unit = unit
        self.clock = clock or _utc_now
        self.id_factory = id_factory or _new_id
        self.sink = sink
        self.event_topic = event_topic
        self.marketplace = marketplace or Marketplace()
        self.loan_book = loan_book or LoanBook()

    # Listings

    def create_listing(
        self,
        kind: ListingKind | str,
        principal: AmountLike,
        interest_rate_percent: Decimal | int | str | float,
        duration_months: int,
        requires_collateral: bool,
        owner_id: str,
    ) -> LoanListing:
        """Publish a new request or offer on the marketplace."""
        listing = LoanListing(
            listing_id=self.id_factory(),
            kind=ListingKind(kind),
            principal=Amount.coerce(principal, self.unit),
            interest_rate_percent=interest_rate_percent,
            duration_months=duration_months,
            requires_collateral=requires_collateral,
            owner_id=owner_id,
            created_at=self.clock(),
        )
        return self.add_listing(listing)

    def add_listing(self, listing: LoanListing) -> LoanListing:
        """Admit an already built open listing, e.g. one reloaded from storage."""
        self.marketplace.add_listing(listing)
        logger.info(
            "Listing %s created: %s %s %s at %s%% for %d months",
            listing.listing_id,
            listing.kind.value,
            listing.principal,
            listing.principal.unit.code,
            listing.interest_rate_percent,
            listing.duration_months,
            extra=log_context(listing_id=listing.listing_id),
        )
        self._emit("listing.created", listing.listing_id, listing)
        return listing

    def withdraw_listing(self, listing_id: str) -> None:
        """Take an open listing off the marketplace at its owner's request."""
        with self.marketplace.locked(listing_id) as (listing,):
            self.marketplace.close(listing, ListingStatus.WITHDRAWN, self.clock())
        logger.info("Listing %s withdrawn", listing_id, extra=log_context(listing_id=listing_id))
        self._emit("listing.withdrawn", listing_id, listing)

    def get_listing(self, listing_id: str) -> LoanListing:
        return self.marketplace.get_listing(listing_id)

    def list_open_listings(self, listing_filter: ListingFilter | None = None) -> list[LoanListing]:
        return self.marketplace.open_listings(listing_filter)

    # Matching

    def match_listings(self, request_id: str, offer_id: str) -> Loan:
        """Pair a request with an offer of identical terms into an active loan.

        Both listings leave the open set and the loan enters the loan book
        together; if any check fails, neither listing changes.
        """
        with self.marketplace.locked(request_id, offer_id) as (request, offer):
            now = self.clock()
            loan = matcher.match(request, offer, self.id_factory(), now)
            self.loan_book.add_loan(loan)
            self.marketplace.close(request, ListingStatus.MATCHED, now)
            self.marketplace.close(offer, ListingStatus.MATCHED, now)
            snapshot = copy.deepcopy(loan)
        logger.info(
            "Matched request %s with offer %s into loan %s (borrower=%s, lender=%s)",
            request_id,
            offer_id,
            loan.loan_id,
            loan.borrower_id,
            loan.lender_id,
            extra=log_context(loan_id=loan.loan_id, listing_id=request_id),
        )
        self._emit("loan.created", loan.loan_id, snapshot)
        return snapshot

    def fund_listing(self, listing_id: str, counterparty_id: str) -> Loan:
        """Accept a listing as-is: fund a request, or take up an offer."""
        with self.marketplace.locked(listing_id) as (listing,):
            now = self.clock()
            loan = matcher.fund(listing, counterparty_id, self.id_factory(), now)
            self.loan_book.add_loan(loan)
            self.marketplace.close(listing, ListingStatus.MATCHED, now)
            snapshot = copy.deepcopy(loan)
        logger.info(
            "Listing %s accepted by %s into loan %s",
            listing_id,
            counterparty_id,
            loan.loan_id,
            extra=log_context(loan_id=loan.loan_id, listing_id=listing_id),
        )
        self._emit("loan.created", loan.loan_id, snapshot)
        return snapshot

    # Loan lifecycle

    def get_loan(self, loan_id: str) -> Loan:
        """Snapshot of a booked loan."""
        with self.loan_book.locked(loan_id) as loan:
            return copy.deepcopy(loan)

    def restore_loan(self, loan: Loan) -> Loan:
        """Load a loan persisted by the embedding application back into the book.

        The book keeps its own copy; later changes to ``loan`` do not reach it.
        """
        loan.check_invariants()
        self.loan_book.add_loan(copy.deepcopy(loan))
        logger.debug(
            "Loan %s restored in status %s",
            loan.loan_id,
            loan.status.value,
            extra=log_context(loan_id=loan.loan_id),
        )
        return self.get_loan(loan.loan_id)

    def record_repayment(self, loan_id: str, amount: AmountLike) -> Loan:
        """Apply a repayment; returns a snapshot of the updated loan."""
        payment = Amount.coerce(amount, self.unit)
        with self.loan_book.locked(loan_id) as loan:
            loan.record_repayment(payment, self.clock())
            snapshot = copy.deepcopy(loan)
        ids = log_context(loan_id=loan_id)
        logger.info(
            "Loan %s repayment %s recorded, outstanding %s",
            loan_id,
            payment,
            snapshot.outstanding_balance(),
            extra=ids,
        )
        self._emit(
            "loan.repayment_recorded",
            loan_id,
            {"loan_id": loan_id, "amount": payment, "amount_repaid": snapshot.amount_repaid},
        )
        if snapshot.status == LoanStatus.REPAID:
            logger.info("Loan %s fully repaid", loan_id, extra=ids)
            self._emit("loan.repaid", loan_id, snapshot)
        return snapshot

    def cancel_loan(self, loan_id: str) -> Loan:
        with self.loan_book.locked(loan_id) as loan:
            loan.cancel(self.clock())
            snapshot = copy.deepcopy(loan)
        logger.info("Loan %s cancelled", loan_id, extra=log_context(loan_id=loan_id))
        self._emit("loan.cancelled", loan_id, snapshot)
        return snapshot

    def mark_defaulted(self, loan_id: str) -> Loan:
        """Close a past-due loan with an outstanding balance as defaulted."""
        with self.loan_book.locked(loan_id) as loan:
            loan.mark_defaulted(self.clock())
            snapshot = copy.deepcopy(loan)
        self._announce_default(snapshot)
        return snapshot

    def mark_overdue_loans(self) -> list[Loan]:
        """Default every active loan that is past due; the scheduler's entry point.

        Candidates are re-checked under their own lock, so a loan repaid or
        closed after the scan is left alone.
        """
        now = self.clock()
        defaulted: list[Loan] = []
        for candidate in self.loan_book.get_loans_by_status(LoanStatus.ACTIVE):
            with self.loan_book.locked(candidate.loan_id) as loan:
                if not loan.is_overdue(now):
                    continue
                loan.mark_defaulted(now)
                snapshot = copy.deepcopy(loan)
            self._announce_default(snapshot)
            defaulted.append(snapshot)
        return defaulted

    def _announce_default(self, loan: Loan) -> None:
        logger.warning(
            "Loan %s defaulted with %s outstanding",
            loan.loan_id,
            loan.outstanding_balance(),
            extra=log_context(loan_id=loan.loan_id),
        )
        self._emit("loan.defaulted", loan.loan_id, loan)

    # Previews and read models

    def projected_total_obligation(
        self,
        principal: AmountLike,
        interest_rate_percent: Decimal | int | str | float,
        duration_months: int,
    ) -> Amount:
        return calculator.projected_total_obligation(
            Amount.coerce(principal, self.unit), interest_rate_percent, duration_months
        )

    def suggested_next_payment(self, loan_id: str, desired_amount: AmountLike) -> Amount:
        return calculator.suggested_next_payment(
            self.get_loan(loan_id), Amount.coerce(desired_amount, self.unit)
        )

    def loans_for_user(self, user_id: str, role: LoanRole | str | None = None) -> list[Loan]:
        """Loans where the user borrows, lends, or (with no role) either."""
        role = LoanRole(role) if role is not None else None
        loans: list[Loan] = []
        if role in (None, LoanRole.BORROWER):
            loans.extend(self.loan_book.get_borrower_loans(user_id))
        if role in (None, LoanRole.LENDER):
            loans.extend(self.loan_book.get_lender_loans(user_id))
        return [copy.deepcopy(loan) for loan in loans]

    def user_stats(self, user_id: str) -> UserStats:
        """Totals for the dashboard cards.

        Borrowed and lent totals count principal of every loan that was
        funded (cancelled loans excluded). Interest earned is what the
        lender has been repaid beyond principal.
        """
        funded = [s for s in LoanStatus if s not in (LoanStatus.PENDING, LoanStatus.CANCELLED)]
        borrowed = [loan for loan in self.loan_book.get_borrower_loans(user_id) if loan.status in funded]
        lent = [loan for loan in self.loan_book.get_lender_loans(user_id) if loan.status in funded]

        interest_earned = Amount.zero(self.unit)
        for loan in lent:
            if loan.amount_repaid > loan.principal:
                interest_earned = interest_earned.add(loan.amount_repaid.subtract(loan.principal))

        return UserStats(
            user_id=user_id,
            total_borrowed=sum_amounts((loan.principal for loan in borrowed), self.unit),
            total_lent=sum_amounts((loan.principal for loan in lent), self.unit),
            active_loans=sum(1 for loan in borrowed + lent if loan.is_active),
            interest_earned=interest_earned,
        )

    def summary(self) -> dict[str, dict[str, int]]:
        return {"listings": self.marketplace.summary(), "loans": self.loan_book.summary()}

    # Events

    def _emit(self, event_type: str, subject: str, payload: Any) -> None:
        if self.sink is None:
            return
        event = Event(
            event_id=self.id_factory(),
            event_type=event_type,
            event_time=self.clock(),
            source=EVENT_SOURCE,
            subject=subject,
            data=to_dict(payload),
        )
        try:
            self.sink.send(self.event_topic, event)
        except SinkError:
            logger.exception("Failed to publish %s for %s", event_type, subject)
