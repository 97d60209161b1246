"""Lending domain models."""

from p2p_lending.models.lending.enums import (
    ListingKind,
    ListingStatus,
    LoanRole,
    LoanStatus,
)
from p2p_lending.models.lending.listing import LoanListing
from p2p_lending.models.lending.loan import Loan, Repayment

__all__ = [
    "ListingKind",
    "ListingStatus",
    "Loan",
    "LoanListing",
    "LoanRole",
    "LoanStatus",
    "Repayment",
]
