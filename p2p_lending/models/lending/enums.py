"""Enumeration types for lending domain entities."""

from enum import Enum


class ListingKind(str, Enum):
    REQUEST = "request"  # seeking to borrow
    OFFER = "offer"  # seeking to lend


class ListingStatus(str, Enum):
    OPEN = "open"
    MATCHED = "matched"
    WITHDRAWN = "withdrawn"


class LoanStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REPAID = "repaid"
    DEFAULTED = "defaulted"
    CANCELLED = "cancelled"


TERMINAL_LOAN_STATUSES = frozenset(
    {LoanStatus.REPAID, LoanStatus.DEFAULTED, LoanStatus.CANCELLED}
)


class LoanRole(str, Enum):
    BORROWER = "borrower"
    LENDER = "lender"
