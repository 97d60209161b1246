"""Custom exception hierarchy for p2p-lending."""


class LendingError(Exception):
    """Base exception for all p2p-lending errors."""


class InvalidAmountError(LendingError):
    """Raised when a monetary value is non-positive, negative or mixes units."""


class InvalidFormatError(InvalidAmountError):
    """Raised when a decimal string cannot be parsed into an amount."""


class NegativeResultError(LendingError):
    """Raised when an arithmetic operation would produce a negative amount."""


class OverRepaymentError(LendingError):
    """Raised when a repayment would exceed the outstanding balance."""


class BelowMinimumError(LendingError):
    """Raised when a payment is smaller than the currency's minor unit."""


class TermsMismatchError(LendingError):
    """Raised when a request and an offer do not carry identical terms."""


class SelfMatchError(LendingError):
    """Raised when both sides of a match belong to the same owner."""


class IllegalTransitionError(LendingError):
    """Raised when a loan operation is not allowed from its current status."""


class EntityNotFoundError(LendingError):
    """Raised when a referenced entity does not exist."""


class ListingNotFoundError(EntityNotFoundError):
    """Raised when a listing id is unknown to the marketplace."""


class LoanNotFoundError(EntityNotFoundError):
    """Raised when a loan id is unknown to the loan book."""


class AlreadyMatchedError(LendingError):
    """Raised when a listing is no longer open (matched or withdrawn)."""


class ConfigurationError(LendingError):
    """Raised when configuration is invalid or missing."""


class SinkError(LendingError):
    """Raised when a sink operation fails."""
