"""In-memory stores owning listings and loans."""

from p2p_lending.store.loan_book import LoanBook
from p2p_lending.store.marketplace import ListingFilter, Marketplace

__all__ = ["ListingFilter", "LoanBook", "Marketplace"]
