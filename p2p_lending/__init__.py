"""Loan lifecycle and repayment accounting for a peer-to-peer Bitcoin lending marketplace."""

__version__ = "0.1.0"
