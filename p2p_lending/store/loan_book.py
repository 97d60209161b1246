"""Loan book: the owning store for every loan the core has created."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from p2p_lending.exceptions import LoanNotFoundError
from p2p_lending.models.lending import Loan, LoanStatus


@dataclass
class LoanBook:
    """In-memory store for loans with borrower/lender indexes."""

    loans: dict[str, Loan] = field(default_factory=dict)

    # Relationship indexes
    _borrower_loans: dict[str, list[str]] = field(default_factory=dict)
    _lender_loans: dict[str, list[str]] = field(default_factory=dict)

    # Per-loan locks, created on insert
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock)

    def add_loan(self, loan: Loan) -> None:
        """Add a loan to the book."""
        with self._registry_lock:
            if loan.loan_id in self.loans:
                raise ValueError(f"Loan {loan.loan_id} already exists")
            self.loans[loan.loan_id] = loan
            self._locks[loan.loan_id] = threading.Lock()
            self._borrower_loans.setdefault(loan.borrower_id, []).append(loan.loan_id)
            self._lender_loans.setdefault(loan.lender_id, []).append(loan.loan_id)

    def get_loan(self, loan_id: str) -> Loan:
        try:
            return self.loans[loan_id]
        except KeyError:
            raise LoanNotFoundError(f"Loan {loan_id} not found") from None

    @contextmanager
    def locked(self, loan_id: str) -> Iterator[Loan]:
        """Hold the loan's lock for the duration of a mutation."""
        loan = self.get_loan(loan_id)
        with self._locks[loan_id]:
            yield loan

    # Query methods
    def get_borrower_loans(self, borrower_id: str) -> list[Loan]:
        """Get all loans a user has borrowed."""
        return [self.loans[lid] for lid in self._borrower_loans.get(borrower_id, [])]

    def get_lender_loans(self, lender_id: str) -> list[Loan]:
        """Get all loans a user has lent."""
        return [self.loans[lid] for lid in self._lender_loans.get(lender_id, [])]

    def get_loans_by_status(self, status: LoanStatus) -> list[Loan]:
        with self._registry_lock:
            loans = list(self.loans.values())
        return [loan for loan in loans if loan.status == status]

    def summary(self) -> dict[str, int]:
        """Return loan counts by status."""
        counts = {status.value: 0 for status in LoanStatus}
        for loan in self.loans.values():
            counts[loan.status.value] += 1
        return counts
