"""
Loan models for the Book Network server.

A loan moves BORROWED -> RETURNED -> CLOSED and never back. The state is
derived from the ``returned`` and ``return_approved`` flags stored on the
ledger row.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class LoanState(str, Enum):
    """Lifecycle state of a loan."""

    BORROWED = "borrowed"
    RETURNED = "returned"
    CLOSED = "closed"

    @classmethod
    def from_flags(cls, returned: bool, return_approved: bool) -> "LoanState":
        if return_approved:
            return cls.CLOSED
        if returned:
            return cls.RETURNED
        return cls.BORROWED


class BorrowedBookResponse(BaseModel):
    """Borrower-facing summary of a loan."""

    id: int = Field(..., description="Book id")
    loan_id: int
    title: str
    author_name: str
    isbn: str
    returned: bool
    return_approved: bool
    state: LoanState
    borrowed_at: datetime | None = None
