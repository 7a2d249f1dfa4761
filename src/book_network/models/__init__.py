"""
Book Network Models.

Pydantic models for requests and responses:
- Book: catalog requests and responses
- Loan: loan state and borrower summaries
- User: registration, login and the resolved caller identity
"""

from .book import BookRequest, BookResponse
from .loan import BorrowedBookResponse, LoanState
from .user import (
    AuthenticationRequest,
    AuthenticationResponse,
    Identity,
    RegistrationRequest,
    UserResponse,
)

__all__ = [
    "AuthenticationRequest",
    "AuthenticationResponse",
    "BookRequest",
    "BookResponse",
    "BorrowedBookResponse",
    "Identity",
    "LoanState",
    "RegistrationRequest",
    "UserResponse",
]
