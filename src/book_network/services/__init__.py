"""
Service layer for the Book Network server.

Services hold the business rules and receive the caller ``Identity``
explicitly; tool handlers build them per call around one session.
"""

from .auth_service import AuthService
from .book_service import BookService
from .loan_service import LoanService, to_borrowed_book_response

__all__ = ["AuthService", "BookService", "LoanService", "to_borrowed_book_response"]
