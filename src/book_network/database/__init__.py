"""
Database package for the Book Network server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories for users, books and loans
- Sample data generation (seed.py)
"""

from .book_repository import BookRepository
from .loan_repository import LoanRepository
from .repository import BaseRepository, PageRequest, PageResponse
from .schema import (
    ActivationToken,
    Base,
    Book,
    Loan,
    Role,
    User,
)
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    safe_commit,
    safe_query,
    session_scope,
)
from .user_repository import ActivationTokenRepository, RoleRepository, UserRepository

__all__ = [
    "ActivationToken",
    "ActivationTokenRepository",
    "Base",
    "BaseRepository",
    "Book",
    "BookRepository",
    "DatabaseManager",
    "Loan",
    "LoanRepository",
    "PageRequest",
    "PageResponse",
    "Role",
    "RoleRepository",
    "User",
    "UserRepository",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
    "session_scope",
]
