"""
Error taxonomy for the Book Network server.

Services raise these exceptions; tool handlers translate them into
structured MCP error results carrying the ``kind`` string so clients can
tell a missing book from a denied borrow without parsing messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable failure categories returned by tools."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    INVALID = "invalid"
    UNAUTHENTICATED = "unauthenticated"
    INTERNAL = "internal"


class BookNetworkError(Exception):
    """Base exception for all expected failures."""

    kind: ErrorKind = ErrorKind.INTERNAL


class NotFoundError(BookNetworkError):
    """Raised when an entity id does not resolve."""

    kind = ErrorKind.NOT_FOUND


class OperationNotPermittedError(BookNetworkError):
    """Raised when an ownership rule or loan precondition fails."""

    kind = ErrorKind.PERMISSION_DENIED


class ConflictError(OperationNotPermittedError):
    """Raised when an operation would duplicate an existing record.

    Subclasses ``OperationNotPermittedError``: a second open loan on the same
    book is both a conflict and a denied borrow.
    """

    kind = ErrorKind.CONFLICT


class ActivationCodeExpiredError(BookNetworkError):
    """Raised when an activation code is past its validity window."""

    kind = ErrorKind.EXPIRED


class InvalidInputError(BookNetworkError):
    """Raised for malformed input caught before any state change."""

    kind = ErrorKind.INVALID


class AuthenticationError(BookNetworkError):
    """Raised when credentials or a session token cannot be verified."""

    kind = ErrorKind.UNAUTHENTICATED


class RepositoryException(BookNetworkError):
    """Raised when the database rejects an operation."""


class NotificationError(BookNetworkError):
    """Raised when an email cannot be delivered."""
