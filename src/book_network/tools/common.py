"""
Shared plumbing for Book Network MCP tools.

Every handler follows the same shape: validate ``arguments`` with a Pydantic
input model, open a session, turn the session token into an ``Identity``,
call a service, and return either a success result or an error result whose
``errorKind`` tells the client what went wrong.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from ..config import get_config
from ..database.repository import PageRequest
from ..exceptions import BookNetworkError, ErrorKind, InvalidInputError
from ..models.user import Identity
from ..notifications import EmailSender, create_email_sender
from ..security import TokenService
from ..services.auth_service import AuthService
from ..storage import FileStorage, LocalFileStorage

logger = logging.getLogger(__name__)


class AuthenticatedInput(BaseModel):
    """Base input for tools that act on behalf of a logged-in member."""

    token: str = Field(
        ...,
        description="Session token returned by the authenticate tool",
        min_length=1,
    )


class PagedInput(AuthenticatedInput):
    """Base input for listing tools."""

    page: int = Field(default=0, ge=0, description="Page index (0-based)", examples=[0, 1])
    size: int = Field(default=10, ge=1, le=100, description="Items per page", examples=[10, 25])


class BookIdInput(AuthenticatedInput):
    """Input for tools that act on a single book."""

    book_id: int = Field(..., ge=1, description="Id of the book", examples=[1, 42])


# =============================================================================
# COLLABORATORS
# =============================================================================


def get_token_service() -> TokenService:
    config = get_config()
    return TokenService(config.jwt_secret_key, config.jwt_expiration_minutes)


def get_email_sender() -> EmailSender:
    return create_email_sender(get_config())


def get_file_storage() -> FileStorage:
    return LocalFileStorage(get_config().upload_dir)


def build_auth_service(session: Session) -> AuthService:
    return AuthService(session, get_config(), get_email_sender(), get_token_service())


def authenticate_caller(session: Session, token: str) -> Identity:
    """Resolve the session token into the caller's identity."""
    return build_auth_service(session).resolve_identity(token)


def to_page_request(params: PagedInput) -> PageRequest:
    """Build a ``PageRequest``, enforcing the configured page size limit."""
    max_size = get_config().max_page_size
    if params.size > max_size:
        raise InvalidInputError(f"Page size must not exceed {max_size}")
    return PageRequest(page=params.page, size=params.size)


# =============================================================================
# RESULTS
# =============================================================================


def success_result(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "data": data,
    }


def error_result(error: BookNetworkError) -> dict[str, Any]:
    """Structured failure for an expected error."""
    return {
        "isError": True,
        "errorKind": error.kind.value,
        "content": [{"type": "text", "text": str(error)}],
    }


def invalid_arguments_result(tool_name: str, error: ValidationError) -> dict[str, Any]:
    logger.warning("Invalid %s parameters: %s", tool_name, error)
    problems = "; ".join(
        f"{'.'.join(str(part) for part in item['loc']) or 'arguments'}: {item['msg']}"
        for item in error.errors()
    )
    return {
        "isError": True,
        "errorKind": ErrorKind.INVALID.value,
        "content": [{"type": "text", "text": f"Invalid {tool_name} parameters: {problems}"}],
    }


def internal_error_result(tool_name: str, error: Exception) -> dict[str, Any]:
    logger.exception("Unexpected error in %s tool", tool_name)
    return {
        "isError": True,
        "errorKind": ErrorKind.INTERNAL.value,
        "content": [{"type": "text", "text": f"An unexpected error occurred: {error!s}"}],
    }


def failure_result(tool_name: str, error: BookNetworkError) -> dict[str, Any]:
    """Log an expected failure at a level matching its kind and build the result."""
    if error.kind is ErrorKind.INTERNAL:
        logger.error("%s failed: %s", tool_name, error)
    else:
        logger.info("%s rejected (%s): %s", tool_name, error.kind.value, error)
    return error_result(error)
