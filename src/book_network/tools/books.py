"""
Book catalog tools for the Book Network server.

Owners list books, toggle whether they are shared or archived, and upload a
cover; everyone can browse the books other members have shared.
"""

import logging
from typing import Any

from pydantic import Base64Bytes, Field, ValidationError

from ..database.session import get_session
from ..exceptions import BookNetworkError
from ..models.book import BookRequest
from ..observability import trace_tool
from ..services.book_service import BookService
from .common import (
    AuthenticatedInput,
    BookIdInput,
    PagedInput,
    authenticate_caller,
    failure_result,
    get_file_storage,
    internal_error_result,
    invalid_arguments_result,
    success_result,
    to_page_request,
)

logger = logging.getLogger(__name__)


class CreateBookInput(BookRequest, AuthenticatedInput):
    """Input schema for the create_book tool."""


class UploadCoverInput(BookIdInput):
    """Input schema for the upload_book_cover tool."""

    filename: str = Field(
        ...,
        description="Original file name; only its extension is kept",
        min_length=1,
        max_length=255,
        examples=["cover.jpg", "gatsby.png"],
    )

    content: Base64Bytes = Field(..., description="Base64-encoded image content")


def _book_service(session) -> BookService:
    return BookService(session, get_file_storage())


# =============================================================================
# CATALOG MUTATIONS
# =============================================================================


@trace_tool("create_book")
async def create_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the create_book tool. The caller becomes the owner."""
    try:
        params = CreateBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("create_book", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            book_id = _book_service(session).create(params, identity)
    except BookNetworkError as e:
        return failure_result("create_book", e)
    except Exception as e:
        return internal_error_result("create_book", e)

    return success_result(
        f"Added '{params.title}' by {params.author_name} to your shelf (book {book_id})",
        {"book_id": book_id},
    )


@trace_tool("toggle_shareable")
async def toggle_shareable_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the toggle_shareable tool."""
    try:
        params = BookIdInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("toggle_shareable", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            service = _book_service(session)
            book_id = service.toggle_shareable(params.book_id, identity)
            shareable = service.books.get_by_id(book_id).shareable
    except BookNetworkError as e:
        return failure_result("toggle_shareable", e)
    except Exception as e:
        return internal_error_result("toggle_shareable", e)

    state = "shared with other members" if shareable else "no longer shared"
    return success_result(
        f"Book {book_id} is now {state}",
        {"book_id": book_id, "shareable": shareable},
    )


@trace_tool("toggle_archived")
async def toggle_archived_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the toggle_archived tool."""
    try:
        params = BookIdInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("toggle_archived", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            service = _book_service(session)
            book_id = service.toggle_archived(params.book_id, identity)
            archived = service.books.get_by_id(book_id).archived
    except BookNetworkError as e:
        return failure_result("toggle_archived", e)
    except Exception as e:
        return internal_error_result("toggle_archived", e)

    return success_result(
        f"Book {book_id} is now {'archived' if archived else 'active'}",
        {"book_id": book_id, "archived": archived},
    )


@trace_tool("upload_book_cover")
async def upload_book_cover_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the upload_book_cover tool."""
    try:
        params = UploadCoverInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("upload_book_cover", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            book_id = _book_service(session).upload_cover(
                params.book_id, params.content, params.filename, identity
            )
    except BookNetworkError as e:
        return failure_result("upload_book_cover", e)
    except Exception as e:
        return internal_error_result("upload_book_cover", e)

    return success_result(
        f"Uploaded a {len(params.content)} byte cover for book {book_id}",
        {"book_id": book_id, "size": len(params.content)},
    )


# =============================================================================
# CATALOG QUERIES
# =============================================================================


@trace_tool("get_book")
async def get_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the get_book tool."""
    try:
        params = BookIdInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("get_book", e)

    try:
        with get_session() as session:
            authenticate_caller(session, params.token)
            book = _book_service(session).get(params.book_id)
    except BookNetworkError as e:
        return failure_result("get_book", e)
    except Exception as e:
        return internal_error_result("get_book", e)

    return success_result(
        f"'{book.title}' by {book.author_name}, owned by {book.owner}",
        {"book": book.model_dump(mode="json")},
    )


@trace_tool("list_books")
async def list_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the list_books tool (books available to borrow)."""
    try:
        params = PagedInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("list_books", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            page = _book_service(session).list_displayable(to_page_request(params), identity)
    except BookNetworkError as e:
        return failure_result("list_books", e)
    except Exception as e:
        return internal_error_result("list_books", e)

    return success_result(
        f"Page {page.page_number + 1} of {max(page.total_pages, 1)}: "
        f"{len(page.items)} of {page.total_elements} books available to borrow",
        page.model_dump(mode="json"),
    )


@trace_tool("list_my_books")
async def list_my_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the list_my_books tool."""
    try:
        params = PagedInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("list_my_books", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            page = _book_service(session).list_by_owner(to_page_request(params), identity)
    except BookNetworkError as e:
        return failure_result("list_my_books", e)
    except Exception as e:
        return internal_error_result("list_my_books", e)

    return success_result(
        f"Page {page.page_number + 1} of {max(page.total_pages, 1)}: "
        f"{len(page.items)} of {page.total_elements} books on your shelf",
        page.model_dump(mode="json"),
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

create_book = {
    "name": "create_book",
    "description": (
        "Add a book to your shelf. Books are private until made shareable, either here "
        "or later with toggle_shareable."
    ),
    "inputSchema": CreateBookInput.model_json_schema(),
    "handler": create_book_handler,
}

get_book = {
    "name": "get_book",
    "description": "Get a book's details, including its owner and base64-encoded cover.",
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": get_book_handler,
}

list_books = {
    "name": "list_books",
    "description": (
        "List books other members have shared and not archived, newest first. "
        "These are the books you can borrow."
    ),
    "inputSchema": PagedInput.model_json_schema(),
    "handler": list_books_handler,
}

list_my_books = {
    "name": "list_my_books",
    "description": "List every book on your shelf, newest first, whatever its flags.",
    "inputSchema": PagedInput.model_json_schema(),
    "handler": list_my_books_handler,
}

toggle_shareable = {
    "name": "toggle_shareable",
    "description": "Flip whether one of your books can be borrowed by other members.",
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": toggle_shareable_handler,
}

toggle_archived = {
    "name": "toggle_archived",
    "description": "Archive or unarchive one of your books. Archived books cannot be borrowed.",
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": toggle_archived_handler,
}

upload_book_cover = {
    "name": "upload_book_cover",
    "description": "Upload a cover image (base64 content plus file name) for one of your books.",
    "inputSchema": UploadCoverInput.model_json_schema(),
    "handler": upload_book_cover_handler,
}
