"""
Loan tools for the Book Network server.

1. borrow_book: open a loan on someone else's shared book
2. return_book: hand a borrowed book back
3. approve_return: the owner confirms a returned book, closing the loan
4. list_borrowed_books / list_returned_books: paginated loan history

The state machine itself lives in ``LoanService``; these handlers validate
arguments, resolve the caller and translate failures into ``errorKind``
results.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..database.session import get_session
from ..exceptions import BookNetworkError
from ..observability import trace_tool
from ..services.loan_service import LoanService
from .common import (
    BookIdInput,
    PagedInput,
    authenticate_caller,
    failure_result,
    internal_error_result,
    invalid_arguments_result,
    success_result,
    to_page_request,
)

logger = logging.getLogger(__name__)


# =============================================================================
# LOAN TRANSITIONS
# =============================================================================


@trace_tool("borrow_book")
async def borrow_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the borrow_book tool.

    Fails with ``not_found`` for an unknown book, ``permission_denied`` when
    the book is archived, not shareable or the caller's own, and ``conflict``
    when the caller already holds an open loan on it.
    """
    try:
        params = BookIdInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("borrow_book", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            loan_id = LoanService(session).borrow(params.book_id, identity)
    except BookNetworkError as e:
        return failure_result("borrow_book", e)
    except Exception as e:
        return internal_error_result("borrow_book", e)

    return success_result(
        f"Borrowed book {params.book_id}. Return it with return_book when you are done.",
        {"loan_id": loan_id, "book_id": params.book_id, "state": "borrowed"},
    )


@trace_tool("return_book")
async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the return_book tool."""
    try:
        params = BookIdInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("return_book", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            loan_id = LoanService(session).return_book(params.book_id, identity)
    except BookNetworkError as e:
        return failure_result("return_book", e)
    except Exception as e:
        return internal_error_result("return_book", e)

    return success_result(
        f"Returned book {params.book_id}. The owner still has to approve the return.",
        {"loan_id": loan_id, "book_id": params.book_id, "state": "returned"},
    )


@trace_tool("approve_return")
async def approve_return_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the approve_return tool.

    Only the owner of the book may approve, and only once the borrower has
    returned it.
    """
    try:
        params = BookIdInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("approve_return", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            loan_id = LoanService(session).approve_return(params.book_id, identity)
    except BookNetworkError as e:
        return failure_result("approve_return", e)
    except Exception as e:
        return internal_error_result("approve_return", e)

    return success_result(
        f"Approved the return of book {params.book_id}. The loan is closed.",
        {"loan_id": loan_id, "book_id": params.book_id, "state": "closed"},
    )


# =============================================================================
# LOAN LISTINGS
# =============================================================================


@trace_tool("list_borrowed_books")
async def list_borrowed_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the list_borrowed_books tool."""
    try:
        params = PagedInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("list_borrowed_books", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            page = LoanService(session).list_borrowed(to_page_request(params), identity)
    except BookNetworkError as e:
        return failure_result("list_borrowed_books", e)
    except Exception as e:
        return internal_error_result("list_borrowed_books", e)

    return success_result(
        f"Page {page.page_number + 1} of {max(page.total_pages, 1)}: "
        f"{len(page.items)} of {page.total_elements} borrowed books",
        page.model_dump(mode="json"),
    )


@trace_tool("list_returned_books")
async def list_returned_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the list_returned_books tool (loans on the caller's books)."""
    try:
        params = PagedInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("list_returned_books", e)

    try:
        with get_session() as session:
            identity = authenticate_caller(session, params.token)
            page = LoanService(session).list_returned(to_page_request(params), identity)
    except BookNetworkError as e:
        return failure_result("list_returned_books", e)
    except Exception as e:
        return internal_error_result("list_returned_books", e)

    return success_result(
        f"Page {page.page_number + 1} of {max(page.total_pages, 1)}: "
        f"{len(page.items)} of {page.total_elements} loans on your books",
        page.model_dump(mode="json"),
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

borrow_book = {
    "name": "borrow_book",
    "description": (
        "Borrow a book another member has shared. Fails if the book is archived, not "
        "shareable, your own, or already borrowed by you and not yet closed."
    ),
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": borrow_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a book you borrowed. The loan stays open until the owner approves the return."
    ),
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": return_book_handler,
}

approve_return = {
    "name": "approve_return",
    "description": (
        "Approve the return of one of your books after the borrower has returned it. "
        "Closes the loan so the book can be borrowed again."
    ),
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": approve_return_handler,
}

list_borrowed_books = {
    "name": "list_borrowed_books",
    "description": "List the books you have borrowed, newest loan first, with their loan state.",
    "inputSchema": PagedInput.model_json_schema(),
    "handler": list_borrowed_books_handler,
}

list_returned_books = {
    "name": "list_returned_books",
    "description": (
        "List loans on the books you own, newest first, so you can see which "
        "returns are waiting for your approval."
    ),
    "inputSchema": PagedInput.model_json_schema(),
    "handler": list_returned_books_handler,
}
