"""
MCP tools for the Book Network server.

Each tool is a dictionary with its name, description, JSON input schema and
async handler; ``all_tools`` is what the server registers.
"""

from .auth import activate_account, authenticate, register
from .books import (
    create_book,
    get_book,
    list_books,
    list_my_books,
    toggle_archived,
    toggle_shareable,
    upload_book_cover,
)
from .loans import (
    approve_return,
    borrow_book,
    list_borrowed_books,
    list_returned_books,
    return_book,
)

all_tools = [
    register,
    activate_account,
    authenticate,
    create_book,
    get_book,
    list_books,
    list_my_books,
    toggle_shareable,
    toggle_archived,
    upload_book_cover,
    borrow_book,
    return_book,
    approve_return,
    list_borrowed_books,
    list_returned_books,
]

__all__ = [
    "activate_account",
    "all_tools",
    "approve_return",
    "authenticate",
    "borrow_book",
    "create_book",
    "get_book",
    "list_books",
    "list_borrowed_books",
    "list_my_books",
    "list_returned_books",
    "register",
    "return_book",
    "toggle_archived",
    "toggle_shareable",
    "upload_book_cover",
]
