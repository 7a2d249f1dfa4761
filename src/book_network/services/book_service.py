"""
Book lifecycle operations for the Book Network server.

Owners add books, flip the ``shareable`` and ``archived`` flags, and attach
a cover image. Every mutation compares the caller with ``book.owner_id``;
books are never deleted.
"""

import logging

from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.repository import PageRequest, PageResponse
from ..database.schema import Book as BookDB
from ..exceptions import NotFoundError, OperationNotPermittedError
from ..models.book import BookRequest, BookResponse
from ..models.user import Identity
from ..observability import trace_repository_operation
from ..storage import FileStorage

logger = logging.getLogger(__name__)


class BookService:
    """Catalog operations on books owned by members."""

    def __init__(self, session: Session, file_storage: FileStorage):
        self.session = session
        self.file_storage = file_storage
        self.books = BookRepository(session)

    def to_book_response(self, book: BookDB) -> BookResponse:
        return BookResponse(
            id=book.id,
            title=book.title,
            author_name=book.author_name,
            isbn=book.isbn,
            synopsis=book.synopsis,
            owner=book.owner.full_name,
            owner_id=book.owner_id,
            cover=self.file_storage.read(book.cover),
            archived=book.archived,
            shareable=book.shareable,
        )

    def _get_or_raise(self, book_id: int) -> BookDB:
        book = self.books.get_by_id(book_id)
        if book is None:
            raise NotFoundError(f"No book found with the ID:: {book_id}")
        return book

    def _owned_book(self, book_id: int, identity: Identity, denial: str) -> BookDB:
        book = self._get_or_raise(book_id)
        if book.owner_id != identity.user_id:
            raise OperationNotPermittedError(denial)
        return book

    def create(self, request: BookRequest, identity: Identity) -> int:
        """Add a book to the caller's shelf and return its id."""
        with trace_repository_operation("books", "create"):
            book = BookDB(
                title=request.title,
                author_name=request.author_name,
                isbn=request.isbn,
                synopsis=request.synopsis,
                shareable=request.shareable,
                archived=False,
                owner_id=identity.user_id,
            )
            book = self.books.add(book, "create book")

        logger.info("Book %s created by user %s", book.id, identity.user_id)
        return book.id

    def get(self, book_id: int) -> BookResponse:
        with trace_repository_operation("books", "get"):
            return self.to_book_response(self._get_or_raise(book_id))

    def list_displayable(
        self, page_request: PageRequest, identity: Identity
    ) -> PageResponse[BookResponse]:
        """Books other members have shared and not archived."""
        with trace_repository_operation("books", "list_displayable"):
            return self.books.find_displayable(
                page_request, identity.user_id, self.to_book_response
            )

    def list_by_owner(
        self, page_request: PageRequest, identity: Identity
    ) -> PageResponse[BookResponse]:
        with trace_repository_operation("books", "list_by_owner"):
            return self.books.find_by_owner(page_request, identity.user_id, self.to_book_response)

    def toggle_shareable(self, book_id: int, identity: Identity) -> int:
        """Flip ``shareable``; only the owner may do so."""
        with trace_repository_operation("books", "toggle_shareable"):
            book = self._owned_book(
                book_id, identity, "You cannot update others books shareable status"
            )
            book.shareable = not book.shareable
            self.books.save(book, "toggle shareable")

        logger.info("Book %s shareable=%s (user %s)", book_id, book.shareable, identity.user_id)
        return book.id

    def toggle_archived(self, book_id: int, identity: Identity) -> int:
        """Flip ``archived``; only the owner may do so."""
        with trace_repository_operation("books", "toggle_archived"):
            book = self._owned_book(
                book_id, identity, "You cannot update others books archived status"
            )
            book.archived = not book.archived
            self.books.save(book, "toggle archived")

        logger.info("Book %s archived=%s (user %s)", book_id, book.archived, identity.user_id)
        return book.id

    def upload_cover(self, book_id: int, data: bytes, filename: str, identity: Identity) -> int:
        """Store a cover image and attach its handle to the book."""
        with trace_repository_operation("books", "upload_cover"):
            book = self._owned_book(book_id, identity, "You cannot upload a cover for others books")
            book.cover = self.file_storage.save(data, filename, identity.user_id)
            self.books.save(book, "upload cover")

        logger.info("Cover uploaded for book %s by user %s", book_id, identity.user_id)
        return book.id
