"""
Book repository implementation for the Book Network server.

Two typed listing queries replace a generic predicate builder:

1. ``find_displayable``: books other members can borrow right now
2. ``find_by_owner``: the caller's own shelf, whatever its flags

Both order newest first with the id as a tie-breaker so pages are stable.
"""

from collections.abc import Callable

from sqlalchemy import and_, select
from sqlalchemy.orm import joinedload

from ..database.schema import Book as BookDB
from .repository import BaseRepository, PageRequest, PageResponse


class BookRepository(BaseRepository[BookDB]):
    """Repository for book data access."""

    @property
    def model_class(self):
        return BookDB

    def _ordered(self):
        return (
            select(BookDB)
            .options(joinedload(BookDB.owner))
            .order_by(BookDB.created_at.desc(), BookDB.id.desc())
        )

    def find_displayable[T](
        self,
        page_request: PageRequest,
        user_id: int,
        mapper: Callable[[BookDB], T],
    ) -> PageResponse[T]:
        """
        Books that are shareable, not archived, and not owned by ``user_id``.

        Args:
            page_request: Page index and size
            user_id: The caller, whose own books are excluded
            mapper: Converts each row to its response model
        """
        query = self._ordered().where(
            and_(
                BookDB.archived.is_(False),
                BookDB.shareable.is_(True),
                BookDB.owner_id != user_id,
            )
        )
        return self._paginate(query, page_request, mapper)

    def find_by_owner[T](
        self,
        page_request: PageRequest,
        user_id: int,
        mapper: Callable[[BookDB], T],
    ) -> PageResponse[T]:
        """All books owned by ``user_id``."""
        query = self._ordered().where(BookDB.owner_id == user_id)
        return self._paginate(query, page_request, mapper)
