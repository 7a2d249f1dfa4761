"""
Loan ledger repository for the Book Network server.

One row per borrow event. The lookups here mirror the three guarded
transitions of a loan:

- ``is_already_borrowed_by_user``: any open loan (not yet approved) blocks a borrow
- ``find_open_by_book_and_borrower``: the BORROWED loan a return acts on
- ``find_returned_by_book_and_owner``: the RETURNED loan an owner approves
"""

from collections.abc import Callable

from sqlalchemy import and_, func, select
from sqlalchemy.orm import joinedload

from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..database.session import safe_query
from .repository import BaseRepository, PageRequest, PageResponse


class LoanRepository(BaseRepository[LoanDB]):
    """Repository for loan records."""

    @property
    def model_class(self):
        return LoanDB

    def create(self, book_id: int, user_id: int) -> LoanDB:
        """Insert a loan in the BORROWED state."""
        loan = LoanDB(book_id=book_id, user_id=user_id, returned=False, return_approved=False)
        return self.add(loan, "create loan")

    def is_already_borrowed_by_user(self, book_id: int, user_id: int) -> bool:
        """True if ``user_id`` holds a loan on ``book_id`` whose return is not approved."""
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(
                and_(
                    LoanDB.user_id == user_id,
                    LoanDB.book_id == book_id,
                    LoanDB.return_approved.is_(False),
                )
            )
        )
        count = safe_query(
            self.session,
            lambda s: s.execute(query).scalar(),
            "Failed to check existing loan",
        )
        return (count or 0) > 0

    def find_open_by_book_and_borrower(self, book_id: int, user_id: int) -> LoanDB | None:
        """The BORROWED loan for this book and borrower, if any."""
        query = select(LoanDB).where(
            and_(
                LoanDB.user_id == user_id,
                LoanDB.book_id == book_id,
                LoanDB.returned.is_(False),
                LoanDB.return_approved.is_(False),
            )
        )
        return safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get open loan",
        )

    def find_returned_by_book_and_owner(self, book_id: int, owner_id: int) -> LoanDB | None:
        """The RETURNED, not yet approved loan on a book owned by ``owner_id``."""
        query = (
            select(LoanDB)
            .join(BookDB, LoanDB.book_id == BookDB.id)
            .where(
                and_(
                    BookDB.owner_id == owner_id,
                    LoanDB.book_id == book_id,
                    LoanDB.returned.is_(True),
                    LoanDB.return_approved.is_(False),
                )
            )
            .order_by(LoanDB.created_at, LoanDB.id)
            .limit(1)
        )
        return safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get returned loan",
        )

    def find_borrowed[T](
        self,
        page_request: PageRequest,
        user_id: int,
        mapper: Callable[[LoanDB], T],
    ) -> PageResponse[T]:
        """Every loan taken by ``user_id``, newest first."""
        query = (
            select(LoanDB)
            .options(joinedload(LoanDB.book))
            .where(LoanDB.user_id == user_id)
            .order_by(LoanDB.created_at.desc(), LoanDB.id.desc())
        )
        return self._paginate(query, page_request, mapper)

    def find_returned[T](
        self,
        page_request: PageRequest,
        owner_id: int,
        mapper: Callable[[LoanDB], T],
    ) -> PageResponse[T]:
        """Every loan on books owned by ``owner_id``, newest first."""
        query = (
            select(LoanDB)
            .join(BookDB, LoanDB.book_id == BookDB.id)
            .options(joinedload(LoanDB.book))
            .where(BookDB.owner_id == owner_id)
            .order_by(LoanDB.created_at.desc(), LoanDB.id.desc())
        )
        return self._paginate(query, page_request, mapper)
