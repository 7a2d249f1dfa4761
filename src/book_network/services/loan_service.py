"""
Loan state machine for the Book Network server.

A loan walks one way only:

    [no loan] --borrow--> BORROWED --return--> RETURNED --approve--> CLOSED

Each transition is guarded in a fixed order (book exists, book is
borrowable, ownership rule, loan precondition) so callers always get the
first rule they broke. Borrowing again after CLOSED opens a new loan.
"""

import logging

from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.loan_repository import LoanRepository
from ..database.repository import PageRequest, PageResponse
from ..database.schema import Book as BookDB
from ..database.schema import Loan as LoanDB
from ..exceptions import ConflictError, NotFoundError, OperationNotPermittedError
from ..models.loan import BorrowedBookResponse, LoanState
from ..models.user import Identity
from ..observability import record_loan_event, trace_repository_operation

logger = logging.getLogger(__name__)


def to_borrowed_book_response(loan: LoanDB) -> BorrowedBookResponse:
    return BorrowedBookResponse(
        id=loan.book.id,
        loan_id=loan.id,
        title=loan.book.title,
        author_name=loan.book.author_name,
        isbn=loan.book.isbn,
        returned=loan.returned,
        return_approved=loan.return_approved,
        state=LoanState.from_flags(loan.returned, loan.return_approved),
        borrowed_at=loan.created_at,
    )


class LoanService:
    """Borrow, return and approve-return operations plus loan listings."""

    def __init__(self, session: Session):
        self.session = session
        self.books = BookRepository(session)
        self.loans = LoanRepository(session)

    def _borrowable_book(self, book_id: int, action: str) -> BookDB:
        book = self.books.get_by_id(book_id)
        if book is None:
            raise NotFoundError(f"No book found with the ID:: {book_id}")
        if book.archived or not book.shareable:
            raise OperationNotPermittedError(
                f"The requested book cannot be {action} since it is archived or not shareable"
            )
        return book

    def borrow(self, book_id: int, identity: Identity) -> int:
        """
        Open a BORROWED loan on ``book_id`` for the caller.

        Returns:
            The new loan id

        Raises:
            NotFoundError: If the book does not exist
            OperationNotPermittedError: If the book is not borrowable or is the caller's own
            ConflictError: If the caller already holds an open loan on the book
        """
        with trace_repository_operation("loans", "borrow"):
            book = self._borrowable_book(book_id, "borrowed")
            if book.owner_id == identity.user_id:
                raise OperationNotPermittedError("You cannot borrow your own book")
            if self.loans.is_already_borrowed_by_user(book_id, identity.user_id):
                raise ConflictError("You have already borrowed this book")

            # The open-loan index rejects a concurrent duplicate as ConflictError
            loan = self.loans.create(book_id=book.id, user_id=identity.user_id)

        logger.info("Book %s borrowed by user %s (loan %s)", book_id, identity.user_id, loan.id)
        record_loan_event("borrow")
        return loan.id

    def return_book(self, book_id: int, identity: Identity) -> int:
        """
        Mark the caller's BORROWED loan on ``book_id`` as RETURNED.

        Raises:
            NotFoundError: If the book does not exist
            OperationNotPermittedError: If the book is not borrowable, is the caller's
                own, or the caller holds no BORROWED loan on it
        """
        with trace_repository_operation("loans", "return"):
            book = self._borrowable_book(book_id, "borrowed")
            if book.owner_id == identity.user_id:
                raise OperationNotPermittedError("You cannot return your own book")

            loan = self.loans.find_open_by_book_and_borrower(book_id, identity.user_id)
            if loan is None:
                raise OperationNotPermittedError("You did not borrow this book")

            loan.returned = True
            self.loans.save(loan, "return book")

        logger.info("Book %s returned by user %s (loan %s)", book_id, identity.user_id, loan.id)
        record_loan_event("return")
        return loan.id

    def approve_return(self, book_id: int, identity: Identity) -> int:
        """
        Close the RETURNED loan on a book owned by the caller.

        Only the owner may approve a return.

        Raises:
            NotFoundError: If the book does not exist
            OperationNotPermittedError: If the book is not borrowable, the caller is
                not its owner, or no loan on it is waiting for approval
        """
        with trace_repository_operation("loans", "approve_return"):
            book = self._borrowable_book(book_id, "borrowed")
            if book.owner_id != identity.user_id:
                raise OperationNotPermittedError(
                    "You cannot approve the return of a book you do not own"
                )

            loan = self.loans.find_returned_by_book_and_owner(book_id, identity.user_id)
            if loan is None:
                raise OperationNotPermittedError(
                    "The book is not returned yet so you cannot approve its return"
                )

            loan.return_approved = True
            self.loans.save(loan, "approve return")

        logger.info(
            "Return of book %s approved by owner %s (loan %s)", book_id, identity.user_id, loan.id
        )
        record_loan_event("approve_return")
        return loan.id

    def list_borrowed(
        self, page_request: PageRequest, identity: Identity
    ) -> PageResponse[BorrowedBookResponse]:
        """Every loan the caller has taken, newest first."""
        with trace_repository_operation("loans", "list_borrowed"):
            return self.loans.find_borrowed(
                page_request, identity.user_id, to_borrowed_book_response
            )

    def list_returned(
        self, page_request: PageRequest, identity: Identity
    ) -> PageResponse[BorrowedBookResponse]:
        """Every loan on the caller's books, newest first."""
        with trace_repository_operation("loans", "list_returned"):
            return self.loans.find_returned(
                page_request, identity.user_id, to_borrowed_book_response
            )
