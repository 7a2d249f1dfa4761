"""
Tests for loan tools (borrow, return, approve, listings).

1. Input validation
2. Success scenarios
3. errorKind for each failure category
4. State modifications
"""

import pytest

from book_network.database.schema import Loan
from book_network.tools.loans import (
    approve_return_handler,
    borrow_book_handler,
    list_borrowed_books_handler,
    list_returned_books_handler,
    return_book_handler,
)


class TestBorrowBookTool:
    async def test_borrow_success(self, mock_get_session, shared_book, borrower, token_for):
        result = await borrow_book_handler(
            {"token": token_for(borrower), "book_id": shared_book.id}
        )

        assert not result.get("isError")
        assert result["content"][0]["type"] == "text"
        assert "Borrowed book" in result["content"][0]["text"]
        assert result["data"]["book_id"] == shared_book.id
        assert result["data"]["state"] == "borrowed"

        loan = mock_get_session.get(Loan, result["data"]["loan_id"])
        assert loan.user_id == borrower.id

    async def test_unknown_book(self, mock_get_session, borrower, token_for):
        result = await borrow_book_handler({"token": token_for(borrower), "book_id": 999})

        assert result["isError"] is True
        assert result["errorKind"] == "not_found"
        assert "999" in result["content"][0]["text"]

    async def test_own_book(self, mock_get_session, shared_book, owner, token_for):
        result = await borrow_book_handler({"token": token_for(owner), "book_id": shared_book.id})

        assert result["errorKind"] == "permission_denied"
        assert "your own book" in result["content"][0]["text"]

    async def test_duplicate_borrow(self, mock_get_session, shared_book, borrower, token_for):
        arguments = {"token": token_for(borrower), "book_id": shared_book.id}
        await borrow_book_handler(arguments)

        result = await borrow_book_handler(arguments)

        assert result["errorKind"] == "conflict"

    async def test_invalid_token(self, mock_get_session, shared_book):
        result = await borrow_book_handler({"token": "not-a-token", "book_id": shared_book.id})

        assert result["errorKind"] == "unauthenticated"
        assert mock_get_session.query(Loan).count() == 0

    @pytest.mark.parametrize(
        "arguments",
        [
            {"book_id": 1},
            {"token": "t"},
            {"token": "t", "book_id": 0},
            {"token": "t", "book_id": "one"},
        ],
    )
    async def test_invalid_arguments(self, mock_get_session, arguments):
        result = await borrow_book_handler(arguments)

        assert result["isError"] is True
        assert result["errorKind"] == "invalid"
        assert "Invalid borrow_book parameters" in result["content"][0]["text"]


class TestReturnAndApproveTools:
    async def test_full_loan_cycle(self, mock_get_session, shared_book, owner, borrower, token_for):
        borrower_args = {"token": token_for(borrower), "book_id": shared_book.id}
        owner_args = {"token": token_for(owner), "book_id": shared_book.id}

        borrowed = await borrow_book_handler(borrower_args)
        returned = await return_book_handler(borrower_args)
        approved = await approve_return_handler(owner_args)

        loan_id = borrowed["data"]["loan_id"]
        assert returned["data"]["state"] == "returned"
        assert approved["data"]["state"] == "closed"
        assert returned["data"]["loan_id"] == approved["data"]["loan_id"] == loan_id

        loan = mock_get_session.get(Loan, loan_id)
        assert loan.returned is True
        assert loan.return_approved is True

    async def test_return_without_loan(self, mock_get_session, shared_book, borrower, token_for):
        result = await return_book_handler(
            {"token": token_for(borrower), "book_id": shared_book.id}
        )

        assert result["errorKind"] == "permission_denied"
        assert "did not borrow" in result["content"][0]["text"]

    async def test_borrower_cannot_approve(
        self, mock_get_session, shared_book, borrower, token_for
    ):
        arguments = {"token": token_for(borrower), "book_id": shared_book.id}
        await borrow_book_handler(arguments)
        await return_book_handler(arguments)

        result = await approve_return_handler(arguments)

        assert result["errorKind"] == "permission_denied"
        assert "do not own" in result["content"][0]["text"]

    async def test_approve_before_return(
        self, mock_get_session, shared_book, owner, borrower, token_for
    ):
        await borrow_book_handler({"token": token_for(borrower), "book_id": shared_book.id})

        result = await approve_return_handler(
            {"token": token_for(owner), "book_id": shared_book.id}
        )

        assert result["errorKind"] == "permission_denied"
        assert "not returned yet" in result["content"][0]["text"]


class TestLoanListingTools:
    async def test_list_borrowed_books_envelope(
        self, mock_get_session, make_book, owner, borrower, token_for
    ):
        token = token_for(borrower)
        for n in range(3):
            book = make_book(owner, title=f"Book {n}")
            await borrow_book_handler({"token": token, "book_id": book.id})

        result = await list_borrowed_books_handler({"token": token, "page": 1, "size": 2})

        data = result["data"]
        assert data["page_number"] == 1
        assert data["page_size"] == 2
        assert data["total_elements"] == 3
        assert data["total_pages"] == 2
        assert data["is_first"] is False
        assert data["is_last"] is True
        assert len(data["items"]) == 1
        item = data["items"][0]
        assert item["title"] == "Book 0"
        assert item["state"] == "borrowed"
        assert isinstance(item["borrowed_at"], str)

    async def test_list_returned_books_for_owner(
        self, mock_get_session, shared_book, owner, borrower, token_for
    ):
        arguments = {"token": token_for(borrower), "book_id": shared_book.id}
        await borrow_book_handler(arguments)
        await return_book_handler(arguments)

        result = await list_returned_books_handler({"token": token_for(owner)})

        items = result["data"]["items"]
        assert [item["id"] for item in items] == [shared_book.id]
        assert items[0]["returned"] is True
        assert items[0]["return_approved"] is False
        assert items[0]["state"] == "returned"

    async def test_empty_listing(self, mock_get_session, borrower, token_for):
        result = await list_borrowed_books_handler({"token": token_for(borrower)})

        assert result["data"]["items"] == []
        assert result["data"]["is_first"] is True
        assert result["data"]["is_last"] is True

    @pytest.mark.parametrize("paging", [{"page": -1}, {"size": 0}, {"size": 500}])
    async def test_bad_paging_is_invalid(self, mock_get_session, borrower, token_for, paging):
        result = await list_borrowed_books_handler({"token": token_for(borrower), **paging})

        assert result["errorKind"] == "invalid"

    async def test_page_size_above_configured_limit_is_invalid(
        self, mock_get_session, borrower, token_for, test_config
    ):
        test_config.max_page_size = 5

        result = await list_borrowed_books_handler({"token": token_for(borrower), "size": 6})

        assert result["errorKind"] == "invalid"
        assert "must not exceed 5" in result["content"][0]["text"]
