"""Tests for schema-level guarantees on users, tokens and loans."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from book_network.database.schema import ActivationToken, Loan, User


class TestUser:
    def test_email_is_stored_lower_case(self, make_user):
        user = make_user(email="  Mixed.Case@Example.COM ")

        assert user.email == "mixed.case@example.com"

    def test_full_name(self, make_user):
        assert make_user(first_name="Grace", last_name="Hopper").full_name == "Grace Hopper"

    def test_email_is_unique(self, test_session, owner):
        test_session.add(
            User(first_name="Dup", last_name="Licate", email=owner.email, password_hash="x")
        )

        with pytest.raises(IntegrityError):
            test_session.commit()
        test_session.rollback()

    def test_new_users_start_disabled(self, test_session):
        user = User(
            first_name="New", last_name="Member", email="new@example.com", password_hash="x"
        )
        test_session.add(user)
        test_session.commit()

        assert user.enabled is False
        assert user.account_locked is False


class TestActivationToken:
    def test_expiry_must_follow_creation(self, test_session, owner):
        now = datetime.now()
        test_session.add(
            ActivationToken(
                code="123456",
                created_at=now,
                expires_at=now - timedelta(minutes=1),
                user_id=owner.id,
            )
        )

        with pytest.raises(IntegrityError):
            test_session.commit()
        test_session.rollback()


class TestLoanConstraints:
    def _loan(self, session, book, user, returned=False, return_approved=False) -> Loan:
        loan = Loan(
            book_id=book.id, user_id=user.id, returned=returned, return_approved=return_approved
        )
        session.add(loan)
        session.commit()
        return loan

    def test_second_open_loan_is_rejected(self, test_session, shared_book, borrower):
        self._loan(test_session, shared_book, borrower)

        with pytest.raises(IntegrityError):
            self._loan(test_session, shared_book, borrower, returned=True)
        test_session.rollback()

    def test_closed_loans_do_not_block_new_ones(self, test_session, shared_book, borrower):
        self._loan(test_session, shared_book, borrower, returned=True, return_approved=True)
        self._loan(test_session, shared_book, borrower, returned=True, return_approved=True)

        open_loan = self._loan(test_session, shared_book, borrower)

        assert open_loan.id is not None

    def test_approval_requires_return(self, test_session, shared_book, borrower):
        with pytest.raises(IntegrityError):
            self._loan(test_session, shared_book, borrower, return_approved=True)
        test_session.rollback()

    def test_loan_requires_existing_book(self, test_session, borrower):
        test_session.add(Loan(book_id=4242, user_id=borrower.id))

        with pytest.raises(IntegrityError):
            test_session.commit()
        test_session.rollback()
