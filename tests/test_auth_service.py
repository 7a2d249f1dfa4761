"""Tests for registration, activation, login and token resolution."""

from datetime import datetime, timedelta

import jwt
import pytest

from book_network.database.schema import ActivationToken, Role, User
from book_network.database.user_repository import ActivationTokenRepository, UserRepository
from book_network.exceptions import (
    ActivationCodeExpiredError,
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    NotificationError,
    RepositoryException,
)
from book_network.models.user import AuthenticationRequest, RegistrationRequest
from book_network.notifications import EmailSender
from book_network.security import TokenService, verify_password
from book_network.services.auth_service import AuthService


@pytest.fixture
def service(test_session, test_config, email_sender, token_service) -> AuthService:
    return AuthService(test_session, test_config, email_sender, token_service)


@pytest.fixture
def registration() -> RegistrationRequest:
    return RegistrationRequest(
        first_name="Ada",
        last_name="Lovelace",
        email="Ada@Example.com",
        password="analytical-engine",
    )


class FailingEmailSender(EmailSender):
    """Mail server that refuses every message."""

    def __init__(self):
        self.attempts = 0

    def deliver(self, to: str, subject: str, html_body: str) -> None:
        self.attempts += 1
        raise NotificationError(f"Could not send email to {to}")


@pytest.fixture
def failing_service(test_session, test_config, token_service) -> AuthService:
    return AuthService(test_session, test_config, FailingEmailSender(), token_service)


def expire(session, code: str) -> None:
    token = ActivationTokenRepository(session).get_by_code(code)
    token.created_at = datetime.now() - timedelta(minutes=30)
    token.expires_at = datetime.now() - timedelta(minutes=15)
    session.commit()


class TestRegister:
    def test_register_creates_disabled_user_with_role(
        self, service, test_session, registration
    ):
        user_id = service.register(registration)

        user = test_session.get(User, user_id)
        assert user.email == "ada@example.com"
        assert user.enabled is False
        assert user.account_locked is False
        assert [role.name for role in user.roles] == ["USER"]
        assert user.password_hash != "analytical-engine"
        assert verify_password(user.password_hash, "analytical-engine")

    def test_register_sends_activation_code(
        self, service, test_session, test_config, registration, email_sender
    ):
        user_id = service.register(registration)

        assert len(email_sender.sent) == 1
        message = email_sender.sent[0]
        assert message["to"] == "ada@example.com"
        assert message["subject"] == "Account activation"
        assert email_sender.last_code in message["body"]
        assert test_config.activation_url in message["body"]
        assert "Ada Lovelace" in message["body"]

        code = email_sender.last_code
        assert len(code) == 6
        assert code.isdigit()
        token = ActivationTokenRepository(test_session).get_by_code(code)
        assert token.user_id == user_id
        assert token.expires_at - token.created_at == timedelta(minutes=15)

    def test_duplicate_email_is_a_conflict(self, service, registration, email_sender):
        service.register(registration)

        duplicate = registration.model_copy(update={"email": "ADA@example.com"})
        with pytest.raises(ConflictError):
            service.register(duplicate)

        assert len(email_sender.sent) == 1

    def test_missing_role_is_an_internal_error(
        self, service, test_session, registration
    ):
        test_session.query(Role).delete()
        test_session.commit()

        with pytest.raises(RepositoryException, match="Role USER"):
            service.register(registration)


class TestActivate:
    def test_valid_code_enables_account(self, service, test_session, registration, email_sender):
        user_id = service.register(registration)

        service.activate(email_sender.last_code)

        assert test_session.get(User, user_id).enabled is True
        token = ActivationTokenRepository(test_session).get_by_code(email_sender.last_code)
        assert token.validated_at is not None

    def test_unknown_code_is_not_found(self, service):
        with pytest.raises(NotFoundError, match="Invalid activation code"):
            service.activate("000000")

    def test_code_cannot_be_reused(self, service, registration, email_sender):
        service.register(registration)
        service.activate(email_sender.last_code)

        with pytest.raises(InvalidInputError):
            service.activate(email_sender.last_code)

    def test_expired_code_sends_a_new_one(
        self, service, test_session, registration, email_sender
    ):
        user_id = service.register(registration)
        old_code = email_sender.last_code
        expire(test_session, old_code)

        with pytest.raises(ActivationCodeExpiredError):
            service.activate(old_code)

        # A fresh code went to the same address
        assert len(email_sender.sent) == 2
        assert email_sender.sent[1]["to"] == "ada@example.com"
        new_code = email_sender.last_code
        assert new_code != old_code
        assert test_session.get(User, user_id).enabled is False

        # The expired code is gone for good
        with pytest.raises(NotFoundError):
            service.activate(old_code)

        service.activate(new_code)
        assert test_session.get(User, user_id).enabled is True


class TestActivationEmailFailure:
    def test_failed_email_leaves_no_account_behind(
        self, service, failing_service, test_session, registration, email_sender
    ):
        with pytest.raises(NotificationError):
            failing_service.register(registration)

        assert failing_service.email_sender.attempts == 1
        assert test_session.query(User).count() == 0
        assert test_session.query(ActivationToken).count() == 0

        # The same address can register once mail works again
        user_id = service.register(registration)
        service.activate(email_sender.last_code)
        assert test_session.get(User, user_id).enabled is True

    def test_failed_reissue_keeps_the_expired_code(
        self, service, failing_service, test_session, registration, email_sender
    ):
        user_id = service.register(registration)
        old_code = email_sender.last_code
        expire(test_session, old_code)

        with pytest.raises(NotificationError):
            failing_service.activate(old_code)

        tokens = test_session.query(ActivationToken).filter_by(user_id=user_id).all()
        assert [token.code for token in tokens] == [old_code]

        # Redeeming the old code again sends a fresh one
        with pytest.raises(ActivationCodeExpiredError):
            service.activate(old_code)
        service.activate(email_sender.last_code)
        assert test_session.get(User, user_id).enabled is True


class TestAuthenticate:
    def test_valid_credentials_issue_token(self, service, owner, token_service, password):
        response = service.authenticate(
            AuthenticationRequest(email="OLIVE@example.com", password=password)
        )

        assert response.token_type == "Bearer"
        assert response.expires_in == 30 * 60
        claims = token_service.decode(response.token)
        assert claims["sub"] == str(owner.id)
        assert claims["email"] == "olive@example.com"
        assert claims["fullName"] == "Olive Owner"
        assert claims["authorities"] == ["USER"]

    def test_wrong_password_is_bad_credentials(self, service, owner):
        with pytest.raises(AuthenticationError, match="Bad credentials"):
            service.authenticate(
                AuthenticationRequest(email=owner.email, password="not-the-password")
            )

    def test_unknown_email_is_bad_credentials(self, service, password):
        with pytest.raises(AuthenticationError, match="Bad credentials"):
            service.authenticate(
                AuthenticationRequest(email="nobody@example.com", password=password)
            )

    def test_disabled_account_cannot_log_in(self, service, make_user, password):
        user = make_user(enabled=False)

        with pytest.raises(AuthenticationError, match="not activated"):
            service.authenticate(AuthenticationRequest(email=user.email, password=password))

    def test_locked_account_cannot_log_in(self, service, make_user, password):
        user = make_user(account_locked=True)

        with pytest.raises(AuthenticationError, match="locked"):
            service.authenticate(AuthenticationRequest(email=user.email, password=password))

    def test_register_activate_login_round_trip(self, service, registration, email_sender):
        service.register(registration)
        service.activate(email_sender.last_code)

        response = service.authenticate(
            AuthenticationRequest(email="ada@example.com", password="analytical-engine")
        )

        assert service.resolve_identity(response.token).full_name == "Ada Lovelace"


class TestResolveIdentity:
    def test_resolves_token_to_identity(self, service, owner, token_for):
        identity = service.resolve_identity(token_for(owner))

        assert identity.user_id == owner.id
        assert identity.full_name == "Olive Owner"
        assert identity.email == "olive@example.com"

    def test_garbage_token_is_rejected(self, service):
        with pytest.raises(AuthenticationError):
            service.resolve_identity("not-a-jwt")

    def test_token_signed_with_other_key_is_rejected(self, service, owner):
        forged = TokenService("another-secret-key-of-sufficient-length", 30).generate(
            subject=str(owner.id)
        )

        with pytest.raises(AuthenticationError, match="Invalid session token"):
            service.resolve_identity(forged)

    def test_expired_token_is_rejected(self, service, test_config, owner):
        expired = TokenService(test_config.jwt_secret_key, -1).generate(subject=str(owner.id))

        with pytest.raises(AuthenticationError, match="expired"):
            service.resolve_identity(expired)

    def test_token_for_deleted_user_is_rejected(self, service, test_config):
        token = TokenService(test_config.jwt_secret_key, 30).generate(subject="9999")

        with pytest.raises(AuthenticationError):
            service.resolve_identity(token)

    def test_non_numeric_subject_is_rejected(self, service, test_config):
        token = jwt.encode(
            {"sub": "olive", "exp": datetime.now().timestamp() + 60},
            test_config.jwt_secret_key,
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError, match="Invalid session token"):
            service.resolve_identity(token)

    def test_user_locked_after_login_is_rejected(self, service, test_session, owner, token_for):
        token = token_for(owner)
        owner.account_locked = True
        test_session.commit()

        with pytest.raises(AuthenticationError, match="locked"):
            service.resolve_identity(token)


def test_user_repository_email_lookup_is_case_insensitive(test_session, owner):
    repo = UserRepository(test_session)

    assert repo.get_by_email("  OLIVE@EXAMPLE.COM ").id == owner.id
    assert repo.email_exists("olive@example.com")
    assert not repo.email_exists("other@example.com")
