"""
Account operations for the Book Network server.

Registration creates a disabled user and emails a numeric activation code.
Redeeming the code enables the account; an expired code is discarded and a
fresh one is sent instead. Enabled users log in for a signed session token,
which every other tool exchanges for an ``Identity``.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..config import ServerConfig
from ..database.schema import User as UserDB
from ..database.session import safe_commit
from ..database.user_repository import (
    ActivationTokenRepository,
    RoleRepository,
    UserRepository,
)
from ..exceptions import (
    ActivationCodeExpiredError,
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    NotificationError,
    RepositoryException,
)
from ..models.user import (
    AuthenticationRequest,
    AuthenticationResponse,
    Identity,
    RegistrationRequest,
)
from ..notifications import EmailSender, EmailTemplate
from ..observability import record_account_event, trace_repository_operation
from ..security import TokenService, generate_activation_code, hash_password, verify_password

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "USER"
ACTIVATION_SUBJECT = "Account activation"
BAD_CREDENTIALS = "Bad credentials"


class AuthService:
    """Registration, activation, login and session-token resolution."""

    def __init__(
        self,
        session: Session,
        config: ServerConfig,
        email_sender: EmailSender,
        token_service: TokenService,
    ):
        self.session = session
        self.config = config
        self.email_sender = email_sender
        self.token_service = token_service
        self.users = UserRepository(session)
        self.roles = RoleRepository(session)
        self.tokens = ActivationTokenRepository(session)

    def register(self, request: RegistrationRequest) -> int:
        """
        Create a disabled account and send its activation code.

        Returns:
            The new user's id

        Raises:
            ConflictError: If the email is already registered
            RepositoryException: If the default role has not been created
            NotificationError: If the activation email cannot be sent
        """
        with trace_repository_operation("users", "register"):
            if self.users.email_exists(request.email):
                raise ConflictError(f"An account already exists for {request.email}")

            role = self.roles.get_by_name(DEFAULT_ROLE)
            if role is None:
                raise RepositoryException(f"Role {DEFAULT_ROLE} was not initialized")

            user = UserDB(
                first_name=request.first_name,
                last_name=request.last_name,
                email=request.email,
                password_hash=hash_password(request.password),
                date_of_birth=request.date_of_birth,
                account_locked=False,
                enabled=False,
            )
            user.roles.append(role)
            self.users.stage(user, "register user")
            self._send_activation_email(user, "register user")

        logger.info("Registered user %s <%s>", user.id, user.email)
        record_account_event("register")
        return user.id

    def activate(self, code: str) -> None:
        """
        Redeem an activation code and enable its account.

        Raises:
            NotFoundError: If the code is unknown
            InvalidInputError: If the code was already redeemed
            ActivationCodeExpiredError: If the code is past its expiry; a new one
                has been sent by the time this is raised
        """
        with trace_repository_operation("activation_tokens", "activate"):
            token = self.tokens.get_by_code(code)
            if token is None:
                raise NotFoundError("Invalid activation code")
            if token.validated_at is not None:
                raise InvalidInputError("Activation code has already been used")

            user = token.user
            if _now() > token.expires_at:
                logger.info("Activation code for user %s expired, sending a new one", user.id)
                self.tokens.delete(token)
                self._send_activation_email(user, "reissue activation code")
                raise ActivationCodeExpiredError(
                    "Activation code has expired. "
                    "A new code has been sent to the same email address"
                )

            user.enabled = True
            token.validated_at = _now()
            safe_commit(self.session, "activate account")

        logger.info("Activated account for user %s", user.id)
        record_account_event("activate")

    def authenticate(self, request: AuthenticationRequest) -> AuthenticationResponse:
        """
        Check credentials and issue a session token.

        Raises:
            AuthenticationError: If the credentials are wrong or the account is
                disabled or locked
        """
        with trace_repository_operation("users", "authenticate"):
            user = self.users.get_by_email(request.email)
            if user is None or not verify_password(user.password_hash, request.password):
                logger.info("Failed login for %s", request.email)
                raise AuthenticationError(BAD_CREDENTIALS)
            _check_account_usable(user)

        token = self.token_service.generate(
            subject=str(user.id),
            claims={
                "email": user.email,
                "fullName": user.full_name,
                "authorities": [role.name for role in user.roles],
            },
        )
        logger.info("User %s logged in", user.id)
        record_account_event("authenticate")
        return AuthenticationResponse(
            token=token, expires_in=self.token_service.expires_in_seconds
        )

    def resolve_identity(self, token: str) -> Identity:
        """
        Verify a session token and load the caller it names.

        Raises:
            AuthenticationError: If the token is invalid or expired, or the user
                no longer exists or can no longer log in
        """
        claims = self.token_service.decode(token)
        try:
            user_id = int(claims["sub"])
        except (TypeError, ValueError) as e:
            raise AuthenticationError("Invalid session token") from e

        user = self.users.get_by_id(user_id)
        if user is None:
            raise AuthenticationError("Invalid session token")
        _check_account_usable(user)
        return Identity(user_id=user.id, full_name=user.full_name, email=user.email)

    def _generate_unique_code(self) -> str:
        while True:
            code = generate_activation_code(self.config.activation_code_length)
            if not self.tokens.code_exists(code):
                return code

    def _send_activation_email(self, user: UserDB, operation: str) -> None:
        """
        Issue a code for ``user``, email it, then commit the pending work.

        Nothing is committed unless the email goes out.
        """
        created_at = _now()
        token = self.tokens.create(
            user,
            code=self._generate_unique_code(),
            created_at=created_at,
            expires_at=created_at + timedelta(minutes=self.config.activation_code_ttl_minutes),
        )
        email = user.email
        try:
            self.email_sender.send(
                to=email,
                username=user.full_name,
                template=EmailTemplate.ACTIVATE_ACCOUNT,
                confirmation_url=self.config.activation_url,
                activation_code=token.code,
                subject=ACTIVATION_SUBJECT,
            )
        except NotificationError:
            self.session.rollback()
            logger.warning("Activation email to %s failed, %s rolled back", email, operation)
            raise
        safe_commit(self.session, operation)


def _now() -> datetime:
    return datetime.now()


def _check_account_usable(user: UserDB) -> None:
    if not user.enabled:
        raise AuthenticationError("User account is not activated")
    if user.account_locked:
        raise AuthenticationError("User account is locked")
