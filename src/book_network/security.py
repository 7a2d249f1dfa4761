"""
Credential and session-token helpers.

Passwords are hashed with ``werkzeug.security``; session tokens are HS256
JWTs issued by ``TokenService`` and carry the user id as ``sub``.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def generate_activation_code(length: int = 6) -> str:
    """Return a numeric code drawn from a cryptographically secure source."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(self, secret_key: str, expiration_minutes: int):
        self.secret_key = secret_key
        self.expiration = timedelta(minutes=expiration_minutes)

    @property
    def expires_in_seconds(self) -> int:
        return int(self.expiration.total_seconds())

    def generate(self, subject: str, claims: dict[str, Any] | None = None) -> str:
        now = datetime.now(UTC)
        payload = {
            **(claims or {}),
            "sub": subject,
            "iat": now,
            "exp": now + self.expiration,
        }
        return jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify signature and expiry and return the claims.

        Raises:
            AuthenticationError: If the token is expired, tampered with or malformed
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Session token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.info("Rejected session token: %s", e)
            raise AuthenticationError("Invalid session token") from e
