"""
User, role and activation-token repositories.

These back the account operations: registration looks up the ``USER`` role
and checks email uniqueness, activation resolves codes, and identity
resolution reloads the user named in a session token.
"""

from datetime import datetime

from sqlalchemy import func, select

from ..database.schema import ActivationToken as ActivationTokenDB
from ..database.schema import Role as RoleDB
from ..database.schema import User as UserDB
from ..database.session import safe_flush, safe_query
from .repository import BaseRepository


class UserRepository(BaseRepository[UserDB]):
    """Repository for registered users."""

    @property
    def model_class(self):
        return UserDB

    def get_by_email(self, email: str) -> UserDB | None:
        """Case-insensitive lookup by email."""
        query = select(UserDB).where(func.lower(UserDB.email) == email.strip().lower())
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get user by email",
        )

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None


class RoleRepository(BaseRepository[RoleDB]):
    """Repository for roles."""

    @property
    def model_class(self):
        return RoleDB

    def get_by_name(self, name: str) -> RoleDB | None:
        query = select(RoleDB).where(RoleDB.name == name)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get role {name}",
        )


class ActivationTokenRepository(BaseRepository[ActivationTokenDB]):
    """Repository for activation codes."""

    @property
    def model_class(self):
        return ActivationTokenDB

    def get_by_code(self, code: str) -> ActivationTokenDB | None:
        query = select(ActivationTokenDB).where(ActivationTokenDB.code == code)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get activation token",
        )

    def code_exists(self, code: str) -> bool:
        return self.get_by_code(code) is not None

    def create(
        self, user: UserDB, code: str, created_at: datetime, expires_at: datetime
    ) -> ActivationTokenDB:
        token = ActivationTokenDB(
            code=code,
            created_at=created_at,
            expires_at=expires_at,
            user_id=user.id,
        )
        return self.stage(token, "create activation token")

    def delete(self, token: ActivationTokenDB) -> None:
        """Remove a code so it can never be redeemed again; the caller commits."""
        self.session.delete(token)
        safe_flush(self.session, "delete activation token")
