"""
SQLAlchemy database schema for the Book Network server.

Tables:
- users / roles / user_roles: registered members and their authorities
- activation_tokens: short-lived codes that prove control of an email address
- books: titles owned and shared by members
- loans: one row per borrow event, walking BORROWED -> RETURNED -> CLOSED
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

Base = declarative_base()


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id"), primary_key=True),
)


class Role(Base):
    """Roles table - authorities granted to users (``USER`` by default)."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)

    created_at = Column(DateTime, nullable=False, default=func.now())

    users = relationship("User", secondary=user_roles, back_populates="roles")


class User(Base):
    """
    Users table - registered members.

    A user stays disabled until the emailed activation code is redeemed.
    Books are linked through ``Book.owner_id``; loans through ``Loan.user_id``.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    account_locked = Column(Boolean, nullable=False, default=False)
    enabled = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    roles = relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")
    books = relationship("Book", back_populates="owner")
    loans = relationship("Loan", back_populates="user")
    activation_tokens = relationship(
        "ActivationToken", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_user_email", "email"),)

    @validates("email")
    def normalize_email(self, key, value):  # noqa: ARG002
        """Store emails lower-cased so lookups are case-insensitive."""
        return value.strip().lower() if value else value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ActivationToken(Base):
    """Activation codes issued at registration (and re-issued on expiry)."""

    __tablename__ = "activation_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(20), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    validated_at = Column(DateTime, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    user = relationship("User", back_populates="activation_tokens")

    __table_args__ = (
        Index("idx_activation_code", "code"),
        CheckConstraint("expires_at > created_at", name="check_token_expiry_after_creation"),
    )


class Book(Base):
    """
    Books table - titles listed by their owners.

    A book can be borrowed only while ``shareable`` is true and ``archived``
    is false. Both flags are toggled by the owner; rows are never deleted.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, index=True)
    author_name = Column(String(200), nullable=False)
    isbn = Column(String(20), nullable=False)
    synopsis = Column(Text, nullable=True)
    cover = Column(String(500), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    shareable = Column(Boolean, nullable=False, default=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="books")
    loans = relationship("Loan", back_populates="book")

    __table_args__ = (
        Index("idx_book_owner", "owner_id"),
        Index("idx_book_displayable", "archived", "shareable"),
        Index("idx_book_created", "created_at"),
    )


class Loan(Base):
    """
    Loans table - the borrow transaction history.

    ``returned`` and ``return_approved`` encode the state:
    (False, False) BORROWED, (True, False) RETURNED, (True, True) CLOSED.
    The partial unique index keeps a single open loan per book and borrower.
    """

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    returned = Column(Boolean, nullable=False, default=False)
    return_approved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book", back_populates="loans", lazy="joined")
    user = relationship("User", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_borrower", "user_id"),
        Index("idx_loan_book", "book_id"),
        Index(
            "uq_open_loan",
            "book_id",
            "user_id",
            unique=True,
            sqlite_where=text("return_approved = 0"),
            postgresql_where=text("return_approved = false"),
        ),
        CheckConstraint(
            "returned OR NOT return_approved", name="check_approval_requires_return"
        ),
    )
