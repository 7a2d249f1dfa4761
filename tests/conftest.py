"""Test configuration and fixtures for the Book Network MCP Server.

1. Isolated databases - each test gets a fresh in-memory SQLite database
   with the default roles already created
2. Configuration overrides - a test ``ServerConfig`` installed globally so
   tool handlers pick up the temporary upload directory and JWT secret
3. Collaborators - an email sender that records messages instead of
   sending them, and file storage rooted in ``tmp_path``
4. Factories - members, books and session tokens
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path

import logfire
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from book_network.config import ServerConfig, reset_config, set_config
from book_network.database.schema import Base, Book, Role, User
from book_network.database.session import seed_roles
from book_network.models.user import Identity
from book_network.notifications import EmailSender
from book_network.security import TokenService, hash_password
from book_network.storage import LocalFileStorage

TEST_PASSWORD = "correct-horse-battery"
TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture(scope="session", autouse=True)
def configure_logfire():
    """Keep spans local during tests."""
    logfire.configure(send_to_logfire=False, console=False)


# === Configuration Fixtures ===


@pytest.fixture(autouse=True)
def test_config(tmp_path: Path) -> Generator[ServerConfig, None, None]:
    """Install an isolated configuration for the duration of one test."""
    reset_config()
    config = ServerConfig(
        _env_file=None,
        server_name="test-book-network",
        server_version="0.0.1-test",
        database_path=tmp_path / "test_book_network.db",
        upload_dir=tmp_path / "uploads",
        jwt_secret_key=TEST_SECRET,
        jwt_expiration_minutes=30,
        activation_url="http://testserver/activate",
        debug=True,
        log_level="DEBUG",
    )
    set_config(config)

    yield config

    reset_config()


# === Database Fixtures ===


@pytest.fixture
def test_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with foreign keys enforced."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_session(test_engine: Engine) -> Generator[Session, None, None]:
    """Session over the test engine with the default roles seeded."""
    session_local = sessionmaker(
        bind=test_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = session_local()
    seed_roles(session)
    session.commit()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mock_get_session(test_session, monkeypatch):
    """Make every tool module use the test session.

    Tool handlers open their own session with ``get_session``; patching it
    lets them see the data the test created.
    """

    @contextmanager
    def _mock_get_session():
        """Return the test session instead of creating a new one."""
        yield test_session

    for module in ("auth", "books", "loans"):
        monkeypatch.setattr(f"book_network.tools.{module}.get_session", _mock_get_session)

    return test_session


# === Collaborator Fixtures ===


class RecordingEmailSender(EmailSender):
    """Renders emails like the real senders but keeps them in memory."""

    def __init__(self):
        self.sent: list[dict[str, str]] = []
        self.codes: list[str] = []

    def send(self, to, username, template, confirmation_url, activation_code, subject):
        self.codes.append(activation_code)
        super().send(to, username, template, confirmation_url, activation_code, subject)

    def deliver(self, to: str, subject: str, html_body: str) -> None:
        self.sent.append({"to": to, "subject": subject, "body": html_body})

    @property
    def last_code(self) -> str:
        return self.codes[-1]


@pytest.fixture
def password() -> str:
    """Password every factory-made member logs in with."""
    return TEST_PASSWORD


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def file_storage(test_config: ServerConfig) -> LocalFileStorage:
    return LocalFileStorage(test_config.upload_dir)


@pytest.fixture
def token_service(test_config: ServerConfig) -> TokenService:
    return TokenService(test_config.jwt_secret_key, test_config.jwt_expiration_minutes)


# === Factories ===


@pytest.fixture
def make_user(test_session: Session) -> Callable[..., User]:
    """Create a member; enabled and unlocked unless told otherwise."""
    counter = {"n": 0}

    def _make_user(
        first_name: str = "Test",
        last_name: str | None = None,
        email: str | None = None,
        password: str = TEST_PASSWORD,
        enabled: bool = True,
        account_locked: bool = False,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            first_name=first_name,
            last_name=last_name or f"Member{n}",
            email=email or f"member{n}@example.com",
            password_hash=hash_password(password),
            enabled=enabled,
            account_locked=account_locked,
        )
        user.roles.append(test_session.query(Role).filter_by(name="USER").one())
        test_session.add(user)
        test_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_book(test_session: Session) -> Callable[..., Book]:
    """Create a book owned by ``owner``; shareable and not archived by default."""

    def _make_book(
        owner: User,
        title: str = "The Left Hand of Darkness",
        shareable: bool = True,
        archived: bool = False,
        **fields,
    ) -> Book:
        book = Book(
            title=title,
            author_name=fields.pop("author_name", "Ursula K. Le Guin"),
            isbn=fields.pop("isbn", "9780441478125"),
            synopsis=fields.pop("synopsis", None),
            shareable=shareable,
            archived=archived,
            owner_id=owner.id,
            **fields,
        )
        test_session.add(book)
        test_session.commit()
        return book

    return _make_book


def identity_of(user: User) -> Identity:
    return Identity(user_id=user.id, full_name=user.full_name, email=user.email)


@pytest.fixture
def identity() -> Callable[[User], Identity]:
    """Build the ``Identity`` a service receives for ``user``."""
    return identity_of


@pytest.fixture
def token_for(token_service: TokenService) -> Callable[[User], str]:
    """Issue a session token for ``user`` the way ``authenticate`` does."""

    def _token_for(user: User) -> str:
        return token_service.generate(
            subject=str(user.id),
            claims={"email": user.email, "fullName": user.full_name, "authorities": ["USER"]},
        )

    return _token_for


# === Common Scenario Fixtures ===


@pytest.fixture
def owner(make_user) -> User:
    return make_user(first_name="Olive", last_name="Owner", email="olive@example.com")


@pytest.fixture
def borrower(make_user) -> User:
    return make_user(first_name="Bruno", last_name="Borrower", email="bruno@example.com")


@pytest.fixture
def shared_book(make_book, owner) -> Book:
    return make_book(owner)
