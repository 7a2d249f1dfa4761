"""
Database session management for the Book Network server.

Every tool call works inside one short-lived session:

1. Sessions are created per request and closed when the call finishes
2. Repositories commit through ``safe_commit`` so failures roll back; work
   that waits on a side effect is flushed with ``safe_flush`` first
3. Driver errors are converted into ``RepositoryException``/``ConflictError``
   before they reach the tool layer
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..exceptions import ConflictError, RepositoryException
from .schema import Base, Role

logger = logging.getLogger(__name__)

DEFAULT_ROLES = ("USER",)


class DatabaseManager:
    """
    Owns the engine and session factory for one database URL.

    The engine is built lazily so importing the package never touches disk.
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the configured
                SQLite file.
        """
        if database_url is None:
            database_url = get_config().get_database_url()
            logger.info("Using SQLite database at: %s", database_url)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                self._engine = create_engine(
                    self.database_url,
                    # Single shared connection avoids "database is locked"
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False,
                )

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a new database session. Callers must close it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            book = session.get(Book, book_id)
        # committed on success, rolled back on error
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the schema and the default roles.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)

        with self.session_scope() as session:
            seed_roles(session)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine. Called when the server shuts down."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


def seed_roles(session: Session) -> None:
    """Insert any missing default roles."""
    existing = set(session.execute(select(Role.name)).scalars().all())
    for name in DEFAULT_ROLES:
        if name not in existing:
            session.add(Role(name=name))
            logger.info("Created role %s", name)
    session.flush()


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose of the global manager so the next call builds a fresh one."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """
    Get a new database session.

    Usable as a context manager (``with get_session() as session``), which
    closes the session on exit without committing.
    """
    return get_db_manager().create_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Convenience wrapper around the global manager's ``session_scope``."""
    with get_db_manager().session_scope() as session:
        yield session


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit a session, rolling back and translating failures.

    Args:
        session: The database session
        operation: Description of the operation (for error messages)

    Raises:
        ConflictError: If a unique or integrity constraint rejects the commit
        RepositoryException: For any other database failure
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(f"Database operation '{operation}' conflicts with existing data") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryException(f"Database operation '{operation}' failed: {e!s}") from e


def safe_flush(session: Session, operation: str) -> None:
    """
    Flush pending changes without committing.

    Used when a unit of work must wait for a side effect (such as an email)
    before it is committed. Failures roll back like ``safe_commit``.

    Raises:
        ConflictError: If a unique or integrity constraint rejects the flush
        RepositoryException: For any other database failure
    """
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError(f"Database operation '{operation}' conflicts with existing data") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryException(f"Database operation '{operation}' failed: {e!s}") from e


def safe_query[T](session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, translating driver failures.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Error message prefix for the raised exception

    Raises:
        RepositoryException: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise RepositoryException(f"{error_msg}: Database query failed") from e
