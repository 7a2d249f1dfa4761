"""
Repository pattern implementation for the Book Network server.

Repositories keep SQLAlchemy out of the services: each one exposes the
handful of typed queries its service needs, plus the shared primitives
defined here (lookup by id, add-and-commit, and pagination into the
``PageResponse`` envelope every listing tool returns).
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from ..exceptions import NotFoundError, RepositoryException
from .schema import Base
from .session import safe_commit, safe_flush, safe_query

ModelType = TypeVar("ModelType", bound=Base)
ItemType = TypeVar("ItemType")

__all__ = [
    "BaseRepository",
    "NotFoundError",
    "PageRequest",
    "PageResponse",
    "RepositoryException",
]


class PageRequest(BaseModel):
    """Zero-based page index and page size for listing operations."""

    page: int = Field(default=0, ge=0, description="Page index (0-based)")
    size: int = Field(default=10, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return self.page * self.size


class PageResponse(BaseModel, Generic[ItemType]):
    """
    Uniform pagination envelope.

    ``is_first`` is true on page 0; ``is_last`` is true only on the final page
    (and on an empty result, which has no pages at all). A page past the end
    is not last.
    """

    items: list[ItemType]
    page_number: int
    page_size: int
    total_elements: int
    total_pages: int
    is_first: bool
    is_last: bool

    @classmethod
    def build(
        cls, items: list[ItemType], page_request: PageRequest, total_elements: int
    ) -> "PageResponse[ItemType]":
        total_pages = math.ceil(total_elements / page_request.size)
        return cls(
            items=items,
            page_number=page_request.page,
            page_size=page_request.size,
            total_elements=total_elements,
            total_pages=total_pages,
            is_first=page_request.page == 0,
            is_last=total_pages == 0 or page_request.page == total_pages - 1,
        )


class BaseRepository(ABC, Generic[ModelType]):
    """
    Abstract base repository over one mapped class.

    Methods return ORM entities; services map them to response models so
    they can mutate and save the same objects they loaded.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    def get_by_id(self, id: int) -> ModelType | None:
        """Return the entity with ``id`` or None."""
        return safe_query(
            self.session,
            lambda s: s.get(self.model_class, id),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def add(self, db_obj: ModelType, operation: str | None = None) -> ModelType:
        """Insert a new entity, commit, and return it refreshed."""
        self.session.add(db_obj)
        safe_commit(self.session, operation or f"create {self.model_class.__name__}")
        self.session.refresh(db_obj)
        return db_obj

    def stage(self, db_obj: ModelType, operation: str | None = None) -> ModelType:
        """Insert a new entity and flush it so it has an id; the caller commits."""
        self.session.add(db_obj)
        safe_flush(self.session, operation or f"create {self.model_class.__name__}")
        return db_obj

    def save(self, db_obj: ModelType, operation: str | None = None) -> ModelType:
        """Commit pending changes on an already loaded entity."""
        safe_commit(self.session, operation or f"update {self.model_class.__name__}")
        self.session.refresh(db_obj)
        return db_obj

    def _paginate(
        self,
        query: Select,
        page_request: PageRequest,
        mapper: Callable[[ModelType], ItemType],
    ) -> PageResponse[ItemType]:
        """Run ``query`` for one page and wrap the mapped rows in the envelope."""
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (
            safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to count total for pagination",
            )
            or 0
        )

        page_query = query.offset(page_request.offset).limit(page_request.size)
        results = safe_query(
            self.session,
            lambda s: s.execute(page_query).unique().scalars().all(),
            f"Failed to get paginated {self.model_class.__name__} results",
        )

        return PageResponse.build(
            items=[mapper(item) for item in results],
            page_request=page_request,
            total_elements=total,
        )
