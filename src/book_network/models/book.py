"""
Book models for the Book Network server.

``BookRequest`` validates what an owner submits when listing a book;
``BookResponse`` is what every catalog tool returns.
"""

import base64

from pydantic import BaseModel, Field, field_serializer, field_validator


class BookRequest(BaseModel):
    """Data an owner provides when adding a book to their shelf."""

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby"],
    )

    author_name: str = Field(
        ...,
        description="Author as printed on the cover",
        min_length=1,
        max_length=200,
        examples=["F. Scott Fitzgerald"],
    )

    isbn: str = Field(
        ...,
        description="ISBN-10 or ISBN-13, hyphens allowed",
        pattern=r"^[0-9Xx-]{10,17}$",
        examples=["978-0-7432-7356-5", "9780743273565"],
    )

    synopsis: str | None = Field(
        None,
        description="Short summary shown to borrowers",
        max_length=2000,
    )

    shareable: bool = Field(
        default=False,
        description="Whether other members may borrow the book straight away",
    )

    @field_validator("title", "author_name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Value cannot be blank")
        return stripped

    @field_validator("isbn")
    @classmethod
    def normalize_isbn(cls, v: str) -> str:
        """Normalize ISBN by removing hyphens for consistent storage."""
        normalized = v.replace("-", "").upper()
        if len(normalized) not in (10, 13):
            raise ValueError("ISBN must be 10 or 13 characters")
        return normalized


class BookResponse(BaseModel):
    """A book as shown to members."""

    id: int
    title: str
    author_name: str
    isbn: str
    synopsis: str | None = None
    owner: str = Field(..., description="Owner's full name")
    owner_id: int
    cover: bytes | None = Field(None, description="Cover image content, if uploaded")
    archived: bool
    shareable: bool

    @field_serializer("cover", when_used="json")
    def serialize_cover(self, cover: bytes | None) -> str | None:
        """Covers travel as standard base64 in JSON."""
        return base64.b64encode(cover).decode("ascii") if cover is not None else None
