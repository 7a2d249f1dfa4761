"""
Account models for the Book Network server.

Request models validate registration and login input before any database
work happens; ``Identity`` is the verified caller that every book and loan
operation receives explicitly.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class Identity(BaseModel):
    """The authenticated caller, resolved from a session token."""

    model_config = ConfigDict(frozen=True)

    user_id: int = Field(..., description="Database id of the caller")
    full_name: str = Field(..., description="Display name")
    email: str = Field(..., description="Login email")


class RegistrationRequest(BaseModel):
    """New member sign-up data."""

    first_name: str = Field(
        ...,
        description="Given name",
        min_length=1,
        max_length=100,
        examples=["Jane"],
    )

    last_name: str = Field(
        ...,
        description="Family name",
        min_length=1,
        max_length=100,
        examples=["Doe"],
    )

    email: EmailStr = Field(
        ...,
        description="Email address that receives the activation code",
        examples=["jane.doe@example.com"],
    )

    password: str = Field(
        ...,
        description="Plain-text password, hashed before storage",
        min_length=8,
        max_length=128,
    )

    date_of_birth: date | None = Field(None, description="Optional birth date")

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Name cannot be blank")
        return stripped

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class AuthenticationRequest(BaseModel):
    """Login credentials."""

    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=8, max_length=128, description="Password")


class AuthenticationResponse(BaseModel):
    """Session token returned by a successful login."""

    token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class UserResponse(BaseModel):
    """Public view of a registered user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    enabled: bool
    account_locked: bool
