"""Configuration management for the Book Network server.

Settings are read from ``BOOK_NETWORK_*`` environment variables (or a
``.env`` file) and validated with Pydantic v2:
1. Server metadata - name and version announced to MCP clients
2. Persistence - database and upload locations
3. Security - JWT signing and activation code policy
4. Mail - which email backend delivers activation codes
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """Book Network server configuration.

    Every field can be overridden with an environment variable using the
    ``BOOK_NETWORK_`` prefix, e.g. ``BOOK_NETWORK_JWT_SECRET_KEY``.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOK_NETWORK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="book-network",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Persistence ===

    database_path: Path = Field(
        default=Path("data/book_network.db"),
        description="SQLite database file path",
    )

    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Root directory for uploaded book covers",
    )

    # === Transport ===

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^(stdio|streamable_http)$",
    )

    http_host: str = Field(default="127.0.0.1", description="Streamable HTTP host")

    http_port: int = Field(
        default=8080,
        description="Streamable HTTP port",
        ge=1024,
        le=65535,
    )

    # === Security ===

    jwt_secret_key: str = Field(
        default="change-me-book-network-secret-key-32b",
        description="HMAC secret used to sign session tokens",
        min_length=32,
        repr=False,
    )

    jwt_expiration_minutes: int = Field(
        default=24 * 60,
        description="Session token lifetime in minutes",
        ge=1,
    )

    activation_code_length: int = Field(
        default=6,
        description="Number of digits in an activation code",
        ge=4,
        le=12,
    )

    activation_code_ttl_minutes: int = Field(
        default=15,
        description="Minutes an activation code stays valid",
        ge=1,
    )

    activation_url: str = Field(
        default="http://localhost:4200/activate-account",
        description="Front-end page linked from the activation email",
    )

    # === Mail ===

    mail_backend: str = Field(
        default="log",
        description="Email backend: 'log' writes messages to the log, 'smtp' delivers them",
        pattern=r"^(log|smtp)$",
    )

    smtp_host: str = Field(default="localhost")
    smtp_port: int = Field(default=1025, ge=1, le=65535)
    smtp_username: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None, repr=False)
    smtp_use_tls: bool = Field(default=False)
    mail_sender: str = Field(default="no-reply@book-network.local")

    # === Listing ===

    max_page_size: int = Field(
        default=100,
        description="Largest page size accepted by listing tools",
        ge=1,
        le=100,
    )

    # === Development ===

    debug: bool = Field(default=False, description="Enable debug logging")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("database_path", "upload_dir")
    @classmethod
    def ensure_directory(cls, v: Path, info) -> Path:
        """Resolve to an absolute path and create the directory it lives in."""
        abs_path = v.absolute()
        directory = abs_path.parent if info.field_name == "database_path" else abs_path
        directory.mkdir(parents=True, exist_ok=True)
        if not directory.is_dir():
            raise ValueError(f"Directory {directory} is not accessible")
        return abs_path

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        """Keep server names short enough for client display."""
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    def get_database_url(self) -> str:
        """SQLAlchemy URL of the configured SQLite file."""
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = ServerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def set_config(config: ServerConfig) -> None:
    """Install an explicit configuration (used by tests and scripts)."""
    _ConfigStore._instance = config  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration so the next access re-reads the environment."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
