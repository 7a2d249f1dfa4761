"""Logfire observability for the Book Network server."""

import logging

import logfire

from .config import ObservabilityConfig
from .context import trace_repository_operation
from .decorators import trace_tool
from .metrics import record_account_event, record_loan_event

logger = logging.getLogger(__name__)

_config: ObservabilityConfig | None = None


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Configure Logfire once at server start-up."""
    global _config  # noqa: PLW0603
    _config = config or ObservabilityConfig()

    if not _config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=_config.token or None,
        service_name=_config.service_name,
        environment=_config.environment,
        send_to_logfire=_config.send_to_logfire,
        console=False if not _config.console_output else None,
    )
    logger.info(
        "Logfire configured (environment=%s, send=%s)",
        _config.environment,
        _config.send_to_logfire,
    )


def get_observability_config() -> ObservabilityConfig:
    """Get current observability configuration."""
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ObservabilityConfig()
    return _config


__all__ = [
    "ObservabilityConfig",
    "get_observability_config",
    "initialize_observability",
    "record_account_event",
    "record_loan_event",
    "trace_repository_operation",
    "trace_tool",
]
