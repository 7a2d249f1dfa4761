"""
Account tools for the Book Network server.

1. register: create a disabled account and email an activation code
2. activate_account: redeem the code
3. authenticate: exchange email and password for a session token

These are the only tools that do not take a ``token`` argument.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.session import get_session
from ..exceptions import BookNetworkError
from ..models.user import AuthenticationRequest, RegistrationRequest
from ..observability import trace_tool
from .common import (
    build_auth_service,
    failure_result,
    internal_error_result,
    invalid_arguments_result,
    success_result,
)

logger = logging.getLogger(__name__)


class ActivateAccountInput(BaseModel):
    """Input schema for the activate_account tool."""

    code: str = Field(
        ...,
        description="Numeric activation code from the registration email",
        pattern=r"^\d{4,12}$",
        examples=["042917"],
    )


@trace_tool("register")
async def register_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the register tool."""
    try:
        params = RegistrationRequest.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("register", e)

    try:
        with get_session() as session:
            user_id = build_auth_service(session).register(params)
    except BookNetworkError as e:
        return failure_result("register", e)
    except Exception as e:
        return internal_error_result("register", e)

    return success_result(
        f"Registered {params.email}. Check your inbox for the activation code.",
        {"user_id": user_id, "email": params.email, "enabled": False},
    )


@trace_tool("activate_account")
async def activate_account_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the activate_account tool.

    An expired code fails with ``expired``; a replacement code has already
    been emailed by then.
    """
    try:
        params = ActivateAccountInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("activate_account", e)

    try:
        with get_session() as session:
            build_auth_service(session).activate(params.code)
    except BookNetworkError as e:
        return failure_result("activate_account", e)
    except Exception as e:
        return internal_error_result("activate_account", e)

    return success_result("Account activated. You can now log in.", {"activated": True})


@trace_tool("authenticate")
async def authenticate_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the authenticate tool."""
    try:
        params = AuthenticationRequest.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments_result("authenticate", e)

    try:
        with get_session() as session:
            response = build_auth_service(session).authenticate(params)
    except BookNetworkError as e:
        return failure_result("authenticate", e)
    except Exception as e:
        return internal_error_result("authenticate", e)

    return success_result(
        "Logged in. Pass the token to the other tools.",
        response.model_dump(mode="json"),
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

register = {
    "name": "register",
    "description": (
        "Create a member account. The account stays disabled until the code emailed "
        "to the given address is redeemed with activate_account."
    ),
    "inputSchema": RegistrationRequest.model_json_schema(),
    "handler": register_handler,
}

activate_account = {
    "name": "activate_account",
    "description": (
        "Activate an account with the emailed code. If the code has expired a new one "
        "is sent and the call fails with errorKind 'expired'."
    ),
    "inputSchema": ActivateAccountInput.model_json_schema(),
    "handler": activate_account_handler,
}

authenticate = {
    "name": "authenticate",
    "description": "Log in with email and password and receive a session token.",
    "inputSchema": AuthenticationRequest.model_json_schema(),
    "handler": authenticate_handler,
}
