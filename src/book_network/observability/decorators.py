"""Decorators for tracing MCP tool handlers."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire

# Never copied onto spans
SENSITIVE_ARGUMENTS = frozenset({"token", "password", "content"})

ACCOUNT_TOOLS = frozenset({"register", "activate_account", "authenticate"})
LOAN_TOOLS = frozenset(
    {"borrow_book", "return_book", "approve_return", "list_borrowed_books", "list_returned_books"}
)


def trace_tool(tool_name: str):
    """Decorator to trace MCP tool execution.

    The wrapped handler takes the raw ``arguments`` dict and returns an MCP
    result dict; ``isError`` results are recorded as failed calls.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any], *args, **kwargs):
            with logfire.span(
                "tool.execution.{tool_name}",
                _span_name=f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", arguments)

                try:
                    result = await func(arguments, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                span.set_attribute("tool.success", not result.get("isError", False))
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                if "errorKind" in result:
                    span.set_attribute("tool.error_kind", result["errorKind"])
                _add_tool_result_metrics(span, result)
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    """Categorize tools for better organization."""
    if tool_name in ACCOUNT_TOOLS:
        return "accounts"
    if tool_name in LOAN_TOOLS:
        return "loans"
    return "catalog"


def _add_attributes(span, prefix: str, data: dict):
    for key, value in data.items():
        if key in SENSITIVE_ARGUMENTS:
            continue
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)


def _add_tool_result_metrics(span, result: dict[str, Any]):
    """Record page sizes for listing tools."""
    data = result.get("data") or {}
    if "total_elements" in data:
        span.set_attribute("result.total_elements", data["total_elements"])
        span.set_attribute("result.item_count", len(data.get("items", [])))
