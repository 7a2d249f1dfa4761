"""
FastMCP registration for the tool dictionaries in ``book_network.tools``.

Handlers take the raw argument dict and validate it themselves, so each tool
is published with the JSON schema of its input model rather than a schema
inferred from the handler signature.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from fastmcp.tools import Tool, ToolResult
from pydantic.json_schema import SkipJsonSchema

ToolHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


def to_tool_result(result: dict[str, Any]) -> ToolResult:
    """Convert a handler result dict into the FastMCP result type."""
    text = "\n".join(block["text"] for block in result.get("content", []))
    if result.get("isError"):
        return ToolResult(
            content=text,
            structured_content={"errorKind": result["errorKind"]},
            is_error=True,
        )
    return ToolResult(content=text, structured_content=result.get("data"))


class HandlerTool(Tool):
    """Tool that hands the client's arguments to a ``*_handler`` unchanged."""

    handler: SkipJsonSchema[ToolHandler]

    @classmethod
    def from_definition(cls, definition: dict[str, Any]) -> "HandlerTool":
        return cls(
            name=definition["name"],
            description=definition["description"],
            parameters=definition["inputSchema"],
            handler=definition["handler"],
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        return to_tool_result(await self.handler(arguments))
