"""Book Network MCP Server - server assembly and entry point.

Builds the FastMCP instance, registers every tool from
``book_network.tools``, prepares the database and observability, and runs
the configured transport (stdio by default, streamable HTTP optionally).
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .database.session import get_db_manager
from .observability import initialize_observability
from .tools import all_tools
from .tools.registration import HandlerTool

# stderr keeps stdout clean for the stdio transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

config = get_config()

mcp = FastMCP(
    name=config.server_name,
    version=config.server_version,
    instructions=(
        "Book Network - a book-sharing library between members. Register, activate "
        "the account with the emailed code, then authenticate to get a session token. "
        "Pass the token to every other tool to list books, share them, borrow books "
        "other members have shared, return them and approve returns of your own books."
    ),
)

for tool in all_tools:
    logger.debug("Registering tool: %s", tool["name"])
    try:
        mcp.add_tool(HandlerTool.from_definition(tool))
    except Exception:
        logger.exception("Failed to register tool %s", tool["name"])
        raise

logger.info("Registered %d tools", len(all_tools))


def configure_logging() -> None:
    """Apply the configured log level once settings are loaded."""
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level)
    logging.getLogger().setLevel(level)
    if not config.is_development:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)


def prepare_database() -> None:
    """Create tables and default roles if they do not exist yet."""
    db_manager = get_db_manager()
    db_manager.init_database()
    if not db_manager.verify_connection():
        raise RuntimeError(f"Cannot connect to database {db_manager.database_url}")


def run_server() -> None:
    """Run the MCP server on the configured transport."""

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        get_db_manager().close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if config.transport == "stdio":
        logger.info("Starting %s v%s on stdio transport", config.server_name, config.server_version)
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting %s v%s on http://%s:%s",
            config.server_name,
            config.server_version,
            config.http_host,
            config.http_port,
        )
        mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)


def main() -> None:
    """Entry point for ``book-network`` and ``python -m book_network.server``."""
    try:
        configure_logging()
        logger.info("=" * 60)
        logger.info("Book Network MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        initialize_observability()
        prepare_database()
        run_server()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)
    finally:
        get_db_manager().close()


if __name__ == "__main__":
    main()
