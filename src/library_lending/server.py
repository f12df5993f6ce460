"""Library Lending Server - Entry Point

Builds the FastMCP server that exposes the lending engine as tools:
checkout, renewal, return, batch checkout, ledger listing, fee lookup and
fee payment.

Startup sequence:
1. Load configuration from the environment
2. Configure logging (stderr, so stdout stays free for the stdio transport)
3. Create the database schema, optionally loading demo data
4. Register the tools and run the configured transport
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import ServerConfig, get_config
from .database import get_db_manager, seed_database
from .tools import all_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Library Lending Server - check books out to library users, renew and return them, "
    "and settle late fees. Each book can be renewed once per loan; late returns are "
    "charged per overdue day; fees can only be paid in full."
)


def configure_logging(config: ServerConfig) -> None:
    """Send log output to stderr at the configured level."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.is_development:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)


# =============================================================================
# SERVER CONSTRUCTION
# =============================================================================


def create_server(config: ServerConfig | None = None) -> FastMCP:
    """Create the FastMCP server and register every lending tool."""
    config = config or get_config()

    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=INSTRUCTIONS,
    )

    for tool in all_tools:
        logger.debug("Registering tool: %s", tool["name"])
        try:
            mcp.tool(
                name=tool["name"],
                description=tool["description"],
            )(tool["handler"])
        except Exception:
            logger.exception("Failed to register tool %s", tool["name"])
            raise

    logger.info("Registered %d tools", len(all_tools))
    return mcp


def prepare_database(config: ServerConfig) -> None:
    """Create the schema; with ``seed_on_startup`` start from a fresh demo dataset."""
    db_manager = get_db_manager(config.get_database_url())

    if not db_manager.verify_connection():
        raise RuntimeError(f"Cannot connect to database at {config.database_path}")

    db_manager.init_database(drop_existing=config.seed_on_startup)
    if config.seed_on_startup:
        with db_manager.session_scope() as session:
            seed_database(session)


# =============================================================================
# TRANSPORT
# =============================================================================


def run_server(mcp: FastMCP, config: ServerConfig) -> None:
    """Run the server on the configured transport until terminated."""

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        get_db_manager().close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if config.transport == "stdio":
        logger.info("Starting %s v%s on stdio", config.server_name, config.server_version)
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting %s v%s on http://%s:%d",
            config.server_name,
            config.server_version,
            config.http_host,
            config.http_port,
        )
        mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)


def main() -> None:
    """Entry point for the ``library-lending`` console script."""
    config = get_config()
    configure_logging(config)

    try:
        logger.info("=" * 60)
        logger.info("Library Lending Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        prepare_database(config)
        run_server(create_server(config), config)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start server")
        sys.exit(1)
    finally:
        get_db_manager().close()


if __name__ == "__main__":
    main()
