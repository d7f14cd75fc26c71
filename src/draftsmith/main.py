#!/usr/bin/env python
"""Main entry point for the Draftsmith hierarchy server."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from draftsmith import __version__
from draftsmith.config import config
from draftsmith.models.db_models import create_db_engine, drop_db, init_db
from draftsmith.observability import configure_logging, metrics


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Draftsmith hierarchy server")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve", "init", "drop"],
        default="serve",
        help="serve: run the MCP server (default); init: create tables; "
        "drop: delete all tables",
    )
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("DRAFTSMITH_DATABASE_PATH"),
    )
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (overrides --database-path)",
        type=str,
        default=os.environ.get("DRAFTSMITH_DATABASE_URL"),
    )
    parser.add_argument(
        "--sibling-order",
        help="Ordering of roots and siblings in tree views",
        choices=["insertion", "label"],
        default=None,
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("DRAFTSMITH_LOG_LEVEL", "INFO"),
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.database_url:
        config.database_url = args.database_url
    if args.sibling_order:
        config.sibling_order = args.sibling_order
    config.log_level = args.log_level


def _save_metrics_on_exit():
    """Save metrics to disk on server shutdown."""
    try:
        if metrics.save_metrics():
            logging.getLogger(__name__).info("Metrics saved to disk on shutdown")
    except Exception as e:
        logging.getLogger(__name__).warning(f"Failed to save metrics on shutdown: {e}")


def main(argv=None):
    """Run the Draftsmith command line."""
    args = parse_args(argv)
    update_config(args)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    try:
        engine = create_db_engine()
        logger.info(f"Using database: {engine.url.render_as_string(hide_password=True)}")
        if args.command == "drop":
            drop_db(engine)
            logger.info("Dropped all Draftsmith tables")
            return 0
        init_db(engine)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1

    if args.command == "init":
        logger.info("Database schema is up to date")
        return 0

    atexit.register(_save_metrics_on_exit)

    # Imported here so init/drop do not pull in the MCP stack
    from draftsmith.server.mcp_server import DraftsmithMcpServer

    try:
        logger.info("Starting Draftsmith MCP server")
        server = DraftsmithMcpServer(engine=engine)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
