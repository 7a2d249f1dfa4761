#!/usr/bin/env python3
"""
Initialize the Book Network database.

This script:
1. Creates all database tables and the default roles
2. Optionally loads Faker-generated sample members, books and loans
3. Verifies the database is ready for MCP server use

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from book_network.database import Base, get_db_manager
from book_network.database.seed import SAMPLE_PASSWORD, seed_sample_data

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Book Network MCP Server database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )
    parser.add_argument(
        "--users",
        type=int,
        default=5,
        help="Number of sample users to create (with --sample-data)",
    )

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample data...")
            with db_manager.session_scope() as session:
                counts = seed_sample_data(session, num_users=args.users)
            logger.info(
                "Loaded %(users)d users, %(books)d books and %(loans)d loans", counts
            )
            logger.info("Sample users log in with the password '%s'", SAMPLE_PASSWORD)

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Created tables: %s", ", ".join(sorted(tables)))

        missing_tables = set(Base.metadata.tables) - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", missing_tables)
            sys.exit(1)

        logger.info("Database initialization complete. The Book Network server is ready to use.")

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
