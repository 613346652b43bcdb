"""
PostgreSQL connection helper.
Provides get_db() for use by the entity stores.
"""

import logging
import os

import psycopg2
from psycopg2.extras import RealDictCursor, register_uuid
from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

# UUID and UUID[] columns come back as uuid.UUID objects
register_uuid()


def get_database_url() -> str:
    """
    Read the connection string from the environment.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")
    return url


def get_db():
    """
    Returns a new psycopg2 connection with dictionary-based row access.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Note that leaving the `with conn` block commits (or rolls back) the
    transaction but does not close the connection; callers close it.

    Returns:
        psycopg2.extensions.connection: A connection object with RealDictCursor factory.

    Raises:
        psycopg2.Error: If connection fails.
    """
    try:
        conn = psycopg2.connect(get_database_url())
        conn.cursor_factory = RealDictCursor
        return conn
    except psycopg2.Error:
        logging.exception("Error connecting to database")
        raise
