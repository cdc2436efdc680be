"""SQLite connection manager for the favorites store."""

import logging
import sqlite3
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS favorites (
    identity TEXT PRIMARY KEY,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    name TEXT NOT NULL,
    display_name TEXT NOT NULL,
    city TEXT,
    county TEXT,
    state TEXT NOT NULL,
    country TEXT NOT NULL,
    country_code TEXT NOT NULL DEFAULT '',
    current_temperature REAL,
    current_precipitation_probability INTEGER,
    current_precipitation_amount REAL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


def connect(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open the favorites database, creating the schema if needed.

    The connection may be used from the HTTP server's worker threads;
    the favorite store serializes access to it.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(SCHEMA)
    conn.commit()
    logger.info(f"Opened favorites database at {db_path}")
    return conn
