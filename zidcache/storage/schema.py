"""Database schema for the zidcache SQLite backend.

Contains:
- Table DDL constants for the three cache tables
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Cold-start detection (has_cache_tables)
- Table creation and destructive reset (create_tables, initialize_remote_tables)

There is no schema versioning: the presence of zrtpIdOwn is the only signal
checked. A partially present schema is treated as corrupt and only an
explicit reset repairs it.
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

OWN_ZID_TABLE = "zrtpIdOwn"
REMOTE_ZID_TABLE = "zrtpIdRemote"
ZID_NAMES_TABLE = "zrtpNames"

# Allowed table names for SQL built with table names (DROP TABLE cannot be parameterized)
ALLOWED_TABLES = frozenset({OWN_ZID_TABLE, REMOTE_ZID_TABLE, ZID_NAMES_TABLE})


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


# SQLite doesn't care about the CHAR/VARCHAR lengths, they document intent.
CREATE_OWN_ZID = """
CREATE TABLE zrtpIdOwn (
    localZid CHAR(18),
    type INTEGER,
    accountInfo VARCHAR(1000)
)
"""

CREATE_REMOTE_ZID = """
CREATE TABLE zrtpIdRemote (
    remoteZid CHAR(16),
    localZid CHAR(16),
    flags INTEGER,
    rs1 BLOB(32),
    rs1LastUsed TIMESTAMP,
    rs1TimeToLive TIMESTAMP,
    rs2 BLOB(32),
    rs2LastUsed TIMESTAMP,
    rs2TimeToLive TIMESTAMP,
    mitmKey BLOB(32),
    mitmLastUsed TIMESTAMP,
    secureSince TIMESTAMP,
    preshCounter INTEGER
)
"""

CREATE_ZID_NAMES = """
CREATE TABLE zrtpNames (
    remoteZid CHAR(16),
    localZid CHAR(16),
    flags INTEGER,
    lastUpdate TIMESTAMP,
    accountInfo VARCHAR(1000),
    name VARCHAR(1000)
)
"""


def has_cache_tables(conn: sqlite3.Connection) -> bool:
    """Return True if the own-identity table exists."""
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (OWN_ZID_TABLE,),
    ).fetchone()
    return row is not None


def drop_table_quietly(conn: sqlite3.Connection, table: str) -> None:
    """Drop a table, ignoring failures.

    The table may legitimately be missing (empty database, or a table removed
    by hand with an admin tool), so drop errors are only logged.
    """
    validate_table_name(table)
    try:
        conn.execute(f"DROP TABLE IF EXISTS {table}")
    except sqlite3.Error as e:
        logger.debug(f"Ignoring failure to drop {table}: {e}")


def initialize_remote_tables(conn: sqlite3.Connection) -> None:
    """Drop and recreate the remote ZID and name tables.

    All information about remote peers is lost.
    """
    drop_table_quietly(conn, REMOTE_ZID_TABLE)
    drop_table_quietly(conn, ZID_NAMES_TABLE)

    conn.execute(CREATE_REMOTE_ZID)
    conn.execute(CREATE_ZID_NAMES)


def create_tables(conn: sqlite3.Connection) -> None:
    """Create all cache tables on a database without zrtpIdOwn."""
    conn.execute(CREATE_OWN_ZID)
    initialize_remote_tables(conn)
    logger.info("Created ZID cache tables")


def reset_tables(conn: sqlite3.Connection) -> None:
    """Drop every cache table and create them again from scratch."""
    drop_table_quietly(conn, OWN_ZID_TABLE)
    create_tables(conn)
