"""Remote ZID record CRUD operations extracted from SQLiteZidCache.

Handles the retained-secret state kept per (remote ZID, local ZID) pair.
All functions receive dependencies explicitly (connection factory) to avoid
circular imports and enable independent testing.

Timestamps are bound and read back as integral epoch seconds. Secrets are
native BLOBs; identifiers are base64 text (see encoding.py).
"""

import logging
import sqlite3
from typing import Callable, Tuple

from zidcache.protocols import CacheInconsistentError
from zidcache.types import RemoteZidRecord

from .encoding import decode_zid, encode_zid, secret_from_blob, to_blob, to_int64
from .schema import REMOTE_ZID_TABLE

logger = logging.getLogger(__name__)

# Column order shared by keyed reads and enumeration
RECORD_COLUMNS = (
    "flags, "
    "rs1, rs1LastUsed, rs1TimeToLive, "
    "rs2, rs2LastUsed, rs2TimeToLive, "
    "mitmKey, mitmLastUsed, secureSince, preshCounter"
)

SELECT_ALL_ORDERED = (
    f"SELECT {RECORD_COLUMNS}, remoteZid FROM zrtpIdRemote ORDER BY secureSince DESC"
)


def _int(value) -> int:
    return int(value) if value is not None else 0


def row_to_remote_zid_record(row: sqlite3.Row, with_identifier: bool = False) -> RemoteZidRecord:
    """Convert a database row to a RemoteZidRecord."""
    record = RemoteZidRecord(
        flags=_int(row["flags"]),
        rs1=secret_from_blob(row["rs1"]),
        rs1_last_used=_int(row["rs1LastUsed"]),
        rs1_ttl=_int(row["rs1TimeToLive"]),
        rs2=secret_from_blob(row["rs2"]),
        rs2_last_used=_int(row["rs2LastUsed"]),
        rs2_ttl=_int(row["rs2TimeToLive"]),
        mitm_key=secret_from_blob(row["mitmKey"]),
        mitm_last_used=_int(row["mitmLastUsed"]),
        secure_since=_int(row["secureSince"]),
        presh_counter=_int(row["preshCounter"]),
    )
    if with_identifier:
        record.identifier = decode_zid(row["remoteZid"])
    return record


def _record_values(record: RemoteZidRecord) -> Tuple:
    return (
        to_int64(record.flags, "flags"),
        to_blob(record.rs1),
        to_int64(record.rs1_last_used, "rs1_last_used"),
        to_int64(record.rs1_ttl, "rs1_ttl"),
        to_blob(record.rs2),
        to_int64(record.rs2_last_used, "rs2_last_used"),
        to_int64(record.rs2_ttl, "rs2_ttl"),
        to_blob(record.mitm_key),
        to_int64(record.mitm_last_used, "mitm_last_used"),
        to_int64(record.secure_since, "secure_since"),
        to_int64(record.presh_counter, "presh_counter"),
    )


def read_remote_zid_record(
    connect_fn: Callable,
    remote_zid: bytes,
    local_zid: bytes,
) -> RemoteZidRecord:
    """Read the record for a peer.

    Returns a record with flags == 0 if the pair was never stored.

    Raises:
        CacheInconsistentError: If more than one row matches the pair
    """
    with connect_fn() as conn:
        rows = conn.execute(
            f"SELECT {RECORD_COLUMNS} FROM zrtpIdRemote WHERE remoteZid = ? AND localZid = ?",
            (encode_zid(remote_zid), encode_zid(local_zid)),
        ).fetchall()

    if not rows:
        return RemoteZidRecord(flags=0)
    if len(rows) > 1:
        logger.error(f"More than one remote ZID record found: {len(rows)}")
        raise CacheInconsistentError(REMOTE_ZID_TABLE, len(rows), "remote ZID")
    return row_to_remote_zid_record(rows[0])


def insert_remote_zid_record(
    connect_fn: Callable,
    remote_zid: bytes,
    local_zid: bytes,
    record: RemoteZidRecord,
) -> None:
    """Insert a record unconditionally; callers read first to check absence."""
    with connect_fn() as conn:
        conn.execute(
            "INSERT INTO zrtpIdRemote "
            "(remoteZid, localZid, flags, "
            "rs1, rs1LastUsed, rs1TimeToLive, "
            "rs2, rs2LastUsed, rs2TimeToLive, "
            "mitmKey, mitmLastUsed, secureSince, preshCounter) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (encode_zid(remote_zid), encode_zid(local_zid)) + _record_values(record),
        )


def update_remote_zid_record(
    connect_fn: Callable,
    remote_zid: bytes,
    local_zid: bytes,
    record: RemoteZidRecord,
) -> int:
    """Overwrite all mutable fields of the record for a peer.

    Returns the number of rows updated. Zero is not an error here.
    """
    with connect_fn() as conn:
        result = conn.execute(
            "UPDATE zrtpIdRemote SET "
            "flags = ?, "
            "rs1 = ?, rs1LastUsed = ?, rs1TimeToLive = ?, "
            "rs2 = ?, rs2LastUsed = ?, rs2TimeToLive = ?, "
            "mitmKey = ?, mitmLastUsed = ?, secureSince = ?, preshCounter = ? "
            "WHERE remoteZid = ? AND localZid = ?",
            _record_values(record) + (encode_zid(remote_zid), encode_zid(local_zid)),
        )
        updated = result.rowcount

    if updated == 0:
        logger.debug("Update of remote ZID record matched no rows")
    return updated


def count_remote_zid_records(connect_fn: Callable) -> int:
    """Number of remote ZID records in the cache."""
    with connect_fn() as conn:
        row = conn.execute("SELECT COUNT(*) FROM zrtpIdRemote").fetchone()
    return row[0]
