"""ZID name CRUD operations extracted from SQLiteZidCache.

The name table holds free-form display information bound to the combination
of remote ZID, local ZID and an optional account label. Writes always stamp
lastUpdate with the store's clock, never the caller's value.
"""

import logging
from typing import Callable, Optional, Tuple

from zidcache.protocols import CacheInconsistentError
from zidcache.types import DEFAULT_ACCOUNT, MAX_TEXT_LENGTH, NO_NAME, ZidNameRecord

from .encoding import encode_zid, to_int64
from .schema import ZID_NAMES_TABLE

logger = logging.getLogger(__name__)


def _account_or_default(account: Optional[str]) -> str:
    if account is None:
        return DEFAULT_ACCOUNT
    if len(account) > MAX_TEXT_LENGTH:
        raise ValueError(f"Account label longer than {MAX_TEXT_LENGTH} characters")
    return account


def _name_or_default(name: Optional[str]) -> str:
    if name is None:
        return NO_NAME
    if len(name) > MAX_TEXT_LENGTH:
        raise ValueError(f"Name longer than {MAX_TEXT_LENGTH} characters")
    return name


def _key(remote_zid: bytes, local_zid: bytes, account: Optional[str]) -> Tuple[str, str, str]:
    return encode_zid(remote_zid), encode_zid(local_zid), _account_or_default(account)


def read_zid_name_record(
    connect_fn: Callable,
    remote_zid: bytes,
    local_zid: bytes,
    account: Optional[str] = None,
) -> ZidNameRecord:
    """Read the name record for a (remote, local, account) triple.

    Returns a record with flags == 0 if nothing is stored.

    Raises:
        CacheInconsistentError: If more than one row matches the triple
    """
    with connect_fn() as conn:
        rows = conn.execute(
            "SELECT flags, lastUpdate, name FROM zrtpNames "
            "WHERE remoteZid = ? AND localZid = ? AND accountInfo = ?",
            _key(remote_zid, local_zid, account),
        ).fetchall()

    if not rows:
        return ZidNameRecord(flags=0)
    if len(rows) > 1:
        logger.error(f"More than one ZID name found: {len(rows)}")
        raise CacheInconsistentError(ZID_NAMES_TABLE, len(rows), "ZID name")

    row = rows[0]
    return ZidNameRecord(
        flags=row["flags"] or 0,
        name=row["name"],
        last_update=int(row["lastUpdate"]) if row["lastUpdate"] is not None else 0,
    )


def insert_zid_name_record(
    connect_fn: Callable,
    remote_zid: bytes,
    local_zid: bytes,
    record: ZidNameRecord,
    now_fn: Callable[[], int],
    account: Optional[str] = None,
) -> None:
    """Insert a name record stamped with the current time."""
    remote_text, local_text, account = _key(remote_zid, local_zid, account)
    name = _name_or_default(record.name)
    flags = to_int64(record.flags, "flags")
    with connect_fn() as conn:
        conn.execute(
            "INSERT INTO zrtpNames "
            "(remoteZid, localZid, flags, lastUpdate, accountInfo, name) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (remote_text, local_text, flags, int(now_fn()), account, name),
        )


def update_zid_name_record(
    connect_fn: Callable,
    remote_zid: bytes,
    local_zid: bytes,
    record: ZidNameRecord,
    now_fn: Callable[[], int],
    account: Optional[str] = None,
) -> int:
    """Update flags and name, stamping lastUpdate. Returns rows updated."""
    remote_text, local_text, account = _key(remote_zid, local_zid, account)
    name = _name_or_default(record.name)
    flags = to_int64(record.flags, "flags")
    with connect_fn() as conn:
        result = conn.execute(
            "UPDATE zrtpNames SET flags = ?, lastUpdate = ?, name = ? "
            "WHERE remoteZid = ? AND localZid = ? AND accountInfo = ?",
            (flags, int(now_fn()), name, remote_text, local_text, account),
        )
        updated = result.rowcount

    if updated == 0:
        logger.debug("Update of ZID name record matched no rows")
    return updated
