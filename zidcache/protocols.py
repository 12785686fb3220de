"""
zidcache Protocol Definitions
=============================

The interface contract between a ZID cache backend and the protocol engine
that consumes it. One method per cache operation; the SQLite backend in
`zidcache.storage` is the reference implementation.

Error handling philosophy:
- Engine failures raise CacheStorageError, chained to the sqlite3 error
- Duplicate rows for a unique key raise CacheInconsistentError (never repaired)
- Undecodable stored identifiers raise EncodingError
- Invalid arguments raise ValueError
- "Not found" is not an error: reads return a record with flags == 0
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, runtime_checkable

from zidcache.types import RemoteZidRecord, Zid, ZidNameRecord

# =============================================================================
# ERRORS
# =============================================================================


class ZidCacheError(Exception):
    """Base for all zidcache errors."""

    pass


class CacheStorageError(ZidCacheError):
    """Raised when the storage engine rejects an operation."""

    pass


class CacheInconsistentError(ZidCacheError):
    """Raised when more than one row matches a key that must be unique."""

    def __init__(self, table: str, count: int, detail: str = ""):
        self.table = table
        self.count = count
        message = f"ZRTP cache inconsistent: {count} rows in {table}"
        if detail:
            message = f"{message} for {detail}"
        super().__init__(message)


class EncodingError(ZidCacheError, ValueError):
    """Raised when stored text cannot be decoded back to an identifier."""

    pass


# =============================================================================
# BACKEND PROTOCOL
# =============================================================================


@runtime_checkable
class RemoteZidCursorProtocol(Protocol):
    """Forward-only iteration over all remote ZID records."""

    def next_record(self) -> Optional[RemoteZidRecord]:
        """Next record, or None once the sequence is exhausted or closed."""
        ...

    def close(self) -> None:
        """Release the underlying statement. Idempotent."""
        ...

    def __iter__(self) -> Iterator[RemoteZidRecord]: ...


@runtime_checkable
class ZidCacheBackend(Protocol):
    """Capability set of a durable ZID cache.

    Implementations: SQLiteZidCache.
    """

    # ---- Lifecycle ----

    def open(self) -> None:
        """Open the store, creating the cache tables on first use."""
        ...

    def close(self) -> None:
        """Release engine resources. Idempotent; never raises."""
        ...

    def clear(self) -> None:
        """Drop and recreate all cache tables. All peer history is lost."""
        ...

    # ---- Own identity ----

    def read_local_zid(self, account: Optional[str] = None) -> Zid:
        """Return the local ZID for an account, creating it on first use."""
        ...

    # ---- Remote ZID records ----

    def read_remote_zid_record(self, remote_zid: bytes, local_zid: bytes) -> RemoteZidRecord:
        """Read the record for a peer; flags == 0 means no prior relationship."""
        ...

    def insert_remote_zid_record(
        self, remote_zid: bytes, local_zid: bytes, record: RemoteZidRecord
    ) -> None:
        """Insert a new record. The caller checks for absence first."""
        ...

    def update_remote_zid_record(
        self, remote_zid: bytes, local_zid: bytes, record: RemoteZidRecord
    ) -> int:
        """Update all mutable fields. Returns the number of rows touched."""
        ...

    # ---- ZID names ----

    def read_zid_name_record(
        self, remote_zid: bytes, local_zid: bytes, account: Optional[str] = None
    ) -> ZidNameRecord:
        """Read the name record; flags == 0 means none stored."""
        ...

    def insert_zid_name_record(
        self,
        remote_zid: bytes,
        local_zid: bytes,
        record: ZidNameRecord,
        account: Optional[str] = None,
    ) -> None:
        """Insert a name record, stamping last_update with the current time."""
        ...

    def update_zid_name_record(
        self,
        remote_zid: bytes,
        local_zid: bytes,
        record: ZidNameRecord,
        account: Optional[str] = None,
    ) -> int:
        """Update a name record, stamping last_update with the current time."""
        ...

    # ---- Enumeration ----

    def prepare_read_all(self) -> RemoteZidCursorProtocol:
        """Open a cursor over all remote records, newest secure_since first."""
        ...
