"""Forward-only enumeration of all remote ZID records.

Used by UI/audit callers that list every known peer. Rows come back with
the most recently secured relationships first.
"""

import logging
import sqlite3
import threading
from typing import Iterator, Optional

from zidcache.protocols import CacheStorageError, ZidCacheError
from zidcache.types import RemoteZidRecord

from .remote_zid_crud import row_to_remote_zid_record

logger = logging.getLogger(__name__)


class RemoteZidCursor:
    """Lazy cursor over zrtpIdRemote ordered by secureSince DESC.

    The cursor closes itself after the last row and on any error. Calling
    next_record() on a closed cursor returns None instead of raising, so
    teardown code can call it unconditionally. Not restartable: ask the
    cache for a new cursor to iterate again.
    """

    def __init__(self, cursor: sqlite3.Cursor, lock: threading.RLock):
        self._cursor: Optional[sqlite3.Cursor] = cursor
        self._lock = lock

    @property
    def closed(self) -> bool:
        return self._cursor is None

    def next_record(self) -> Optional[RemoteZidRecord]:
        """Return the next record, or None at end of sequence.

        Raises:
            CacheStorageError: If the engine fails while stepping (cursor is closed first)
            EncodingError: If a stored remote ZID cannot be decoded (cursor is closed first)
        """
        with self._lock:
            cursor = self._cursor
            if cursor is None:
                return None
            try:
                row = cursor.fetchone()
            except sqlite3.Error as e:
                self.close()
                logger.error(f"Enumeration of remote ZID records failed: {e}")
                raise CacheStorageError(f"SQLite error while reading remote ZIDs: {e}") from e

            if row is None:
                self.close()
                return None

            try:
                return row_to_remote_zid_record(row, with_identifier=True)
            except ZidCacheError:
                self.close()
                raise

    def close(self) -> None:
        """Release the underlying statement. Safe to call repeatedly."""
        with self._lock:
            cursor, self._cursor = self._cursor, None
            if cursor is None:
                return
            try:
                cursor.close()
            except sqlite3.Error as e:
                logger.debug(f"Ignoring error closing enumeration cursor: {e}")

    def __iter__(self) -> Iterator[RemoteZidRecord]:
        return self

    def __next__(self) -> RemoteZidRecord:
        record = self.next_record()
        if record is None:
            raise StopIteration
        return record

    def __enter__(self) -> "RemoteZidCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
