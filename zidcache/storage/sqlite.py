"""SQLite storage backend for zidcache.

Durable ZID cache with:
- One shared connection per opened cache, serialized by a re-entrant lock
- Lazy creation of the cache tables on first open
- Explicit transactions around multi-statement bootstrap and reset
"""

import contextlib
import logging
import secrets
import sqlite3
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from zidcache.protocols import CacheStorageError
from zidcache.types import RemoteZidRecord, Zid, ZidNameRecord, epoch_now
from zidcache.utils import MEMORY_DB, get_default_db_path

from . import own_zid, remote_zid_crud, zid_names_crud
from .enumeration import RemoteZidCursor
from .schema import create_tables, has_cache_tables, reset_tables

logger = logging.getLogger(__name__)


class SQLiteZidCache:
    """SQLite-based ZID cache.

    Usage:
        with SQLiteZidCache(path) as cache:
            local = cache.read_local_zid()
            record = cache.read_remote_zid_record(peer, local)

    The cache may be shared between threads: every operation and every
    cursor step holds the same lock, so calls are serialized at the engine
    boundary and a concurrent caller simply blocks.
    """

    # Milliseconds SQLite waits on a lock held by another process
    BUSY_TIMEOUT_MS = 5000

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        random_fn: Optional[Callable[[int], bytes]] = None,
        now_fn: Optional[Callable[[], int]] = None,
        busy_timeout_ms: Optional[int] = None,
    ):
        self.db_path = self._resolve_db_path(db_path)
        self._random_fn = random_fn or secrets.token_bytes
        self._now_fn = now_fn or epoch_now
        self._busy_timeout_ms = (
            self.BUSY_TIMEOUT_MS if busy_timeout_ms is None else busy_timeout_ms
        )
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _resolve_db_path(self, db_path: Optional[Union[str, Path]]) -> Union[str, Path]:
        if db_path is None:
            return get_default_db_path()
        if str(db_path) == MEMORY_DB:
            return MEMORY_DB
        return Path(db_path).expanduser()

    # === Lifecycle ===

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the database and create the cache tables if zrtpIdOwn is missing.

        Opening an already open cache is a no-op.

        Raises:
            CacheStorageError: If the database cannot be opened or initialized
        """
        with self._lock:
            if self._conn is not None:
                return
            try:
                if isinstance(self.db_path, Path):
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=False,
                    isolation_level=None,
                )
                conn.row_factory = sqlite3.Row
                conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Cannot open ZID cache {self.db_path}: {e}")
                raise CacheStorageError(f"Cannot open ZID cache {self.db_path}: {e}") from e

            self._conn = conn
            try:
                with self._transaction() as tx:
                    if not has_cache_tables(tx):
                        create_tables(tx)
            except CacheStorageError:
                self.close()
                raise
        logger.debug(f"Opened ZID cache {self.db_path}")

    def close(self) -> None:
        """Close the connection. Idempotent and never raises."""
        with self._lock:
            conn, self._conn = self._conn, None
            if conn is None:
                return
            try:
                conn.close()
            except sqlite3.Error as e:
                logger.debug(f"Ignoring error closing ZID cache: {e}")

    def clear(self) -> None:
        """Drop every cache table and recreate them empty.

        Destroys all peer history and all local ZIDs; meant for explicit
        cache-wipe requests only.
        """
        logger.warning(f"Resetting ZID cache {self.db_path}, all peer data is dropped")
        with self._transaction() as conn:
            reset_tables(conn)

    reset = clear

    def __enter__(self) -> "SQLiteZidCache":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # === Connection helpers ===

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Hold the cache lock and translate engine errors.

        The connection runs in autocommit mode, so single statements need no
        commit. Any sqlite3.Error escapes as CacheStorageError.
        """
        with self._lock:
            if self._conn is None:
                raise CacheStorageError("ZID cache is not open")
            try:
                yield self._conn
            except sqlite3.Error as e:
                logger.debug(f"ZID cache operation failed: {e}")
                raise CacheStorageError(f"SQLite error: {e}") from e

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside BEGIN/COMMIT, rolling back on any exception."""
        with self._connect() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                logger.debug(f"Transaction failed, rolling back: {e}")
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    # === Own identity ===

    def read_local_zid(self, account: Optional[str] = None) -> Zid:
        """Return the local ZID for `account` (None means the standard account)."""
        return own_zid.read_local_zid(self._connect, account, self._random_fn)

    # === Remote ZID records ===

    def read_remote_zid_record(self, remote_zid: bytes, local_zid: bytes) -> RemoteZidRecord:
        return remote_zid_crud.read_remote_zid_record(self._connect, remote_zid, local_zid)

    def insert_remote_zid_record(
        self, remote_zid: bytes, local_zid: bytes, record: RemoteZidRecord
    ) -> None:
        remote_zid_crud.insert_remote_zid_record(self._connect, remote_zid, local_zid, record)

    def update_remote_zid_record(
        self, remote_zid: bytes, local_zid: bytes, record: RemoteZidRecord
    ) -> int:
        return remote_zid_crud.update_remote_zid_record(
            self._connect, remote_zid, local_zid, record
        )

    def count_remote_zid_records(self) -> int:
        return remote_zid_crud.count_remote_zid_records(self._connect)

    # === ZID names ===

    def read_zid_name_record(
        self, remote_zid: bytes, local_zid: bytes, account: Optional[str] = None
    ) -> ZidNameRecord:
        return zid_names_crud.read_zid_name_record(self._connect, remote_zid, local_zid, account)

    def insert_zid_name_record(
        self,
        remote_zid: bytes,
        local_zid: bytes,
        record: ZidNameRecord,
        account: Optional[str] = None,
    ) -> None:
        zid_names_crud.insert_zid_name_record(
            self._connect, remote_zid, local_zid, record, self._now_fn, account
        )

    def update_zid_name_record(
        self,
        remote_zid: bytes,
        local_zid: bytes,
        record: ZidNameRecord,
        account: Optional[str] = None,
    ) -> int:
        return zid_names_crud.update_zid_name_record(
            self._connect, remote_zid, local_zid, record, self._now_fn, account
        )

    # === Enumeration ===

    def prepare_read_all(self) -> RemoteZidCursor:
        """Open a cursor over every remote ZID record, newest secure_since first."""
        with self._connect() as conn:
            cursor = conn.execute(remote_zid_crud.SELECT_ALL_ORDERED)
        return RemoteZidCursor(cursor, self._lock)

    iter_remote_zid_records = prepare_read_all
