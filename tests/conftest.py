"""
Pytest fixtures and test configuration for zidcache tests.
"""

import contextlib
import sqlite3

import pytest

from zidcache.storage import SQLiteZidCache
from zidcache.storage.schema import create_tables
from zidcache.types import RemoteZidFlags, RemoteZidRecord, Zid


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh cache database."""
    return tmp_path / "zrtp-cache.db"


@pytest.fixture
def cache(db_path):
    """An opened SQLiteZidCache on a temp file."""
    c = SQLiteZidCache(db_path)
    c.open()
    yield c
    c.close()


@pytest.fixture
def raw_conn(db_path, cache):
    """A second, plain sqlite3 connection to the cache file for inspection and tampering."""
    conn = sqlite3.connect(db_path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    yield conn
    conn.close()


@pytest.fixture
def memory_connect():
    """A connect_fn over an in-memory database with the cache tables created.

    Lets the CRUD modules be tested without the SQLiteZidCache class.
    """
    conn = sqlite3.connect(":memory:", isolation_level=None)
    conn.row_factory = sqlite3.Row
    create_tables(conn)

    @contextlib.contextmanager
    def connect():
        yield conn

    yield connect
    conn.close()


@pytest.fixture
def remote_zid():
    return Zid(bytes(range(12)))


@pytest.fixture
def other_remote_zid():
    return Zid(b"\xff" * 12)


@pytest.fixture
def local_zid(cache):
    return cache.read_local_zid()


@pytest.fixture
def make_record():
    """Factory for fully populated RemoteZidRecords."""

    def _make(**overrides) -> RemoteZidRecord:
        fields = dict(
            flags=int(RemoteZidFlags.VALID | RemoteZidFlags.RS1_VALID),
            rs1=b"\x11" * 32,
            rs1_last_used=1_600_000_000,
            rs1_ttl=1_700_000_000,
            rs2=b"\x22" * 32,
            rs2_last_used=1_500_000_000,
            rs2_ttl=1_600_000_000,
            mitm_key=b"\x33" * 32,
            mitm_last_used=1_550_000_000,
            secure_since=1_400_000_000,
            presh_counter=3,
        )
        fields.update(overrides)
        return RemoteZidRecord(**fields)

    return _make
