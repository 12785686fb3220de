"""Tests for enumeration of remote ZID records (zidcache.storage.enumeration)."""

import sqlite3
import threading
from unittest.mock import MagicMock

import pytest

from zidcache.protocols import CacheStorageError, EncodingError
from zidcache.storage.enumeration import RemoteZidCursor
from zidcache.types import Zid


def peer(n: int) -> Zid:
    return Zid(bytes([n]) * 12)


@pytest.fixture
def populated(cache, local_zid, make_record):
    """Three peers secured at t=100 (peer 1), t=300 (peer 3) and t=200 (peer 2)."""
    for n, secure_since in ((1, 100), (3, 300), (2, 200)):
        cache.insert_remote_zid_record(peer(n), local_zid, make_record(secure_since=secure_since))
    return cache


class TestOrdering:
    def test_newest_secure_since_first(self, populated):
        with populated.prepare_read_all() as cursor:
            records = list(cursor)

        assert [r.secure_since for r in records] == [300, 200, 100]
        assert [r.identifier for r in records] == [peer(3), peer(2), peer(1)]

    def test_records_carry_all_fields(self, populated, make_record):
        record = populated.prepare_read_all().next_record()
        expected = make_record(secure_since=300)
        expected.identifier = peer(3)
        assert record == expected
        assert isinstance(record.identifier, Zid)

    def test_empty_table_ends_immediately(self, cache):
        cursor = cache.prepare_read_all()
        assert cursor.next_record() is None
        assert cursor.closed

    def test_alias(self, populated):
        assert len(list(populated.iter_remote_zid_records())) == 3


class TestCursorLifecycle:
    def test_auto_closes_after_last_row(self, populated):
        cursor = populated.prepare_read_all()
        for _ in range(3):
            assert cursor.next_record() is not None
        assert not cursor.closed
        assert cursor.next_record() is None
        assert cursor.closed

    def test_next_on_closed_cursor_is_end_of_sequence(self, populated):
        cursor = populated.prepare_read_all()
        cursor.close()
        assert cursor.next_record() is None
        assert list(cursor) == []

    def test_close_is_idempotent(self, populated):
        cursor = populated.prepare_read_all()
        cursor.close()
        cursor.close()
        assert cursor.closed

    def test_not_restartable(self, populated):
        cursor = populated.prepare_read_all()
        assert len(list(cursor)) == 3
        assert list(cursor) == []
        assert len(list(populated.prepare_read_all())) == 3

    def test_context_manager_releases_on_early_exit(self, populated):
        with populated.prepare_read_all() as cursor:
            first = next(cursor)
        assert first.secure_since == 300
        assert cursor.closed

    def test_cache_usable_while_cursor_open(self, populated, local_zid):
        cursor = populated.prepare_read_all()
        first = cursor.next_record()
        assert populated.read_remote_zid_record(first.identifier, local_zid).secure_since == 300
        assert len(list(cursor)) == 2

    def test_close_while_next_record_waits_for_lock(self):
        lock = threading.RLock()
        raw = MagicMock(spec=sqlite3.Cursor)
        cursor = RemoteZidCursor(raw, lock)
        results, errors = [], []

        def step():
            try:
                results.append(cursor.next_record())
            except Exception as e:
                errors.append(e)

        with lock:
            worker = threading.Thread(target=step)
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
            cursor.close()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert errors == []
        assert results == [None]
        raw.fetchone.assert_not_called()
        raw.close.assert_called_once()

    def test_close_from_inside_a_step(self):
        raw = MagicMock(spec=sqlite3.Cursor)
        cursor = RemoteZidCursor(raw, threading.RLock())

        def fetch_and_close():
            cursor.close()
            return None

        raw.fetchone.side_effect = fetch_and_close
        assert cursor.next_record() is None
        assert cursor.closed
        raw.close.assert_called_once()


class TestCursorErrors:
    def test_engine_error_closes_and_raises(self):
        raw = MagicMock(spec=sqlite3.Cursor)
        raw.fetchone.side_effect = sqlite3.OperationalError("disk I/O error")
        cursor = RemoteZidCursor(raw, threading.RLock())

        with pytest.raises(CacheStorageError, match="disk I/O error"):
            cursor.next_record()
        assert cursor.closed
        raw.close.assert_called_once()
        assert cursor.next_record() is None

    def test_undecodable_identifier_closes_and_raises(self, cache, raw_conn):
        raw_conn.execute(
            "INSERT INTO zrtpIdRemote (remoteZid, localZid, flags, secureSince) "
            "VALUES ('bad!', 'bad!', 1, 5)"
        )
        cursor = cache.prepare_read_all()
        with pytest.raises(EncodingError):
            cursor.next_record()
        assert cursor.closed
