"""Tests for zidcache.storage.schema module."""

import sqlite3

import pytest

from zidcache.storage.schema import (
    ALLOWED_TABLES,
    OWN_ZID_TABLE,
    REMOTE_ZID_TABLE,
    ZID_NAMES_TABLE,
    create_tables,
    drop_table_quietly,
    has_cache_tables,
    initialize_remote_tables,
    reset_tables,
    validate_table_name,
)


@pytest.fixture
def conn():
    c = sqlite3.connect(":memory:", isolation_level=None)
    yield c
    c.close()


def table_names(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {r[0] for r in rows}


def columns(conn, table):
    return [c[1] for c in conn.execute(f"PRAGMA table_info({validate_table_name(table)})")]


class TestValidateTableName:
    def test_valid_table_names(self):
        for table in ALLOWED_TABLES:
            assert validate_table_name(table) == table

    def test_invalid_table_name_raises(self):
        with pytest.raises(ValueError, match="Invalid table name"):
            validate_table_name("sqlite_master")

    def test_sql_injection_attempt(self):
        with pytest.raises(ValueError):
            validate_table_name("zrtpIdOwn; DROP TABLE zrtpNames")


class TestCreateTables:
    def test_fresh_database_has_no_cache_tables(self, conn):
        assert not has_cache_tables(conn)

    def test_creates_all_three_tables(self, conn):
        create_tables(conn)
        assert has_cache_tables(conn)
        assert table_names(conn) == {OWN_ZID_TABLE, REMOTE_ZID_TABLE, ZID_NAMES_TABLE}

    def test_remote_table_columns(self, conn):
        create_tables(conn)
        assert columns(conn, REMOTE_ZID_TABLE) == [
            "remoteZid",
            "localZid",
            "flags",
            "rs1",
            "rs1LastUsed",
            "rs1TimeToLive",
            "rs2",
            "rs2LastUsed",
            "rs2TimeToLive",
            "mitmKey",
            "mitmLastUsed",
            "secureSince",
            "preshCounter",
        ]

    def test_names_table_columns(self, conn):
        create_tables(conn)
        assert columns(conn, ZID_NAMES_TABLE) == [
            "remoteZid",
            "localZid",
            "flags",
            "lastUpdate",
            "accountInfo",
            "name",
        ]

    def test_create_twice_fails_on_own_table(self, conn):
        create_tables(conn)
        with pytest.raises(sqlite3.OperationalError):
            create_tables(conn)


class TestDropAndReset:
    def test_drop_missing_table_is_ignored(self, conn):
        drop_table_quietly(conn, REMOTE_ZID_TABLE)
        assert table_names(conn) == set()

    def test_drop_rejects_unknown_table(self, conn):
        with pytest.raises(ValueError):
            drop_table_quietly(conn, "users")

    def test_initialize_remote_tables_keeps_own_rows(self, conn):
        create_tables(conn)
        conn.execute("INSERT INTO zrtpIdOwn VALUES ('AAECAwQFBgcICQoL', 1, '_STANDARD_')")
        conn.execute("INSERT INTO zrtpNames (remoteZid, name) VALUES ('x', 'alice')")

        initialize_remote_tables(conn)

        assert conn.execute("SELECT COUNT(*) FROM zrtpIdOwn").fetchone()[0] == 1
        assert conn.execute("SELECT COUNT(*) FROM zrtpNames").fetchone()[0] == 0

    def test_initialize_remote_tables_recreates_missing_table(self, conn):
        create_tables(conn)
        conn.execute("DROP TABLE zrtpNames")
        initialize_remote_tables(conn)
        assert ZID_NAMES_TABLE in table_names(conn)

    def test_reset_empties_everything(self, conn):
        create_tables(conn)
        conn.execute("INSERT INTO zrtpIdOwn VALUES ('AAECAwQFBgcICQoL', 1, '_STANDARD_')")
        conn.execute("INSERT INTO zrtpIdRemote (remoteZid, flags) VALUES ('x', 1)")

        reset_tables(conn)

        for table in ALLOWED_TABLES:
            assert conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0

    def test_reset_on_empty_database(self, conn):
        reset_tables(conn)
        assert has_cache_tables(conn)
