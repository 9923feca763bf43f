"""Tests for PawlogDatabase — schema creation, versioning, lifecycle."""

from __future__ import annotations

import pytest

from pawlog.core.storage.database import SCHEMA_VERSION, DatabaseError, PawlogDatabase


class TestInitialization:
    def test_in_memory_initialize(self):
        db = PawlogDatabase(":memory:")
        db.initialize()
        assert db.connection is not None
        db.close()

    def test_double_initialize_is_idempotent(self):
        db = PawlogDatabase(":memory:")
        db.initialize()
        conn1 = db.connection
        db.initialize()
        assert db.connection is conn1
        db.close()

    def test_connection_before_init_raises(self):
        db = PawlogDatabase(":memory:")
        with pytest.raises(DatabaseError, match="not initialized"):
            _ = db.connection

    def test_context_manager(self):
        with PawlogDatabase(":memory:") as db:
            assert db.connection is not None
        with pytest.raises(DatabaseError):
            _ = db.connection


class TestSchema:
    def test_schema_version_recorded(self):
        with PawlogDatabase(":memory:") as db:
            assert db.get_schema_version() == SCHEMA_VERSION

    def test_single_schema_version(self):
        assert SCHEMA_VERSION == 1

    def test_tables_created(self):
        with PawlogDatabase(":memory:") as db:
            cursor = db.connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            tables = {row[0] for row in cursor.fetchall()}
        assert {"kv_store", "sync_log", "schema_version"} <= tables

    def test_sync_indexes_created(self):
        with PawlogDatabase(":memory:") as db:
            cursor = db.connection.execute("SELECT name FROM sqlite_master WHERE type='index'")
            indexes = {row[0] for row in cursor.fetchall()}
        assert {"idx_sync_timestamp", "idx_sync_action", "idx_sync_status"} <= indexes


class TestFileDatabase:
    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "pawlog.db"
        db = PawlogDatabase(str(db_path))
        db.initialize()
        assert db_path.exists()
        assert db.get_schema_version() == SCHEMA_VERSION
        db.close()

    def test_reopen_does_not_duplicate_version_rows(self, tmp_path):
        db_path = str(tmp_path / "pawlog.db")
        with PawlogDatabase(db_path):
            pass
        with PawlogDatabase(db_path) as db:
            count = db.connection.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
        assert count == 1


class TestClose:
    def test_double_close_is_safe(self):
        db = PawlogDatabase(":memory:")
        db.initialize()
        db.close()
        db.close()
