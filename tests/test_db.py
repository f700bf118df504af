"""Unit tests for the Database connection manager and migration system."""

import pytest

from diskiadmin.db import Database


class TestDatabaseCreation:
    """Tests for database file creation and basic lifecycle."""

    def test_database_creates_file(self, tmp_path):
        db_path = tmp_path / "admin.db"
        db = Database(db_path)
        db.initialize()
        assert db_path.exists()
        db.close()

    def test_database_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "admin.db"
        db = Database(db_path)
        db.initialize()
        assert db_path.exists()
        db.close()

    def test_conn_before_connect_raises(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        with pytest.raises(RuntimeError, match="not connected"):
            db.conn

    def test_close_disconnects(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        db.initialize()
        db.close()
        with pytest.raises(RuntimeError):
            db.conn


class TestDatabasePragmas:
    """Tests for PRAGMA configuration on connect."""

    def test_wal_mode(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        db.connect()
        assert db.conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        db.close()

    def test_busy_timeout(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        db.connect()
        assert db.conn.execute("PRAGMA busy_timeout").fetchone()[0] == 5000
        db.close()


class TestDatabaseMigrations:
    """Tests for schema version tracking and migration application."""

    def test_initialize_applies_packaged_migrations(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        db.initialize()
        assert db.get_schema_version() == 1
        tables = {
            r[0]
            for r in db.conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert "documents" in tables
        db.close()

    def test_connect_without_migrations_is_version_zero(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        db.connect()
        assert db.get_schema_version() == 0
        db.close()

    def test_migrations_are_idempotent(self, tmp_path):
        db = Database(tmp_path / "admin.db")
        db.initialize()
        assert db.apply_migrations() == 0
        assert db.get_schema_version() == 1
        db.close()

    def test_custom_migrations_dir(self, tmp_path):
        migrations = tmp_path / "migrations"
        migrations.mkdir()
        (migrations / "001_a.sql").write_text("CREATE TABLE a (x INTEGER);")
        (migrations / "002_b.sql").write_text("CREATE TABLE b (y INTEGER);")

        db = Database(tmp_path / "admin.db")
        db.connect()
        assert db.apply_migrations(migrations) == 2
        assert db.get_schema_version() == 2
        db.close()

    def test_data_survives_reopen(self, tmp_path):
        db_path = tmp_path / "admin.db"
        db = Database(db_path)
        db.initialize()
        with db.conn:
            db.conn.execute(
                "INSERT INTO documents VALUES ('matches', '1', '{}', 'now', 'now')"
            )
        db.close()

        db = Database(db_path)
        db.initialize()
        count = db.conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        assert count == 1
        db.close()
