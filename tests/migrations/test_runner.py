"""Tests for the SQL migration runner."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from recordspine.core.connection import SqliteConnection
from recordspine.core.db import DB
from recordspine.core.errors import MigrationError
from recordspine.migrations import Migration, MigrationRunner, MigrationStatus


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def db():
    """In-memory SQLite handle."""
    conn = SqliteConnection(":memory:")
    yield DB(conn)
    conn.close()


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    """Temp migrations directory with two numbered SQL files."""
    d = tmp_path / "migrations"
    d.mkdir()
    (d / "001_create_people.sql").write_text(
        textwrap.dedent("""\
            CREATE TABLE people (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            );
        """),
        encoding="utf-8",
    )
    (d / "002_create_posts.sql").write_text(
        textwrap.dedent("""\
            CREATE TABLE posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author_id INTEGER REFERENCES people(id)
            );
            CREATE INDEX idx_posts_author ON posts(author_id);
        """),
        encoding="utf-8",
    )
    return d


def _tables(db: DB) -> set[str]:
    rows = db.query("SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'")
    return {r[0] for r in rows}


# ── Tests ─────────────────────────────────────────────────────────────


class TestApplyPending:
    def test_applies_in_filename_order(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        result = runner.apply_pending()

        assert result.success
        assert result.applied == ["001_create_people.sql", "002_create_posts.sql"]
        assert result.batch == 1
        assert {"people", "posts", "migrations"} <= _tables(db)

    def test_records_bookkeeping_rows(self, db, migrations_dir):
        MigrationRunner(db, migrations_dir).apply_pending()
        rows = db.order_by("id").get(Migration)
        assert [(m.migration, m.batch) for m in rows] == [
            ("001_create_people.sql", 1),
            ("002_create_posts.sql", 1),
        ]

    def test_idempotent(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        runner.apply_pending()
        result = runner.apply_pending()

        assert result.applied == []
        assert result.skipped == ["001_create_people.sql", "002_create_posts.sql"]
        assert result.batch is None
        assert runner.count_applied() == 2

    def test_new_file_gets_next_batch(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        runner.apply_pending()
        (migrations_dir / "003_add_age.sql").write_text(
            "ALTER TABLE people ADD COLUMN age INTEGER;", encoding="utf-8"
        )
        result = runner.apply_pending()

        assert result.applied == ["003_add_age.sql"]
        assert result.batch == 2
        assert runner.current_batch() == 2

    def test_stops_at_first_error(self, db, migrations_dir):
        (migrations_dir / "001b_broken.sql").write_text("CREATE TABLEX nope;", encoding="utf-8")
        runner = MigrationRunner(db, migrations_dir)
        with capture_logs() as logs:
            result = runner.apply_pending()

        assert not result.success
        assert result.applied == ["001_create_people.sql"]
        assert "001b_broken.sql" in result.errors
        assert "posts" not in _tables(db)
        assert any(e["event"] == "migration.failed" for e in logs)

    def test_logs_each_applied_file(self, db, migrations_dir):
        with capture_logs() as logs:
            MigrationRunner(db, migrations_dir).apply_pending()
        applied = [e for e in logs if e["event"] == "migration.applied"]
        assert [e["migration"] for e in applied] == ["001_create_people.sql", "002_create_posts.sql"]

    def test_progress_callback(self, db, migrations_dir):
        events: list[tuple[str, str]] = []
        MigrationRunner(db, migrations_dir).apply_pending(lambda e, n: events.append((e, n)))
        assert events[:2] == [
            ("migrating", "001_create_people.sql"),
            ("migrated", "001_create_people.sql"),
        ]
        assert len(events) == 4

    def test_missing_directory(self, db, tmp_path):
        runner = MigrationRunner(db, tmp_path / "nowhere")
        with pytest.raises(MigrationError):
            runner.apply_pending()


class TestFresh:
    def test_drops_and_reapplies(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        runner.apply_pending()
        db.execute("INSERT INTO people (name) VALUES (?)", "ada")
        db.execute("CREATE TABLE scratch (id INTEGER)")

        result = runner.fresh()

        assert result.batch == 1
        assert len(result.applied) == 2
        assert "scratch" not in _tables(db)
        assert db.query("SELECT COUNT(*) FROM people") == [(0,)]


class TestRollback:
    def test_removes_last_batch_only(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        runner.apply_pending()
        (migrations_dir / "003_create_tags.sql").write_text(
            "CREATE TABLE tags (id INTEGER PRIMARY KEY, slug TEXT);", encoding="utf-8"
        )
        runner.apply_pending()

        assert runner.rollback() == ["003_create_tags.sql"]
        assert runner.count_applied() == 2
        assert runner.current_batch() == 1

    def test_does_not_reverse_sql(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        runner.apply_pending()
        runner.rollback()
        assert "people" in _tables(db)
        assert runner.count_applied() == 0

    def test_nothing_to_rollback(self, db, migrations_dir):
        assert MigrationRunner(db, migrations_dir).rollback() == []


class TestStatus:
    def test_reports_ran_and_pending(self, db, migrations_dir):
        runner = MigrationRunner(db, migrations_dir)
        runner.apply_pending()
        (migrations_dir / "003_pending.sql").write_text("SELECT 1;", encoding="utf-8")

        assert runner.status() == [
            MigrationStatus("001_create_people.sql", ran=True, batch=1),
            MigrationStatus("002_create_posts.sql", ran=True, batch=1),
            MigrationStatus("003_pending.sql", ran=False, batch=None),
        ]
