"""SQL migration runner.

Reads ``.sql`` files from a migrations directory, tracks applied ones in
the ``migrations`` table and applies pending ones in filename order.
Every run that applies something gets the next batch number, so the last
batch can be rolled back as a unit.

The bookkeeping table is itself a record (:class:`Migration`) handled by
the mapping core::

    migrations(id INTEGER PRIMARY KEY, migration TEXT, batch INTEGER)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from recordspine.core.db import DB
from recordspine.core.errors import MigrationError
from recordspine.core.logging import LogContext, get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[str, str], None]


@dataclass
class Migration:
    """One applied migration (row of ``migrations``)."""

    id: int | None = None
    migration: str = ""
    batch: int = 0


@dataclass
class MigrationStatus:
    """Whether a migration file has been applied, and in which batch."""

    migration: str
    ran: bool
    batch: int | None = None


@dataclass
class MigrationResult:
    """Result of a migration run."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    batch: int | None = None

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


class MigrationRunner:
    """Applies SQL migrations from a directory through a :class:`DB` handle.

    Parameters
    ----------
    db
        The handle to migrate.
    migrations_dir
        Directory containing numbered ``.sql`` files.

    Example::

        from recordspine.core.connection import connect
        from recordspine.migrations import MigrationRunner

        runner = MigrationRunner(connect(), "database/migrations")
        result = runner.apply_pending()
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(self, db: DB, migrations_dir: Path | str) -> None:
        self._db = db
        self._dir = Path(migrations_dir)
        self._ensure_migrations_table()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_pending(self, progress: ProgressCallback | None = None) -> MigrationResult:
        """Apply all pending migrations in filename order, stopping at the first error.

        *progress* is called with ``("migrating", name)`` before and
        ``("migrated", name)`` after each file.
        """
        result = MigrationResult()
        applied = {m.migration for m in self.get_applied()}
        pending = []
        for sql_file in self.discover():
            if sql_file.name in applied:
                result.skipped.append(sql_file.name)
            else:
                pending.append(sql_file)
        if not pending:
            return result

        result.batch = self.next_batch()
        with LogContext(batch=result.batch):
            for sql_file in pending:
                name = sql_file.name
                if progress:
                    progress("migrating", name)
                try:
                    self._db.execute_script(sql_file.read_text(encoding="utf-8"))
                    self._db.insert(Migration(migration=name, batch=result.batch))
                except Exception as exc:
                    result.errors[name] = str(exc)
                    logger.error("migration.failed", migration=name, error=str(exc))
                    break
                result.applied.append(name)
                logger.info("migration.applied", migration=name)
                if progress:
                    progress("migrated", name)

        return result

    def fresh(self, progress: ProgressCallback | None = None) -> MigrationResult:
        """Drop every table, then apply all migrations."""
        self.drop_all_tables()
        self._ensure_migrations_table()
        return self.apply_pending(progress)

    def rollback(self) -> list[str]:
        """Remove the bookkeeping rows of the last batch (does NOT reverse SQL).

        Returns the migration names that were removed.

        .. warning::
            Only the tracking records are deleted; no ``DROP`` or ``ALTER``
            is executed.
        """
        batch = self.current_batch()
        if batch is None:
            return []
        names = [
            m.migration
            for m in self._db.where("batch", "=", batch).order_by("id").get(Migration)
        ]
        self._db.where("batch", "=", batch).delete(Migration)
        logger.info("migration.rolled_back", batch=batch, migrations=names)
        return names

    def status(self) -> list[MigrationStatus]:
        """Applied/pending state of every migration file."""
        batches = {m.migration: m.batch for m in self.get_applied()}
        return [
            MigrationStatus(
                migration=f.name,
                ran=f.name in batches,
                batch=batches.get(f.name),
            )
            for f in self.discover()
        ]

    def get_applied(self) -> list[Migration]:
        return self._db.order_by("id").get(Migration)

    def count_applied(self) -> int:
        return self._db.count(Migration)

    def current_batch(self) -> int | None:
        row = self._db.query("SELECT MAX(batch) FROM migrations")[0]
        return int(row[0]) if row[0] is not None else None

    def next_batch(self) -> int:
        return (self.current_batch() or 0) + 1

    def discover(self) -> list[Path]:
        """Sorted ``.sql`` files of the migrations directory."""
        if not self._dir.is_dir():
            raise MigrationError(f"Migrations directory not found: {self._dir}").with_context(
                path=str(self._dir)
            )
        return sorted(self._dir.glob("*.sql"))

    def drop_all_tables(self) -> list[str]:
        """Drop every user table. Returns the dropped table names."""
        tables = [
            row[0]
            for row in self._db.query(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
            )
        ]
        self._db.execute("PRAGMA foreign_keys=OFF")
        try:
            for table in tables:
                self._db.execute(f"DROP TABLE IF EXISTS {table}")
        finally:
            self._db.execute("PRAGMA foreign_keys=ON")
        logger.info("migration.tables_dropped", tables=tables)
        return tables

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_migrations_table(self) -> None:
        self._db.execute(
            """
            CREATE TABLE IF NOT EXISTS migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                migration TEXT NOT NULL,
                batch INTEGER NOT NULL
            )
            """
        )
