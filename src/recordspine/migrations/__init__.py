"""Schema migration runner for record-spine.

Applies numbered ``.sql`` files in filename order, recording each in the
``migrations(id, migration, batch)`` table.

Modules
-------
runner    MigrationRunner with apply_pending() / fresh() / rollback() / status()
"""

from recordspine.migrations.runner import (
    Migration,
    MigrationResult,
    MigrationRunner,
    MigrationStatus,
)

__all__ = ["Migration", "MigrationResult", "MigrationRunner", "MigrationStatus"]
