"""
Driver-boundary protocols for record-spine.

The mapping core never imports a database driver. It talks to any object
satisfying :class:`Connection`; ``execute`` returns a :class:`Cursor`
exposing the streamed rows plus the write outcome (``rowcount``,
``lastrowid``).

Architecture:
    ::

        Connection Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params)   → Cursor (positional ? params)  │
        │ commit()               → Commit transaction            │
        │ rollback()             → Rollback transaction          │
        └────────────────────────────────────────────────────────┘

        Cursor Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ fetchone() / fetchall()                                │
        │ rowcount               → rows affected by last write   │
        │ lastrowid              → id assigned by last insert    │
        └────────────────────────────────────────────────────────┘

        Implementations:
        ┌────────────────────────────────────────────────────────┐
        │ SqliteConnection    → stdlib sqlite3                   │
        │ SAConnectionBridge  → SQLAlchemy Session               │
        └────────────────────────────────────────────────────────┘

Tags:
    protocol, connection, cursor, database, driver-boundary
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """Result of one executed statement."""

    rowcount: int
    lastrowid: Any

    def fetchone(self) -> Any:
        """Fetch the next row, or ``None`` when exhausted."""
        ...

    def fetchall(self) -> list:
        """Fetch all remaining rows."""
        ...


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous connection used by :class:`~recordspine.core.db.DB`.

    Examples:
        >>> cursor = conn.execute("SELECT * FROM users WHERE users.id = ?", (1,))
        >>> row = cursor.fetchone()
    """

    def execute(self, sql: str, params: tuple = ()) -> Cursor:
        """Execute a statement with positional ``?`` parameters."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


__all__ = [
    "Connection",
    "Cursor",
]
