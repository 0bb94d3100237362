"""
Recording stub driver.

Satisfies the ``Connection`` protocol without a database: every executed
statement is recorded, and each call returns the next queued cursor (an
empty one with ``rowcount=1`` when nothing is queued).
"""

from __future__ import annotations

from typing import Any


class StubCursor:
    def __init__(
        self,
        rows: list[tuple] | None = None,
        rowcount: int = 1,
        lastrowid: Any = None,
    ) -> None:
        self._rows = list(rows or [])
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def fetchone(self) -> tuple | None:
        return self._rows.pop(0) if self._rows else None

    def fetchall(self) -> list[tuple]:
        rows, self._rows = self._rows, []
        return rows


class StubConnection:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[Any]]] = []
        self.commits = 0
        self.rollbacks = 0
        self._queue: list[StubCursor] = []

    def queue(self, rows: list[tuple] | None = None, rowcount: int = 1, lastrowid: Any = None) -> None:
        self._queue.append(StubCursor(rows, rowcount, lastrowid))

    def execute(self, sql: str, params: tuple = ()) -> StubCursor:
        self.calls.append((sql, list(params)))
        return self._queue.pop(0) if self._queue else StubCursor()

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    @property
    def last_sql(self) -> str:
        return self.calls[-1][0]

    @property
    def last_args(self) -> list[Any]:
        return self.calls[-1][1]
