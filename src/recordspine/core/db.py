"""Execution facade: the fluent ``DB`` handle.

A :class:`DB` wraps one driver connection and one pending
:class:`~recordspine.core.statement.StatementState`. Fluent calls
accumulate clauses; an operation (``get``, ``first``, ``exists``,
``count``, ``insert``, ``save``, ``delete``) detaches the pending state,
installs a fresh one, and only then binds, builds and executes. The
handle is therefore reset on every exit path, including errors.

Usage::

    db = DB(SqliteConnection("app.db"))

    users = db.where("age", ">", 30).order_by("name").get(User)
    post = db.join(Person, "author_id").where("id", "=", 7).first(Post)
    user = db.insert(User(name="ada", age=36))
    db.save(replace(user, age=37))
    db.delete(user)

A handle is not safe for concurrent use; serialize access externally
when sharing one across threads.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from recordspine.core.builders import (
    build_count,
    build_delete,
    build_exists,
    build_insert,
    build_select,
    build_update,
)
from recordspine.core.compose import map_record
from recordspine.core.errors import ConfigError, DatabaseError, NoRowsAffectedError
from recordspine.core.logging import get_logger
from recordspine.core.materialize import decode_value, materialize
from recordspine.core.protocols import Connection
from recordspine.core.statement import StatementState

logger = get_logger(__name__)


class DB:
    """Fluent statement builder and executor over one connection.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        autocommit: Commit after every write issued through this handle.
    """

    def __init__(self, conn: Connection, *, autocommit: bool = True) -> None:
        self.conn = conn
        self.autocommit = autocommit
        self._statement = StatementState()

    @classmethod
    def from_session(cls, session: Any, **kwargs: Any) -> DB:
        """Create a handle backed by a SQLAlchemy ORM session."""
        from recordspine.core.connection import SAConnectionBridge

        return cls(SAConnectionBridge(session), **kwargs)

    # -- Fluent configuration ----------------------------------------------

    @property
    def statement(self) -> StatementState:
        """The pending (not yet executed) statement state."""
        return self._statement

    def select(self, *columns: str) -> DB:
        self._statement.add_select(*columns)
        return self

    def join(self, model: Any, foreign_key: str) -> DB:
        """Register a relation to *model* through *foreign_key* on the primary table."""
        self._statement.add_relation(model, foreign_key)
        return self

    def where(self, column: str, operator: str, value: Any) -> DB:
        self._statement.add_condition(column, operator, value)
        return self

    def group_by(self, *columns: str) -> DB:
        self._statement.add_group_by(*columns)
        return self

    def having(self, column: str, operator: str, value: Any) -> DB:
        self._statement.add_having(column, operator, value)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> DB:
        self._statement.add_order_by(column, direction)
        return self

    def limit(self, limit: int) -> DB:
        self._statement.set_limit(limit)
        return self

    def offset(self, offset: int) -> DB:
        self._statement.set_offset(offset)
        return self

    def reset(self) -> DB:
        """Discard the pending statement."""
        self._statement = StatementState()
        return self

    def _take_statement(self) -> StatementState:
        state, self._statement = self._statement, StatementState()
        return state

    # -- Reads -------------------------------------------------------------

    def get(self, model: Any) -> list[Any]:
        """Select every matching row as a new record of *model*'s type.

        Zero rows is not an error: an empty list is returned.
        """
        state = self._take_statement()
        map_record(state, model)
        sql, args, layout = build_select(state)
        cursor = self._run(sql, args)
        return materialize(layout, cursor)

    def first(self, model: Any) -> Any | None:
        """The first matching record, or ``None`` when nothing matches."""
        rows = self.limit(1).get(model)
        return rows[0] if rows else None

    def exists(self, model: Any) -> bool:
        state = self._take_statement()
        state.bind(model)
        sql, args = build_exists(state)
        row = self._run(sql, args).fetchone()
        if row is None:
            raise DatabaseError("EXISTS query returned no row").with_context(
                table=state.table, sql=sql
            )
        value = row[0]
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8")
        return str(value).lower() in ("1", "true")

    def count(self, model: Any) -> int:
        state = self._take_statement()
        state.bind(model)
        sql, args = build_count(state)
        row = self._run(sql, args).fetchone()
        return int(row[0]) if row is not None else 0

    # -- Writes ------------------------------------------------------------

    def insert(self, model: Any) -> Any:
        """Insert *model*; returns it, with a driver-assigned primary key when it had none."""
        state = self._take_statement()
        if isinstance(model, type):
            raise ConfigError(f"insert requires a record instance, got type {model.__name__}")
        entity = map_record(state, model)
        sql, args = build_insert(state)
        cursor = self._run(sql, args, write=True)

        pk = entity.primary_key
        lastrowid = getattr(cursor, "lastrowid", None)
        if pk is not None and getattr(model, pk.name) is None and lastrowid is not None:
            return dataclasses.replace(model, **{pk.name: decode_value(pk, lastrowid)})
        return model

    def save(self, model: Any) -> int:
        """Update *model*'s row (or the rows matching registered conditions).

        Raises:
            NoRowsAffectedError: If the update matched nothing.
        """
        state = self._take_statement()
        map_record(state, model)
        sql, args = build_update(state)
        count = self._run(sql, args, write=True).rowcount
        if count == 0:
            raise NoRowsAffectedError("No rows updated").with_context(
                table=state.table, sql=sql
            )
        return count

    def delete(self, model: Any) -> int:
        """Delete *model*'s row (or the rows matching registered conditions)."""
        state = self._take_statement()
        map_record(state, model)
        sql, args = build_delete(state)
        return self._run(sql, args, write=True).rowcount

    # -- Raw SQL -----------------------------------------------------------

    def execute(self, sql: str, *args: Any) -> int:
        """Execute arbitrary SQL; returns rows affected."""
        return self._run(sql, list(args), write=True).rowcount

    def query(self, sql: str, *args: Any) -> list[Any]:
        """Execute arbitrary SQL; returns raw rows."""
        return self._run(sql, list(args)).fetchall()

    def execute_script(self, sql: str) -> None:
        """Execute multi-statement SQL text (migration files)."""
        logger.debug("statement.built", sql=sql, args=[])
        try:
            script = getattr(self.conn, "executescript", None)
            if script is not None:
                script(sql)
            else:
                self.conn.execute(sql, ())
        except Exception as e:
            logger.error("statement.failed", sql=sql, error=str(e))
            raise
        if self.autocommit:
            self.conn.commit()

    def _run(self, sql: str, args: list[Any], *, write: bool = False) -> Any:
        logger.debug("statement.built", sql=sql, args=args)
        try:
            cursor = self.conn.execute(sql, tuple(args))
        except Exception as e:
            logger.error("statement.failed", sql=sql, error=str(e))
            raise
        if write and self.autocommit:
            self.conn.commit()
        return cursor


__all__ = ["DB"]
