"""Statement builders: select, insert, update, delete, exists and count.

Each builder reads a bound :class:`~recordspine.core.statement.StatementState`
and returns the final SQL text with its positional arguments. Clause
order for selects is fixed::

    SELECT <columns|explicit> FROM <table>
        [JOIN ...] [WHERE ...] [GROUP BY ...] [HAVING ...]
        [ORDER BY ...] [LIMIT ...] [OFFSET ...]
"""

from __future__ import annotations

from typing import Any

from recordspine.core.compose import ColumnLayout, build_conditions, build_joins
from recordspine.core.errors import BuildError
from recordspine.core.naming import unqualify
from recordspine.core.statement import StatementState

AUDIT_COLUMNS = ("created_at", "updated_at")


def _require_bound(state: StatementState) -> None:
    if not state.bound:
        raise BuildError("No record bound to the statement")


def _pagination(state: StatementState) -> str:
    if state.offset and not state.limit:
        # SQLite only accepts OFFSET after a LIMIT
        return " LIMIT -1" + state.offset
    return state.limit + state.offset


def build_select(state: StatementState) -> tuple[str, list[Any], ColumnLayout]:
    """Build a SELECT over the bound record and its registered relations."""
    _require_bound(state)
    build_conditions(state)
    layout = build_joins(state)

    sql = state.select or "SELECT " + ",".join(state.columns)
    sql += " FROM " + state.table
    sql += state.join + state.where + state.group_by + state.having + state.order_by
    sql += _pagination(state)
    return sql, list(state.args), layout


def build_insert(state: StatementState) -> tuple[str, list[Any]]:
    """``INSERT INTO <table> (<columns>) VALUES (?, ...)``."""
    _require_bound(state)
    columns = ", ".join(unqualify(c) for c in state.columns)
    params = ", ".join("?" for _ in state.columns)
    sql = f"INSERT INTO {state.table} ({columns}) VALUES ({params})"
    return sql, list(state.values)


def _default_predicate(state: StatementState) -> tuple[str, Any]:
    entity = state.entity
    if entity.pk_column is None:
        raise BuildError(
            f"{entity.record_type.__name__} has no primary key and no condition was given"
        ).with_context(table=entity.table)
    return f" WHERE {entity.pk_column} = ?", entity.primary_key_value(state.model)


def build_update(state: StatementState) -> tuple[str, list[Any]]:
    """``UPDATE <table> SET col = ?, ... WHERE ...``.

    The primary key and the audit columns are never set. Without an
    explicit condition the statement targets the record's primary key.
    """
    _require_bound(state)
    build_conditions(state)

    excluded = {f"{state.table}.{c}" for c in AUDIT_COLUMNS}
    if state.entity.pk_column:
        excluded.add(state.entity.pk_column)

    sets: list[str] = []
    args: list[Any] = []
    for column, value in zip(state.columns, state.values):
        if column in excluded:
            continue
        sets.append(f"{unqualify(column)} = ?")
        args.append(value)
    if not sets:
        raise BuildError("Nothing to update").with_context(table=state.table)

    sql = f"UPDATE {state.table} SET " + ", ".join(sets)
    if state.where:
        sql += state.where
        args.extend(state.args[: len(state.conditions)])
    else:
        predicate, pk_value = _default_predicate(state)
        sql += predicate
        args.append(pk_value)
    return sql, args


def build_delete(state: StatementState) -> tuple[str, list[Any]]:
    """``DELETE FROM <table>`` with the explicit or primary-key predicate."""
    _require_bound(state)
    build_conditions(state)

    sql = f"DELETE FROM {state.table}"
    if state.where:
        return sql + state.where, list(state.args[: len(state.conditions)])
    predicate, pk_value = _default_predicate(state)
    return sql + predicate, [pk_value]


def build_exists(state: StatementState) -> tuple[str, list[Any]]:
    """``SELECT EXISTS(SELECT 1 FROM ... LIMIT 1)``."""
    _require_bound(state)
    build_conditions(state)
    build_joins(state)

    inner = f"SELECT 1 FROM {state.table}" + state.join + state.where + state.group_by + state.having
    return f"SELECT EXISTS({inner} LIMIT 1)", list(state.args)


def build_count(state: StatementState) -> tuple[str, list[Any]]:
    """``SELECT COUNT(*) FROM ...``; distinct primary keys when relations are joined.

    With a caller-supplied GROUP BY or HAVING the groups are counted:
    ``SELECT COUNT(*) FROM (SELECT 1 FROM ... GROUP BY ... HAVING ...)``.
    """
    _require_bound(state)
    grouped = bool(state.group_by or state.having_conditions)
    build_conditions(state)
    build_joins(state)

    if grouped:
        inner = (
            f"SELECT 1 FROM {state.table}"
            + state.join + state.where + state.group_by + state.having
        )
        return f"SELECT COUNT(*) FROM ({inner})", list(state.args)

    target = "*"
    if state.relations and state.entity.pk_column:
        target = f"DISTINCT {state.entity.pk_column}"
    sql = f"SELECT COUNT({target}) FROM {state.table}" + state.join + state.where
    return sql, list(state.args[: len(state.conditions)])


__all__ = [
    "AUDIT_COLUMNS",
    "build_select",
    "build_insert",
    "build_update",
    "build_delete",
    "build_exists",
    "build_count",
]
