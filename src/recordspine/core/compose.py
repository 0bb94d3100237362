"""Condition and join composition.

Turns the condition triples and relation registrations held by a
:class:`~recordspine.core.statement.StatementState` into SQL fragments,
the positional argument list, and a :class:`ColumnLayout` recording
where each record's columns sit in the select list.

WHERE composition::

    where("name", "=", "ada").where("age", ">", 30)      # table: users
    ->  " WHERE users.name = ? AND users.age > ?"          args: ["ada", 30]

JOIN composition (registration order)::

    join(Person, "author_id")                            # table: posts
    ->  " LEFT JOIN people ON people.id = posts.author_id"
        columns += ["people.id", "people.name"]

JSON aggregate (field tagged ``json_aggregate="slug"``)::

    columns += ["'[' || COALESCE(GROUP_CONCAT(JSON_OBJECT('id', tags.id, ...)), '') || ']' AS tags"]
    ->  " LEFT JOIN tags ON EXISTS (SELECT 1 FROM json_each(posts.tags) WHERE json_each.value = tags.slug)"
        " GROUP BY posts.id"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from recordspine.core.errors import BuildError
from recordspine.core.naming import qualify
from recordspine.core.schema import EntityDescriptor, FieldDescriptor, describe
from recordspine.core.statement import Condition, Relation, RelationShape, StatementState


@dataclass(frozen=True)
class RelationSlot:
    """Where a registered relation's columns were appended."""

    relation: Relation
    shape: RelationShape
    entity: EntityDescriptor
    offset: int
    field: FieldDescriptor | None = None


@dataclass(frozen=True)
class ColumnLayout:
    """Column offsets of the primary record and its relations in a row."""

    entity: EntityDescriptor
    slots: tuple[RelationSlot, ...] = ()
    width: int = 0

    def slot_for(self, field: FieldDescriptor) -> RelationSlot | None:
        for slot in self.slots:
            if slot.field is not None and slot.field.name == field.name:
                return slot
        return None


def map_record(state: StatementState, model: Any) -> EntityDescriptor:
    """Bind *model* and append its scalar columns and values.

    Columns are qualified with the record's table; values are taken from
    the instance (``None`` for a bare type).
    """
    entity = state.bind(model)
    state.columns.extend(entity.columns())
    state.values.extend(entity.values(model))
    return entity


def build_conditions(state: StatementState) -> None:
    """Compose ``state.where`` / ``state.having`` and the argument list.

    WHERE columns are qualified with the bound table. HAVING columns are
    emitted verbatim: they usually name select aliases or aggregates.
    """
    state.where, where_args = _compose(state.conditions, state.table, "WHERE")
    state.having, having_args = _compose(state.having_conditions, None, "HAVING")
    state.args = where_args + having_args


def _compose(
    conditions: list[Condition], table: str | None, keyword: str
) -> tuple[str, list[Any]]:
    sql = ""
    args: list[Any] = []
    for condition in conditions:
        column = qualify(condition.column, table)
        if not sql:
            sql = f" {keyword} {column} {condition.operator} ?"
        else:
            sql += f" AND {column} {condition.operator} ?"
        args.append(condition.value)
    return sql, args


def match_field(entity: EntityDescriptor, relation: Relation) -> FieldDescriptor | None:
    """Find the relation field of *entity* fed by *relation*.

    Matched by declared ``foreign_key`` metadata, then by the
    ``<field>_id`` convention, then by the related record type.
    """
    candidates = entity.relation_fields
    for f in candidates:
        if f.foreign_key == relation.foreign_key:
            return f
    for f in candidates:
        if f.foreign_key is None and f"{f.column}_id" == relation.foreign_key:
            return f
    related = relation.related_type
    for f in candidates:
        if f.foreign_key is None and f.related is related:
            return f
    return None


def build_joins(state: StatementState) -> ColumnLayout:
    """Compose every registered relation, in registration order.

    Must run after the primary record is bound and mapped.
    """
    entity = state.entity
    if entity is None:
        raise BuildError("No record bound before composing joins")

    slots: list[RelationSlot] = []
    for relation in state.relations.values():
        field = match_field(entity, relation)
        related = describe(relation.target)
        if field is not None and field.is_json_aggregate:
            slots.append(_json_aggregate(state, entity, related, relation, field))
        else:
            slots.append(_left_join(state, related, relation, field))

    return ColumnLayout(entity=entity, slots=tuple(slots), width=len(state.columns))


def _left_join(
    state: StatementState,
    related: EntityDescriptor,
    relation: Relation,
    field: FieldDescriptor | None,
) -> RelationSlot:
    if related.pk_column is None:
        raise BuildError(
            f"Related record {related.record_type.__name__} has no primary key"
        ).with_context(table=related.table)

    offset = len(state.columns)
    state.columns.extend(related.columns())
    state.values.extend(related.values(relation.target))
    state.join += (
        f" LEFT JOIN {related.table} ON {related.pk_column} = "
        f"{state.table}.{relation.foreign_key}"
    )
    return RelationSlot(
        relation=relation,
        shape=RelationShape.JOIN,
        entity=related,
        offset=offset,
        field=field,
    )


def _json_aggregate(
    state: StatementState,
    entity: EntityDescriptor,
    related: EntityDescriptor,
    relation: Relation,
    field: FieldDescriptor,
) -> RelationSlot:
    if entity.pk_column is None:
        raise BuildError(
            f"JSON aggregate on {entity.record_type.__name__} requires a primary key"
        ).with_context(table=entity.table, field=field.name)

    pairs = ", ".join(
        f"'{column}', {related.table}.{column}"
        for column in related.columns(qualified=False)
    )
    offset = len(state.columns)
    state.columns.append(
        f"'[' || COALESCE(GROUP_CONCAT(JSON_OBJECT({pairs})), '') || ']' AS {field.column}"
    )
    state.values.append(None)
    state.join += (
        f" LEFT JOIN {related.table} ON EXISTS (SELECT 1 FROM json_each("
        f"{state.table}.{field.column}) WHERE json_each.value = "
        f"{related.table}.{field.json_key})"
    )
    if entity.pk_column not in _group_columns(state.group_by):
        state.add_group_by(entity.pk_column)
    return RelationSlot(
        relation=relation,
        shape=RelationShape.JSON_AGGREGATE,
        entity=related,
        offset=offset,
        field=field,
    )


def _group_columns(group_by: str) -> list[str]:
    if not group_by:
        return []
    return [c.strip() for c in group_by.replace(" GROUP BY ", "", 1).split(",")]


__all__ = [
    "ColumnLayout",
    "RelationSlot",
    "map_record",
    "build_conditions",
    "build_joins",
    "match_field",
]
