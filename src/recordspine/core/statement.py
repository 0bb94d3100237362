"""Statement state: the per-operation clause accumulator.

A :class:`StatementState` collects everything a fluent chain configures
(``select``, ``join``, ``where``, ``group_by``, ``having``, ``order_by``,
``limit``, ``offset``) and, once an operation binds a record, the
mapped columns, values and positional arguments.

Clause fragments are kept as ready-to-concatenate SQL text: the first
call to a clause opens it with its keyword (``" GROUP BY a"``) and later
calls append with a comma (``",b"``).

Invariants:

* ``columns[i]`` always corresponds to ``values[i]``.
* ``args`` lists predicate parameters in the left-to-right order of the
  ``?`` markers emitted into the WHERE/HAVING text.

One state belongs to one :class:`~recordspine.core.db.DB` handle and is
not safe to share between concurrent callers.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from recordspine.core.schema import EntityDescriptor, describe, record_type


@dataclass(frozen=True)
class Condition:
    """One ``column operator ?`` predicate."""

    column: str
    operator: str
    value: Any


class RelationShape(str, enum.Enum):
    """How a registered relation is composed into a select."""

    JOIN = "join"
    JSON_AGGREGATE = "json_aggregate"


@dataclass(frozen=True)
class Relation:
    """A registered relation: foreign-key column name -> related record."""

    foreign_key: str
    target: Any

    @property
    def related_type(self) -> type:
        return record_type(self.target)


@dataclass
class StatementState:
    """Mutable accumulator for one logical statement."""

    # fluent configuration
    select: str = ""
    conditions: list[Condition] = field(default_factory=list)
    having_conditions: list[Condition] = field(default_factory=list)
    relations: dict[str, Relation] = field(default_factory=dict)
    group_by: str = ""
    order_by: str = ""
    limit: str = ""
    offset: str = ""

    # composed
    join: str = ""
    where: str = ""
    having: str = ""
    columns: list[str] = field(default_factory=list)
    values: list[Any] = field(default_factory=list)
    args: list[Any] = field(default_factory=list)

    # binding
    model: Any = None
    table: str | None = None
    entity: EntityDescriptor | None = None

    # -- fluent accumulation ------------------------------------------------

    def add_select(self, *columns: str) -> None:
        for column in columns:
            if not self.select:
                self.select = f"SELECT {column}"
            else:
                self.select += f",{column}"

    def add_relation(self, model: Any, foreign_key: str) -> None:
        # re-registering a key replaces the relation, keeping its position
        self.relations[foreign_key] = Relation(foreign_key=foreign_key, target=model)

    def add_condition(self, column: str, operator: str, value: Any) -> None:
        self.conditions.append(Condition(column, operator, value))

    def add_having(self, column: str, operator: str, value: Any) -> None:
        self.having_conditions.append(Condition(column, operator, value))

    def add_group_by(self, *columns: str) -> None:
        for column in columns:
            if not self.group_by:
                self.group_by = f" GROUP BY {column}"
            else:
                self.group_by += f",{column}"

    def add_order_by(self, column: str, direction: str = "ASC") -> None:
        if not self.order_by:
            self.order_by = f" ORDER BY {column} {direction}"
        else:
            self.order_by += f",{column} {direction}"

    def set_limit(self, limit: int) -> None:
        self.limit = f" LIMIT {int(limit)}"

    def set_offset(self, offset: int) -> None:
        self.offset = f" OFFSET {int(offset)}"

    # -- binding ------------------------------------------------------------

    def bind(self, model: Any) -> EntityDescriptor:
        """Describe *model*; the first binding fixes the primary table.

        Raises:
            NotAStructError: If *model* is not a record.
        """
        entity = describe(model)
        if self.entity is None:
            self.model = model
            self.table = entity.table
            self.entity = entity
        return entity

    @property
    def bound(self) -> bool:
        return self.entity is not None


__all__ = [
    "Condition",
    "Relation",
    "RelationShape",
    "StatementState",
]
