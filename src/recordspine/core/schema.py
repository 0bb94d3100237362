"""Schema introspection: record types to entity descriptors.

A *record* is a plain ``@dataclass``. Its public fields are classified
once per type into a closed set of kinds, so that the composer and the
materializer never re-derive type checks per row::

    @dataclass
    class Post:
        id: int | None = None
        title: str = ""
        author_id: int | None = None
        author: Person | None = field(default=None, metadata={"foreign_key": "author_id"})
        tags: list[Tag] = field(default_factory=list, metadata={"json_aggregate": "slug"})

    describe(Post).table                  -> "posts"
    describe(Post).columns()              -> ["posts.id", "posts.title", "posts.author_id"]
    describe(Post).field("author").kind   -> FieldKind.RELATION
    describe(Post).field("tags").kind     -> FieldKind.COLLECTION

Class-level overrides:

* ``__tablename__`` replaces the derived (naively pluralized) table name.
* ``__primary_key__`` names the primary-key field when it is not ``id``.

Field metadata:

* ``primary_key=True`` marks the primary-key field.
* ``foreign_key="author_id"`` names the column a relation joins through.
* ``json_aggregate="slug"`` tags a collection as a JSON aggregate.

Tags:
    schema, introspection, dataclasses, reflection
"""

from __future__ import annotations

import dataclasses
import enum
import types
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

from recordspine.core.errors import ConfigError, NotAStructError
from recordspine.core.naming import column_name, table_name


class FieldKind(str, enum.Enum):
    """Closed classification of record fields."""

    BYTES = "bytes"
    STRING = "str"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    UNSUPPORTED = "unsupported"
    RELATION = "relation"
    COLLECTION = "collection"

    @property
    def is_relation(self) -> bool:
        return self in (FieldKind.RELATION, FieldKind.COLLECTION)


@dataclass(frozen=True)
class FieldDescriptor:
    """One public field of a record type."""

    name: str
    column: str
    kind: FieldKind
    annotation: Any
    related: type | None = None
    optional: bool = False
    foreign_key: str | None = None
    json_key: str | None = None
    has_default: bool = False

    @property
    def is_relation(self) -> bool:
        return self.kind.is_relation

    @property
    def is_json_aggregate(self) -> bool:
        return self.kind is FieldKind.COLLECTION and self.json_key is not None


@dataclass(frozen=True)
class EntityDescriptor:
    """Derived table/column/relation metadata for a record type."""

    record_type: type
    table: str
    fields: tuple[FieldDescriptor, ...]
    primary_key: FieldDescriptor | None

    @property
    def scalar_fields(self) -> list[FieldDescriptor]:
        return [f for f in self.fields if not f.is_relation]

    @property
    def relation_fields(self) -> list[FieldDescriptor]:
        return [f for f in self.fields if f.is_relation]

    @property
    def pk_column(self) -> str | None:
        """Qualified primary-key column, e.g. ``users.id``."""
        if self.primary_key is None:
            return None
        return f"{self.table}.{self.primary_key.column}"

    def field(self, name: str) -> FieldDescriptor:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    def columns(self, qualified: bool = True) -> list[str]:
        """Scalar columns in field order."""
        if qualified:
            return [f"{self.table}.{f.column}" for f in self.scalar_fields]
        return [f.column for f in self.scalar_fields]

    def values(self, record: Any) -> list[Any]:
        """Scalar values of *record*, parallel to :meth:`columns`.

        A bare type has no values; every column maps to ``None``.
        """
        if isinstance(record, type):
            return [None for _ in self.scalar_fields]
        return [getattr(record, f.name) for f in self.scalar_fields]

    def primary_key_value(self, record: Any) -> Any:
        if self.primary_key is None or isinstance(record, type):
            return None
        return getattr(record, self.primary_key.name)


def record_type(record: Any) -> type:
    """Return the dataclass type of *record* (a record instance or type)."""
    cls = record if isinstance(record, type) else type(record)
    if not dataclasses.is_dataclass(cls):
        raise NotAStructError(record)
    return cls


def describe(record: Any) -> EntityDescriptor:
    """Entity descriptor for a record instance or record type.

    Raises:
        NotAStructError: If *record* is not a dataclass instance or type.
    """
    return _describe_type(record_type(record))


@lru_cache(maxsize=None)
def _describe_type(cls: type) -> EntityDescriptor:
    try:
        hints = typing.get_type_hints(cls)
    except NameError as e:
        raise ConfigError(
            f"Cannot resolve field annotations of {cls.__name__}: {e}", cause=e
        ) from e

    table = getattr(cls, "__tablename__", None) or table_name(cls.__name__)
    pk_name = getattr(cls, "__primary_key__", None)

    descriptors: list[FieldDescriptor] = []
    for f in dataclasses.fields(cls):
        if f.name.startswith("_") or not f.init:
            continue
        annotation = hints.get(f.name, f.type)
        kind, related, optional = _classify(annotation)
        descriptors.append(
            FieldDescriptor(
                name=f.name,
                column=column_name(f.name),
                kind=kind,
                annotation=annotation,
                related=related,
                optional=optional,
                foreign_key=f.metadata.get("foreign_key"),
                json_key=f.metadata.get("json_aggregate") if kind is FieldKind.COLLECTION else None,
                has_default=(
                    f.default is not dataclasses.MISSING
                    or f.default_factory is not dataclasses.MISSING
                ),
            )
        )
        if f.metadata.get("primary_key"):
            pk_name = f.name

    primary_key = _find_primary_key(descriptors, pk_name)
    return EntityDescriptor(
        record_type=cls,
        table=table,
        fields=tuple(descriptors),
        primary_key=primary_key,
    )


def _find_primary_key(
    descriptors: list[FieldDescriptor], pk_name: str | None
) -> FieldDescriptor | None:
    candidates = [pk_name] if pk_name else ["id", "Id"]
    for name in candidates:
        for f in descriptors:
            if f.name == name and not f.is_relation:
                return f
    return None


def _classify(annotation: Any) -> tuple[FieldKind, type | None, bool]:
    """Return ``(kind, related record type, optional)`` for an annotation."""
    optional = False
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = typing.get_args(annotation)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) != 1:
            return FieldKind.UNSUPPORTED, None, False
        optional = len(non_none) < len(args)
        annotation = non_none[0]
        origin = typing.get_origin(annotation)

    if origin is list:
        args = typing.get_args(annotation)
        if args and isinstance(args[0], type) and dataclasses.is_dataclass(args[0]):
            return FieldKind.COLLECTION, args[0], optional
        return FieldKind.UNSUPPORTED, None, optional

    if origin is not None or not isinstance(annotation, type):
        return FieldKind.UNSUPPORTED, None, optional
    if dataclasses.is_dataclass(annotation):
        return FieldKind.RELATION, annotation, optional
    # bool before int: bool is an int subclass
    if issubclass(annotation, bool):
        return FieldKind.BOOL, None, optional
    if issubclass(annotation, int):
        return FieldKind.INT, None, optional
    if issubclass(annotation, float):
        return FieldKind.FLOAT, None, optional
    if issubclass(annotation, str):
        return FieldKind.STRING, None, optional
    if issubclass(annotation, (bytes, bytearray)):
        return FieldKind.BYTES, None, optional
    return FieldKind.UNSUPPORTED, None, optional


__all__ = [
    "FieldKind",
    "FieldDescriptor",
    "EntityDescriptor",
    "describe",
    "record_type",
]
