"""Result materialization: rows back into records.

Rows are streamed one at a time from the driver cursor. Each row builds
a fresh record instance from the :class:`~recordspine.core.compose.ColumnLayout`
used to build the select; caller-supplied records are never mutated.

Decoding by field kind:

==========  =================================================
Kind        Rule
==========  =================================================
bytes       passthrough (``str`` is UTF-8 encoded)
str         passthrough (``bytes`` is UTF-8 decoded)
bool        native ``bool`` passthrough, else ``str(value) == "1"``
int         base-10 parse, failure -> :class:`DecodeError`
float       float parse, failure -> :class:`DecodeError`
other       :class:`UnsupportedTypeError`
==========  =================================================

SQL ``NULL`` decodes to ``None`` for every scalar kind.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from recordspine.core.compose import ColumnLayout, RelationSlot
from recordspine.core.errors import DecodeError, UnsupportedTypeError
from recordspine.core.logging import get_logger
from recordspine.core.schema import EntityDescriptor, FieldDescriptor, FieldKind
from recordspine.core.statement import RelationShape

logger = get_logger(__name__)

TRUTHY = "1"


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def decode_value(field: FieldDescriptor, value: Any) -> Any:
    """Decode one raw column value into *field*'s Python type."""
    if value is None:
        return None

    kind = field.kind
    if kind is FieldKind.BYTES:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return str(value).encode("utf-8")
    if kind is FieldKind.STRING:
        return _text(value)
    if kind is FieldKind.BOOL:
        if isinstance(value, bool):
            return value
        return _text(value) == TRUTHY
    if kind is FieldKind.INT:
        try:
            return int(_text(value), 10)
        except ValueError as e:
            raise DecodeError(
                f"Field {field.name} as int: {e}",
                field=field.name,
                target="int",
                value=value,
                cause=e,
            ) from e
    if kind is FieldKind.FLOAT:
        try:
            return float(_text(value))
        except ValueError as e:
            raise DecodeError(
                f"Field {field.name} as float: {e}",
                field=field.name,
                target="float",
                value=value,
                cause=e,
            ) from e
    raise UnsupportedTypeError(
        f"Unsupported type for field {field.name}: {field.annotation!r}",
        field=field.name,
        target=str(field.annotation),
        value=value,
    )


def _scalars(entity: EntityDescriptor, row: Any, offset: int) -> dict[str, Any]:
    return {
        f.name: decode_value(f, row[offset + i])
        for i, f in enumerate(entity.scalar_fields)
    }


def _unset_relations(entity: EntityDescriptor, kwargs: dict[str, Any]) -> None:
    for f in entity.relation_fields:
        if f.name not in kwargs and not f.has_default:
            kwargs[f.name] = None


def _related(slot: RelationSlot, row: Any) -> Any:
    width = len(slot.entity.scalar_fields)
    if all(row[slot.offset + i] is None for i in range(width)):
        # LEFT JOIN without a match
        return None
    kwargs = _scalars(slot.entity, row, slot.offset)
    _unset_relations(slot.entity, kwargs)
    return slot.entity.record_type(**kwargs)


def _json_aggregate(slot: RelationSlot, raw: Any) -> list[Any]:
    if raw is None:
        return []
    try:
        items = json.loads(_text(raw))
    except ValueError as e:
        logger.warning(
            "materialize.json_aggregate_invalid",
            field=slot.field.name,
            error=str(e),
        )
        return []
    if not isinstance(items, list):
        return []

    records = []
    for item in items:
        if not isinstance(item, dict) or all(v is None for v in item.values()):
            continue
        kwargs = {
            f.name: decode_value(f, item.get(f.column))
            for f in slot.entity.scalar_fields
        }
        _unset_relations(slot.entity, kwargs)
        records.append(slot.entity.record_type(**kwargs))
    return records


def materialize_row(layout: ColumnLayout, row: Any) -> Any:
    """Build one record (with its registered relations) from *row*."""
    if len(row) < layout.width:
        raise DecodeError(
            f"Row has {len(row)} columns, expected {layout.width}",
            target=layout.entity.record_type.__name__,
        ).with_context(table=layout.entity.table)

    entity = layout.entity
    kwargs = _scalars(entity, row, 0)
    for f in entity.relation_fields:
        slot = layout.slot_for(f)
        if slot is None:
            continue
        if slot.shape is RelationShape.JSON_AGGREGATE:
            kwargs[f.name] = _json_aggregate(slot, row[slot.offset])
            continue
        related = _related(slot, row)
        if f.kind is FieldKind.COLLECTION:
            kwargs[f.name] = [related] if related is not None else []
        else:
            kwargs[f.name] = related
    _unset_relations(entity, kwargs)
    return entity.record_type(**kwargs)


def iter_rows(cursor: Any) -> Iterable[Any]:
    """Stream rows from a driver cursor one at a time."""
    return iter(cursor.fetchone, None)


def materialize(layout: ColumnLayout, cursor: Any) -> list[Any]:
    """Materialize every row of *cursor*. Zero rows yields ``[]``."""
    return [materialize_row(layout, row) for row in iter_rows(cursor)]


__all__ = [
    "TRUTHY",
    "decode_value",
    "materialize_row",
    "materialize",
    "iter_rows",
]
