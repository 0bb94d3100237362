"""Naming engine: type and field names to table and column identifiers.

The wire contract between records and the database is purely
conventional::

    class User        -> table  users
    class Category    -> table  categories
    field created_at  -> column created_at
    field CreatedAt   -> column created_at

Pluralization is naive (``y`` -> ``ies``, otherwise ``s``).
Irregular plurals (``Person`` -> ``people``) are not guessed; set
``__tablename__`` on the record instead.

Tags:
    naming, snake-case, pluralization, schema
"""

from __future__ import annotations


def snake_case(name: str) -> str:
    """Lower-case *name*, inserting ``_`` before each uppercase letter.

    No underscore is inserted before the first character, nor before an
    uppercase letter that follows another uppercase letter or an
    underscore.

    >>> snake_case("CreatedAt")
    'created_at'
    >>> snake_case("UserID")
    'user_id'
    """
    chars: list[str] = []
    prev = ""
    for i, ch in enumerate(name):
        if "A" <= ch <= "Z":
            if i > 0 and not ("A" <= prev <= "Z") and prev != "_":
                chars.append("_")
            chars.append(ch.lower())
        else:
            chars.append(ch)
        prev = ch
    return "".join(chars)


def pluralize(word: str) -> str:
    """Naive English plural: ``Category`` -> ``Categories``, ``User`` -> ``Users``."""
    if word.endswith("y"):
        word = word[:-1] + "ie"
    return word + "s"


def table_name(type_name: str) -> str:
    """Table name for a record type name."""
    return pluralize(snake_case(type_name))


def column_name(field_name: str, table: str | None = None) -> str:
    """Column name for a field, optionally qualified as ``<table>.<column>``."""
    column = snake_case(field_name)
    if table:
        return f"{table}.{column}"
    return column


def qualify(column: str, table: str | None) -> str:
    """Prefix a bare column identifier with *table*.

    Already-qualified columns and expressions (``COUNT(*)``) pass through.
    """
    if table and column.isidentifier():
        return f"{table}.{column}"
    return column


def unqualify(column: str) -> str:
    """Strip a ``<table>.`` prefix."""
    return column.rsplit(".", 1)[-1]


__all__ = [
    "snake_case",
    "pluralize",
    "table_name",
    "column_name",
    "qualify",
    "unqualify",
]
