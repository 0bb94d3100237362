"""record-spine core -- typed records to parameterized SQL and back.

Architecture::

    Layer 1 -- Types & Errors
        errors.py          Structured error hierarchy (RecordSpineError)
        protocols.py       Driver boundary (Connection, Cursor)
        logging.py         Structured logging (structlog)
        settings.py        DatabaseSettings (DB_* environment)

    Layer 2 -- Schema
        naming.py          snake_case / pluralize / table & column names
        schema.py          Entity descriptors, closed field-kind classification

    Layer 3 -- Statements
        statement.py       StatementState accumulator, Condition, Relation
        compose.py         WHERE/HAVING/JOIN composition, column layout
        builders.py        select / insert / update / delete / exists / count

    Layer 4 -- Execution
        materialize.py     Row decoding into records (relations, JSON aggregates)
        db.py              DB fluent facade
        connection.py      Connection factory, SQLite adapter, SQLAlchemy bridge

Tags:
    orm, sql, dataclasses, record-spine
"""

from recordspine.core.connection import (
    ConnectionInfo,
    SAConnectionBridge,
    SqliteConnection,
    connect,
    create_connection,
)
from recordspine.core.db import DB
from recordspine.core.errors import (
    BuildError,
    ConfigError,
    DatabaseError,
    DecodeError,
    ErrorCategory,
    ErrorContext,
    MigrationError,
    MissingConfigError,
    NoRowsAffectedError,
    NotAStructError,
    RecordSpineError,
    UnsupportedTypeError,
)
from recordspine.core.naming import pluralize, snake_case, table_name
from recordspine.core.protocols import Connection, Cursor
from recordspine.core.schema import EntityDescriptor, FieldDescriptor, FieldKind, describe
from recordspine.core.settings import DatabaseSettings
from recordspine.core.statement import Condition, Relation, RelationShape, StatementState

__all__ = [
    # facade
    "DB",
    # connections
    "Connection",
    "Cursor",
    "ConnectionInfo",
    "SqliteConnection",
    "SAConnectionBridge",
    "connect",
    "create_connection",
    "DatabaseSettings",
    # schema
    "snake_case",
    "pluralize",
    "table_name",
    "describe",
    "EntityDescriptor",
    "FieldDescriptor",
    "FieldKind",
    # statements
    "StatementState",
    "Condition",
    "Relation",
    "RelationShape",
    # errors
    "ErrorCategory",
    "ErrorContext",
    "RecordSpineError",
    "ConfigError",
    "NotAStructError",
    "MissingConfigError",
    "BuildError",
    "DecodeError",
    "UnsupportedTypeError",
    "DatabaseError",
    "NoRowsAffectedError",
    "MigrationError",
]
