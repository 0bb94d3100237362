"""Connection factory and driver adapters.

Supported targets
-----------------
==================  ==========================================  ===================
Target              Example                                     Adapter
==================  ==========================================  ===================
``memory``          ``memory`` or ``:memory:`` or ``None``       SqliteConnection
``sqlite``          ``sqlite:///path/to/file.db``                SqliteConnection
``(file path)``     ``./data/app.db``                           SqliteConnection
any SQLAlchemy URL  ``mysql+pymysql://user:pw@host:3306/db``     SAConnectionBridge
==================  ==========================================  ===================

Usage
-----
::

    from recordspine.core.connection import connect, create_connection

    conn, info = create_connection("app.db")
    db = connect()            # from DB_* environment variables
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from recordspine.core.logging import get_logger
from recordspine.core.settings import DatabaseSettings

if TYPE_CHECKING:
    from recordspine.core.db import DB

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or the SQLAlchemy dialect name."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── SQLite adapter ───────────────────────────────────────────────────────


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    ``execute`` returns a fresh ``sqlite3.Cursor`` per statement, so a
    streamed select is not disturbed by a later write on the same handle.
    """

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.execute("PRAGMA foreign_keys=ON")

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def executescript(self, sql: str) -> None:
        self._conn.executescript(sql)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"


# ── SQLAlchemy bridge ────────────────────────────────────────────────────


def _named_binds(sql: str, parameters: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """Rewrite positional ``?`` markers to ``:p0, :p1, ...`` for ``text()``."""
    rewritten: list[str] = []
    idx = 0
    for ch in sql:
        if ch == "?":
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    return "".join(rewritten), {f"p{i}": v for i, v in enumerate(parameters)}


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` satisfy the ``Connection`` protocol.

    ``execute`` returns the bridge itself, exposing ``fetchone``,
    ``fetchall``, ``rowcount`` and ``lastrowid`` of the last result.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> SAConnectionBridge:
        if parameters:
            rewritten, mapping = _named_binds(sql, parameters)
            self._last_result = self._session.execute(text(rewritten), mapping)
        else:
            self._last_result = self._session.execute(text(sql))
        return self

    def executescript(self, sql: str) -> None:
        connection = self._session.connection()
        raw = connection.connection.dbapi_connection
        if hasattr(raw, "executescript"):
            raw.executescript(sql)
        else:
            connection.exec_driver_sql(sql)

    # --- cursor ---

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None or not self._last_result.returns_rows:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    @property
    def rowcount(self) -> int:
        if self._last_result is None:
            return -1
        return self._last_result.rowcount

    @property
    def lastrowid(self) -> Any:
        if self._last_result is None:
            return None
        return getattr(self._last_result, "lastrowid", None)

    # --- transaction ---

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session


def create_sa_engine(url: str, *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine for a server database URL."""
    return create_engine(url, echo=echo, **kwargs)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"file"``, ``"sqlalchemy"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        return "sqlalchemy", db

    return "file", db


# ── Factories ────────────────────────────────────────────────────────────


def create_connection(db: str | None = None) -> tuple[Any, ConnectionInfo]:
    """Create a connection from a URL, path, or keyword.

    Returns:
        ``(connection, ConnectionInfo)``; the connection satisfies the
        :class:`~recordspine.core.protocols.Connection` protocol.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn = SqliteConnection(":memory:")
        info = ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")
    elif scheme in ("sqlite", "file"):
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        resolved = str(path.resolve())
        conn = SqliteConnection(resolved)
        info = ConnectionInfo(
            backend="sqlite", persistent=True, url=target, resolved_path=resolved
        )
    else:
        engine = create_sa_engine(target)
        conn = SAConnectionBridge(Session(bind=engine, expire_on_commit=False))
        info = ConnectionInfo(backend=engine.dialect.name, persistent=True, url=target)

    logger.debug("connection.created", backend=info.backend, persistent=info.persistent)
    return conn, info


def connect(settings: DatabaseSettings | None = None) -> DB:
    """Open a :class:`~recordspine.core.db.DB` handle from settings (``DB_*`` env by default)."""
    from recordspine.core.db import DB

    settings = settings or DatabaseSettings()
    conn, _info = create_connection(settings.resolved_url())
    return DB(conn, autocommit=settings.autocommit)


__all__ = [
    "ConnectionInfo",
    "SqliteConnection",
    "SAConnectionBridge",
    "create_sa_engine",
    "create_connection",
    "connect",
]
