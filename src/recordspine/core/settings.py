"""Database settings loaded from the environment.

Credentials follow the ``DB_*`` convention::

    DB_CONNECTION=mysql+pymysql
    DB_USERNAME=app
    DB_PASSWORD=secret
    DB_HOST=127.0.0.1
    DB_PORT=3306
    DB_DATABASE=app

or a single ``DB_URL``. With neither, ``DB_CONNECTION`` defaults to
``sqlite`` and ``DB_DATABASE`` to an in-memory database.

Examples:
    >>> from recordspine.core.settings import DatabaseSettings
    >>> DatabaseSettings(database="app.db").resolved_url()
    'sqlite:///app.db'

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from recordspine.core.errors import MissingConfigError


class DatabaseSettings(BaseSettings):
    """Connection and runner settings.

    Fields
    ──────
    url             : Full database URL; overrides the credential parts
    connection      : Driver / SQLAlchemy dialect name (``sqlite``, ``mysql+pymysql``)
    username        : Database user
    password        : Database password
    host            : Database host
    port            : Database port
    database        : Database name (file path for SQLite)
    migrations_dir  : Directory holding ``*.sql`` migration files
    log_level       : Structlog log level
    autocommit      : Commit after every write issued by ``DB``
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str | None = None
    connection: str = "sqlite"
    username: str | None = None
    password: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None

    migrations_dir: Path = Field(
        default=Path("database/migrations"),
        description="Directory holding *.sql migration files",
    )
    log_level: str = "INFO"
    autocommit: bool = True

    @property
    def is_sqlite(self) -> bool:
        return self.connection.split("+", 1)[0] == "sqlite"

    def resolved_url(self) -> str:
        """Database URL assembled from the settings.

        Raises:
            MissingConfigError: If a server database lacks credentials.
        """
        if self.url:
            return self.url
        if self.is_sqlite:
            if not self.database or self.database == ":memory:":
                return "memory"
            return f"sqlite:///{self.database}"

        for key in ("username", "host", "port", "database"):
            if not getattr(self, key):
                raise MissingConfigError(
                    f"DB_{key.upper()}", "Missing database credentials"
                )
        return URL.create(
            self.connection,
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        ).render_as_string(hide_password=False)


__all__ = ["DatabaseSettings"]
