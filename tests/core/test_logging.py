"""Tests for recordspine.core.logging."""

import json
import logging

import structlog
from structlog.contextvars import get_contextvars

from recordspine.core.logging import (
    SQL_PREVIEW_CHARS,
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


class TestConfigureLogging:
    def test_configures_structlog(self) -> None:
        configure_logging(level="DEBUG", json_format=True)
        assert structlog.is_configured()

    def test_json_output(self, caplog) -> None:
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True, service="migrator")
        with LogContext(batch=2):
            get_logger("tests.logging").info("migration.applied", migration="001_users.sql")

        payload = json.loads(caplog.messages[-1])
        assert payload["event"] == "migration.applied"
        assert payload["migration"] == "001_users.sql"
        assert payload["batch"] == 2
        assert payload["service"] == "migrator"
        assert payload["level"] == "info"
        assert "timestamp" in payload

    def test_statement_sql_is_compacted(self, caplog) -> None:
        caplog.set_level(logging.DEBUG)
        configure_logging(level="DEBUG", json_format=True)
        script = "CREATE TABLE people (\n    id INTEGER,\n    name TEXT\n);\n" + "-- pad\n" * 200
        get_logger("tests.logging").debug("statement.built", sql=script, args=[])

        sql = json.loads(caplog.messages[-1])["sql"]
        assert sql.startswith("CREATE TABLE people ( id INTEGER, name TEXT );")
        assert "\n" not in sql
        assert len(sql) == SQL_PREVIEW_CHARS + 3

    def test_level_filters(self, caplog) -> None:
        caplog.set_level(logging.INFO)
        configure_logging(level="WARNING", json_format=True)
        get_logger("tests.logging").info("statement.built", sql="SELECT 1")
        assert caplog.records == []


class TestContext:
    def test_bind_and_unbind(self) -> None:
        bind_context(batch=2, run="x")
        unbind_context("run")
        assert get_contextvars() == {"batch": 2}
        clear_context()
        assert get_contextvars() == {}

    def test_log_context_is_scoped(self) -> None:
        with LogContext(batch=3):
            assert get_contextvars()["batch"] == 3
        assert "batch" not in get_contextvars()
