"""Tests for cicdgen.core.logging module."""

import json
import logging

import pytest
import structlog

from cicdgen.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    is_configured,
)


@pytest.fixture
def restore_logging():
    """Put the session's structlog and root-handler setup back after a reconfigure."""
    saved = structlog.get_config()
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.configure(**saved)
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogContext:
    def test_sync_binds_and_unbinds(self):
        with LogContext(execution_id="exec_1"):
            assert structlog.contextvars.get_contextvars()["execution_id"] == "exec_1"
        assert "execution_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_async_binds_and_unbinds(self):
        async with LogContext(execution_id="exec_2", stage="parsing"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["execution_id"] == "exec_2"
            assert bound["stage"] == "parsing"
        assert "stage" not in structlog.contextvars.get_contextvars()

    def test_clear_context(self):
        bind_context(run="x")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestGetLogger:
    def test_logger_accepts_events(self):
        logger = get_logger("cicdgen.test")
        logger.info("test.event", value=1)

    def test_configured_by_session(self):
        assert is_configured()

    def test_configured_logger_renders_json(self, capsys, restore_logging):
        configure_logging(level="DEBUG", json_format=True, force=True)
        with LogContext(execution_id="exec_3"):
            get_logger("cicdgen.test.json").warning("test.rendered", value=2)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "test.rendered"
        assert record["logger_name"] == "cicdgen.test.json"
        assert record["level"] == "warning"
        assert record["execution_id"] == "exec_3"
        assert record["value"] == 2
        assert "timestamp" in record

    def test_configured_console_logger(self, capsys, restore_logging):
        configure_logging(level="INFO", json_format=False, force=True)
        get_logger("cicdgen.test.console").info("test.console", value=3)
        get_logger().debug("test.filtered")

        err = capsys.readouterr().err
        assert "test.console" in err
        assert "test.filtered" not in err
