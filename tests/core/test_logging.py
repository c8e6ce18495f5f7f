"""Tests for stagewise.core.logging — structlog configuration and scoped context."""

from __future__ import annotations

import json

import pytest
import structlog

from stagewise.core.logging import LogContext, bind_context, configure_logging, get_logger


class TestConfigureLogging:
    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True, service="stagewise-test")
        get_logger("stagewise.test").info("unit.created", unit="Treasury")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "unit.created"
        assert event["unit"] == "Treasury"
        assert event["level"] == "info"
        assert event["logger_name"] == "stagewise.test"
        assert event["service"] == "stagewise-test"
        assert "timestamp" in event

    def test_module_logger_without_configuration(self):
        """Loggers are created at import time, before configure_logging runs."""
        structlog.reset_defaults()
        logger = get_logger("stagewise.registry.store")
        assert logger is not None
        assert get_logger() is not None

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="invalid log level"):
            configure_logging(level="LOUD")

    def test_level_case_insensitive(self, capsys):
        configure_logging(level="warning", json_format=True)
        get_logger("stagewise.test").warning("shown")
        assert "shown" in capsys.readouterr().err

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("stagewise.test").info("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_console_output(self, capsys):
        configure_logging(level="INFO", json_format=False)
        get_logger("stagewise.test").info("stage.start", stage="main")
        err = capsys.readouterr().err
        assert "stage.start" in err
        assert "main" in err


class TestLogContext:
    def test_binds_and_unbinds(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("stagewise.test")

        with LogContext(stage="oracles", run_id="r1"):
            logger.info("inside")
        logger.info("outside")

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        inside, outside = lines[-2], lines[-1]
        assert inside["stage"] == "oracles"
        assert inside["run_id"] == "r1"
        assert "stage" not in outside

    def test_bind_context(self):
        bind_context(network="localhost")
        assert structlog.contextvars.get_contextvars()["network"] == "localhost"
