"""Tests for the logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from freshmap.core.logging import logging_config, setup_logging


class TestLoggingConfig:
    def test_console_only_by_default(self):
        config = logging_config("INFO", "console", [])
        assert list(config["handlers"]) == ["stderr"]
        assert config["root"]["handlers"] == ["stderr"]
        assert config["loggers"]["freshmap"] == {"level": "INFO"}
        assert config["loggers"]["httpx"] == {"level": "WARNING"}

    def test_file_handler(self, tmp_path):
        path = str(tmp_path / "freshmap.log")
        config = logging_config("DEBUG", "console", [], path)
        assert config["handlers"]["file"]["filename"] == path
        assert config["handlers"]["file"]["formatter"] == "freshmap_json"
        assert config["root"]["handlers"] == ["stderr", "file"]

    def test_json_renderer(self):
        config = logging_config("INFO", "json", [])
        renderer = config["formatters"]["freshmap"]["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore(self, monkeypatch):
        for name in ("FRESHMAP_LOG_LEVEL", "FRESHMAP_LOG_FORMAT", "FRESHMAP_LOG_FILE"):
            monkeypatch.delenv(name, raising=False)
        yield
        setup_logging()

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("FRESHMAP_LOG_LEVEL", "debug")
        setup_logging()
        assert logging.getLogger("freshmap").level == logging.DEBUG

    def test_argument_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("FRESHMAP_LOG_LEVEL", "debug")
        setup_logging(level="warning")
        assert logging.getLogger("freshmap").level == logging.WARNING

    def test_file_receives_json_lines(self, tmp_path):
        path = tmp_path / "freshmap.log"
        setup_logging(log_file=str(path))
        logging.getLogger("freshmap.test").info("graph built")
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(path.read_text().strip().splitlines()[-1])
        assert record["event"] == "graph built"
        assert record["level"] == "info"
        assert record["logger"] == "freshmap.test"
