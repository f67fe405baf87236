"""structlog on top of stdlib logging for the service and the refresh loop."""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Any

import structlog

_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def logging_config(
    level: str,
    log_format: str,
    pre_chain: list[structlog.types.Processor],
    log_file: str | None = None,
) -> dict[str, Any]:
    """Build the dictConfig payload routing every stdlib record through structlog."""
    handlers: dict[str, dict[str, Any]] = {
        "stderr": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "freshmap",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
            "formatter": "freshmap_json",
        }

    loggers: dict[str, dict[str, Any]] = {
        name: {"level": "WARNING"} for name in _QUIET_LOGGERS
    }
    loggers["freshmap"] = {"level": level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "freshmap": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": pre_chain,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    _renderer(log_format),
                ],
            },
            # Files always get JSON lines so they stay machine-readable.
            "freshmap_json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": pre_chain,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
            },
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
        "loggers": loggers,
    }


def setup_logging(
    level: str | None = None,
    log_format: str | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Arguments win over the environment:
        FRESHMAP_LOG_LEVEL  - level for freshmap loggers (default: INFO)
        FRESHMAP_LOG_FORMAT - console | json (default: console)
        FRESHMAP_LOG_FILE   - optional path, appended to as JSON lines
    """
    level = (level or os.environ.get("FRESHMAP_LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.environ.get("FRESHMAP_LOG_FORMAT", "console")).lower()
    log_file = log_file or os.environ.get("FRESHMAP_LOG_FILE") or None

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(logging_config(level, log_format, pre_chain, log_file))
