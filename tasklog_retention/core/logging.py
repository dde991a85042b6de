"""Structured logging for truncation passes: structlog rendered through stdlib handlers.

Truncation runs on worker hosts next to the logs it shrinks, so output goes to
stderr (never into a task's stdout) and ``logfmt`` is offered for hosts whose
collectors ingest key=value lines.
"""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

LOG_FORMATS = ("console", "json", "logfmt")


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    if fmt == "logfmt":
        return structlog.processors.LogfmtRenderer(
            key_order=["timestamp", "level", "event"], drop_missing=True
        )
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    raise ValueError(f"Unknown log format {fmt!r}, expected one of {', '.join(LOG_FORMATS)}")


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    Explicit arguments win over the environment:
        TASKLOG_LOG_LEVEL  - log level (default: INFO)
        TASKLOG_LOG_FORMAT - console | json | logfmt (default: console)

    Raises ``ValueError`` for an unknown format.
    """
    log_level = (level or os.environ.get("TASKLOG_LOG_LEVEL", "INFO")).upper()
    log_format = (fmt or os.environ.get("TASKLOG_LOG_FORMAT", "console")).lower()
    renderer = _renderer(log_format)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "tasklog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "tasklog",
                },
            },
            # Third-party loggers stay at WARNING; only our package follows the level.
            "root": {"handlers": ["stderr"], "level": "WARNING"},
            "loggers": {
                "tasklog_retention": {"level": log_level},
            },
        }
    )
