"""Logging setup: structlog events rendered through the stdlib logging tree.

The resolver and downloader emit dotted events (``resolver.not_found``,
``downloader.resources_dropped``) with key/value context. Output goes to
stderr so that the CLI's stdout stays reserved for the resolution report.

Environment (overridden by the :func:`setup_logging` arguments):
    MVNRESOLVE_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR (default: INFO)
    MVNRESOLVE_LOG_FORMAT  console | json (default: console)
"""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Any

import structlog

# Third-party loggers that are noisy at the project's level.
_QUIET_LOGGERS = {
    "httpx": "WARNING",
    "httpcore": "WARNING",
}


def _event_processors() -> list[structlog.types.Processor]:
    """Processors shared by structlog events and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def logging_config(
    log_level: str,
    renderer: structlog.types.Processor,
    pre_chain: list[structlog.types.Processor],
) -> dict[str, Any]:
    """The ``dictConfig`` mapping: one stderr handler formatting via structlog."""
    loggers: dict[str, dict[str, str]] = {"mvnresolve": {"level": log_level}}
    loggers.update({name: {"level": level} for name, level in _QUIET_LOGGERS.items()})
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": pre_chain,
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
                "formatter": "structlog",
            },
        },
        "root": {"handlers": ["stderr"], "level": log_level},
        "loggers": loggers,
    }


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog through stdlib logging at *level* in *log_format*."""
    log_level = (level or os.environ.get("MVNRESOLVE_LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.environ.get("MVNRESOLVE_LOG_FORMAT", "console")).lower()
    processors = _event_processors()

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(logging_config(log_level, _renderer(log_format), processors))
