"""Structured logging for ingestion workers and the CLI.

Every log line goes to **stderr**, so the CLI can print results on stdout
while a run is being traced.  A console renderer is used in development and
one JSON object per line in production (``app_env == "production"`` or
``json_output=True``), which is what log shippers expect from a worker.

The job runtime binds ``run_id``, ``function_id`` and ``document_id`` with
``structlog.contextvars``; ``merge_contextvars`` sits first in the chain so
those keys appear on every line emitted inside a step, including lines from
library code routed through the standard-library bridge below.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

# Chatty at INFO: one line per HTTP request / SQL statement.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    app_env: str = "development",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the stdlib root logger for ingestion.

    Parameters
    ----------
    log_level:
        Minimum level name (``DEBUG``, ``INFO``, ...).
    json_output:
        Force JSON rendering regardless of *app_env*.
    app_env:
        ``"production"`` selects JSON rendering.
    stream:
        Destination for log lines; defaults to ``sys.stderr``.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    out = stream or sys.stderr

    if json_output or app_env == "production":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    library_level = level if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
