"""
utils/logging.py — structlog configuration for the psgc CLI.

Everything goes to stderr: `psgc fetch -o -` writes JSON and the report
commands write tables to stdout, and log lines must not interleave with
either. settings.log_format picks the renderer:

  json     one object per line, tracebacks as structured frames
  console  aligned key=value lines with pretty tracebacks

httpx and httpcore log every request through stdlib logging; they are
held at WARNING unless the CLI runs at DEBUG.

Usage:
    from psgc_pipeline.utils.logging import configure_logging, get_logger

    configure_logging("DEBUG", "console")
    log = get_logger(__name__, pipeline="import_psgc")
    log.warning("ancestor_synthesized", entity_level="province", code="137400000")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from psgc_shared.config import settings

NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog and stdlib logging for one CLI process. Idempotent.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    fmt = log_format or settings.log_format

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exc_info itself
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """A structlog logger for *name* with *initial_values* bound to every event."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger  # type: ignore[return-value]
