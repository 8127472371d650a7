"""Logging configuration with structlog, console or JSON output on stderr."""

import logging
import sys
from contextlib import AbstractContextManager
from pathlib import Path

import structlog


def configure_logging(level: str, json_output: bool = False) -> None:
    """Route every log record to stderr through one structlog formatter.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR); unknown names mean WARNING.
        json_output: Render one JSON object per line instead of console output.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)


def manifest_context(path: Path) -> AbstractContextManager[None]:
    """Tag log records emitted inside the block with ``manifest=<path>``.

    Only the ``manifest`` key is unbound on exit; other context survives.
    """
    return structlog.contextvars.bound_contextvars(manifest=str(path))
