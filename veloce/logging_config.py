"""
Structured logging for Veloce, using structlog on top of stdlib logging.

Every event carries the feature that emitted it (``tasks``, ``focus``, ...)
and, inside ``user_context()``, the user it was for. Output goes to stderr
so the CLI keeps stdout for JSON results: console rendering by default,
one JSON object per line with VELOCE_LOG_FORMAT=json.

Usage:
    from veloce.logging_config import get_logger, setup_logging, user_context

    setup_logging()
    logger = get_logger(__name__)

    with user_context("alice"):
        logger.info("timer_started", seconds=1500)
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import IO, Iterator

import structlog

# Chatty client libraries pulled in by the brain dump extractor
QUIET_LOGGERS = ("anthropic", "httpx", "httpcore")


def add_feature(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """veloce.focus.timer -> feature="focus"."""
    name = event_dict.get("logger") or ""
    parts = name.split(".")
    if len(parts) > 1 and parts[0] == "veloce":
        event_dict.setdefault("feature", parts[1])
    return event_dict


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    stream: IO[str] | None = None,
) -> None:
    if level is None:
        level = os.environ.get("VELOCE_LOG_LEVEL", "INFO")

    if json_output is None:
        json_output = os.environ.get("VELOCE_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_feature,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=(stream or sys.stderr).isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


@contextmanager
def user_context(user_id: str | None) -> Iterator[None]:
    """Tag every event logged inside the block with user_id."""
    if not user_id:
        yield
        return
    with structlog.contextvars.bound_contextvars(user_id=user_id):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["add_feature", "get_logger", "setup_logging", "user_context"]
