"""Logging setup driven by ``LoggingSettings``.

Module loggers stay plain ``logging.getLogger(__name__)``; in JSON mode their
records are rendered by structlog's ``ProcessorFormatter``.
"""
from __future__ import annotations

import logging
import sys

import structlog

from .config import settings

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def build_formatter(fmt: str) -> logging.Formatter:
    """Formatter for ``json`` (one object per line) or ``text`` output."""
    if fmt != "json":
        return logging.Formatter(_TEXT_FORMAT)

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
    )


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once per process.

    Args:
        level: Override for ``settings.logging.level``
    """
    root = logging.getLogger()
    if getattr(root, "_fokushub_configured", False):
        return

    formatter = build_formatter(settings.logging.format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.logging.file:
        handlers.append(logging.FileHandler(settings.logging.file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.setLevel((level or settings.logging.level).upper())

    # Quieter third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    root._fokushub_configured = True  # type: ignore[attr-defined]
