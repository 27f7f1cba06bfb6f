from __future__ import annotations

import logging

import structlog

from desk.settings import get_settings

_configured = False


def setup_logger(level: str | None = None, *, json_logs: bool | None = None):
    """Configure structlog once; later calls only return a logger."""
    global _configured

    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    numeric = getattr(logging, level_name, logging.INFO)
    if json_logs is None:
        json_logs = settings.log_json

    if not _configured:
        logging.basicConfig(format="%(message)s", level=numeric)
        renderer = (
            structlog.processors.JSONRenderer()
            if json_logs
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(numeric),
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
        _configured = True

    return structlog.get_logger()


def get_logger(name: str):
    setup_logger()
    return structlog.get_logger().bind(logger=name)
