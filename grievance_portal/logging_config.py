"""Structured logging configuration with structlog.

Call ``configure_logging()`` once at application startup, then use
``structlog.get_logger()`` (or ``get_logger`` below) everywhere else:

    log = get_logger("GrievanceStateMachine")
    log.info("grievance_transitioned", grievance_id="GR-1A2B3C", status="Assigned")
"""
import logging
from typing import Any, Optional

import structlog
from structlog.typing import Processor

from grievance_portal import config


def _get_log_level(level_name: Optional[str] = None) -> int:
    level_name = (level_name or config.LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(log_format: Optional[str] = None, level: Optional[str] = None) -> None:
    """
    Configure structlog for the portal.

    "json" renders one JSON object per line for log aggregation; anything
    else gets the coloured development console renderer.
    """
    log_format = log_format or config.LOG_FORMAT

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(service_name: str) -> Any:
    """Get a lazy logger with the service name bound, safe to create at import time."""
    return structlog.get_logger(service=service_name)
