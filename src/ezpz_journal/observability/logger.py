"""Structured logging with session_id support.

Uses structlog for rendering.  Modules keep logging through the standard
``logging.getLogger(__name__)``; their records are routed through the
same structlog processor chain, so one handler renders everything.
Every log entry includes the session_id of the running CLI invocation.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

# Context var for session_id propagation
_session_id: ContextVar[str] = ContextVar("session_id", default="")

# Handler installed by setup_logging; replaced on reconfiguration
_handler: logging.Handler | None = None


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self) -> Any:
        return sys.stderr

    @stream.setter
    def stream(self, value: Any) -> None:
        pass


def get_session_id() -> str:
    """Get current session ID from context."""
    sid = _session_id.get()
    if not sid:
        sid = uuid.uuid4().hex[:12]
        _session_id.set(sid)
    return sid


def new_session_id() -> str:
    """Generate and set a new session ID."""
    sid = uuid.uuid4().hex[:12]
    _session_id.set(sid)
    return sid


def _add_session_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: add session_id to every log entry."""
    event_dict["session_id"] = get_session_id()
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        _add_session_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    level: str = "INFO",
    format: str = "console",
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for machine-readable files, "console" for a terminal.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    shared = _shared_processors()

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
        shared.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = _StderrHandler()
    _handler.setFormatter(formatter)
    root.addHandler(_handler)
    root.setLevel(log_level)

    # SQL echo goes through the engine flag, not the root level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
