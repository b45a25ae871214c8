"""Structured logging for vault actions, built on structlog.

Every line logged while an action runs carries the action context bound
by the API layer (request_id, action, vault_id, caller), so one vault's
history can be followed across the service modules. Development renders
a colored console; every other environment emits one JSON object per line.

Usage:
    from multisig_escrow.logging_config import bind_action_context, get_logger
    bind_action_context("propose", vault_id=vault_id, caller="alice.near")
    get_logger(__name__).info("request.proposed", request_id=7, amount=50)
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncpg", "httpx")


def _render_vault_values(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Render vault UUIDs as strings and approver sets as sorted lists."""
    for key, value in event_dict.items():
        if isinstance(value, uuid.UUID):
            event_dict[key] = str(value)
        elif isinstance(value, (set, frozenset)):
            event_dict[key] = sorted(value)
    return event_dict


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON. If False, colored console.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _render_vault_values,
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_action_context(
    action: str, vault_id: uuid.UUID | str | None = None, caller: str | None = None
) -> None:
    """Attach the current action to every log line until the request ends."""
    context: dict[str, Any] = {"action": action}
    if vault_id is not None:
        context["vault_id"] = str(vault_id)
    if caller is not None:
        context["caller"] = caller
    structlog.contextvars.bind_contextvars(**context)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, conventionally named after the calling module."""
    return structlog.get_logger(name)
