"""Logging setup for the live-events service.

``VIGOR_LOG_FORMAT=json`` switches the root handler to one JSON object per
line; anything passed through ``extra=`` (connection_id, org_id, request_id,
...) lands as a top-level key. ``VIGOR_LOG_LEVEL`` picks the level. Both are
read from the environment on every call so tests can flip them.
"""

from __future__ import annotations

import logging
import os
import traceback
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from vigor.config import settings

SERVICE_NAME = "vigor-live"

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class StructuredJsonFormatter(JsonFormatter):
    """JSON lines with the service name and tracebacks as a list of strings."""

    def __init__(self) -> None:
        super().__init__(
            JSON_FORMAT,
            datefmt="%Y-%m-%dT%H:%M:%S",
            static_fields={"service": SERVICE_NAME},
        )

    def add_fields(
        self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.pop("exc_info", None)
        if record.exc_info and record.exc_info[1] is not None:
            log_record["traceback"] = traceback.format_exception(*record.exc_info)


def _level() -> int:
    name = os.environ.get("VIGOR_LOG_LEVEL", settings.log_level).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> None:
    """Install a single stream handler on the root logger."""
    level = _level()
    json_mode = os.environ.get("VIGOR_LOG_FORMAT", settings.log_format).lower() == "json"

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(StructuredJsonFormatter() if json_mode else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)


def log_startup_info() -> None:
    """Emit one structured line describing the running configuration."""
    import vigor

    logging.getLogger("vigor").info(
        "Vigor live-events started",
        extra={
            "version": vigor.__version__,
            "environment": os.environ.get("VIGOR_ENVIRONMENT", settings.environment),
            "auth_provider": os.environ.get("VIGOR_AUTH_PROVIDER", settings.auth_provider),
            "heartbeat_interval_ms": settings.heartbeat_interval_ms,
        },
    )
