from __future__ import annotations

import json
import logging
import sys
from logging import LogRecord
from typing import Any, Callable, Dict

from loguru import logger
from opentelemetry import trace


# Stdlib loggers emitted by the server, the ORM and migrations.
ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine", "alembic")
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


class InterceptHandler(logging.Handler):
    """Forward stdlib records into Loguru, keeping the originating logger name."""

    def emit(self, record: LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(source=record.name).opt(exception=record.exc_info).log(level, record.getMessage())


def _json_sink(metadata: Dict[str, str]) -> Callable[["logger.Message"], None]:
    def sink(message: "logger.Message") -> None:
        record = message.record
        extra = dict(record["extra"])
        span_context = trace.get_current_span().get_span_context()

        payload: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name.lower(),
            "message": record["message"],
            "logger": extra.pop("source", record["name"]),
            **metadata,
        }
        if span_context.is_valid:
            payload["trace_id"] = f"{span_context.trace_id:032x}"
            payload["span_id"] = f"{span_context.span_id:016x}"
        payload.update(extra)
        if record["exception"] is not None:
            payload["exception"] = repr(record["exception"].value)

        sys.stdout.write(json.dumps(payload, default=str) + "\n")

    return sink


def configure_logging(*, service_name: str, environment: str, version: str, level: str = "INFO") -> None:
    """Emit one JSON object per log line and route uvicorn, SQLAlchemy and Alembic through Loguru."""

    logger.remove()
    metadata = {"service": service_name, "environment": environment, "version": version}
    logger.add(_json_sink(metadata), level=level.upper(), backtrace=False, diagnose=False)

    handler = InterceptHandler()
    for name in ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
