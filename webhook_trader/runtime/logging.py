from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from webhook_trader.common.logging import sanitize_text, sanitize_value

LOGGER_NAME = "webhook_trader"

STANDARD_LOG_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }

        for key, value in record.__dict__.items():
            if key in STANDARD_LOG_FIELDS or key.startswith("_"):
                continue
            payload[key] = sanitize_value(value, key=key)

        if record.exc_info:
            payload["exception"] = sanitize_text(self.formatException(record.exc_info))

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(level: str = "INFO") -> logging.Logger:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    logger = logging.getLogger(LOGGER_NAME)
    for name in (LOGGER_NAME, "aiohttp.access", "aiohttp.server"):
        target = logging.getLogger(name)
        target.setLevel(getattr(logging, level.upper(), logging.INFO))
        target.handlers.clear()
        target.addHandler(handler)
        target.propagate = False

    return logger
