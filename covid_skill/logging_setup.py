from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, TextIO

REQUEST_CONTEXT_KEYS = (
    "action",
    "reason",
    "status",
    "request_id",
    "request_type",
    "intent",
    "locale",
    "location",
    "url",
)


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str = "covid-skill", context_keys: Iterable[str] = REQUEST_CONTEXT_KEYS) -> None:
        super().__init__()
        self.service = service
        self.context_keys = tuple(context_keys)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "event": record.getMessage(),
        }
        context = {key: getattr(record, key) for key in self.context_keys if getattr(record, key, None) is not None}
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level: str, stream: TextIO | None = None, service: str = "covid-skill") -> None:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter(service=service))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
    # One line per request from the access logger is noise next to the skill events.
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
