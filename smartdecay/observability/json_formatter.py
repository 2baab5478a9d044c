"""
One JSON object per log line, carrying the decay context set by LogContextFilter.

    handler.setFormatter(JsonFormatter())

Ticker threads are named ``decay-ticker-<owner>``, so the ``thread`` field
tells automatic cycles apart from manual steps.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class JsonFormatter(logging.Formatter):

    def __init__(self, *, service: str = "smartdecay", static_fields: Optional[Dict[str, Any]] = None) -> None:
        super().__init__()
        self.service = service
        self.static_fields = dict(static_fields or {})

    @staticmethod
    def _timestamp(record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "ts": self._timestamp(record),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
            **self.static_fields,
        }
        context = getattr(record, "context", None)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
