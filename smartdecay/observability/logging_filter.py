"""
Copies the decay context (owner, simulated year, decay event, item) onto log records.

    install_log_context_filter()
    logging.basicConfig(format="%(message)s %(context)s")

Only a fixed set of keys is copied; item content never reaches a log line.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet

from smartdecay.observability.instrumentation import get_obs_context

LOGGED_KEYS: FrozenSet[str] = frozenset({
    "owner_id",
    "simulated_year",
    "decay_event_id",
    "item_id",
    "component",
    "operation",
    "session_id",
})

MAX_VALUE_CHARS = 256
OMITTED = "[OMITTED]"


def _loggable(value: Any) -> Any:
    if isinstance(value, (dict, list, tuple, set)):
        return OMITTED
    text = str(value)
    return text[:MAX_VALUE_CHARS] + "…" if len(text) > MAX_VALUE_CHARS else value


class LogContextFilter(logging.Filter):
    """Sets ``record.context``; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context: Dict[str, Any] = {}
        for key, value in get_obs_context().items():
            if key in LOGGED_KEYS:
                context[key] = _loggable(value)
        record.context = context
        return True


def install_log_context_filter(level: int | None = None) -> None:
    """Attach one LogContextFilter to the root logger and each of its handlers.

    Handlers added later only get ``context`` for records logged through the
    root logger's own filter chain, so call this after configuring handlers.
    """
    root = logging.getLogger()
    if level is not None:
        root.setLevel(level)
    for target in (root, *root.handlers):
        if not any(isinstance(f, LogContextFilter) for f in target.filters):
            target.addFilter(LogContextFilter())
