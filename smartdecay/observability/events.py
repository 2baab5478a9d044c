"""
Redis stream sink for decay events.

Each decay cycle, stage transition and alert becomes one stream entry on
``smartdecay:events`` (suffixed with the active config namespace) in redis
DB 1. Nothing is sent unless ``observability.enabled`` is set or
SMARTDECAY_OBSERVABILITY is truthy. A failing redis is logged and skipped;
the simulation carries on without it.
"""

import json
import logging
import os
import socket
import uuid
from typing import Any, Dict, Optional

import redis

from smartdecay.configuration import ObservabilityConfig
from smartdecay.configuration.manager import ACTIVE_NAMESPACE_KEY
from smartdecay.utils import get_config, now

logger = logging.getLogger(__name__)

OBSERVABILITY_ENV = "SMARTDECAY_OBSERVABILITY"
STREAM_NAME = "smartdecay:events"
REDIS_DB_EVENTS = 1
ENVELOPE_VERSION = 1

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def observability_enabled_by_env() -> bool:
    return os.getenv(OBSERVABILITY_ENV, "").strip().lower() in _TRUTHY


def _encode_payload(data: Optional[Dict[str, Any]]) -> str:
    try:
        return json.dumps(data or {}, default=str)
    except (TypeError, ValueError):
        return json.dumps({"_nonserializable": True})


class EventSpooler:
    """Writes event envelopes to the decay event stream.

    ``namespace=None`` reads the active namespace from the shared config;
    pass ``""`` for the bare stream name.
    """

    def __init__(
            self,
            config: Optional[ObservabilityConfig] = None,
            session_id: Optional[str] = None,
            *,
            namespace: Optional[str] = None,
            redis_client: Optional[redis.Redis] = None,
    ):
        config = config or ObservabilityConfig()
        self.namespace = get_config().get(ACTIVE_NAMESPACE_KEY) if namespace is None else namespace
        stream = config.stream_name or STREAM_NAME
        self.stream_name = f"{stream}:{self.namespace}" if self.namespace else stream
        self.db = config.db
        self.maxlen: Optional[int] = config.maxlen
        self.obs_enabled = bool(config.enabled) or observability_enabled_by_env()
        self.session_id = session_id or str(uuid.uuid4())
        if redis_client is None:
            redis_client = redis.Redis(host=config.redis_host, port=config.redis_port, db=config.db,
                                       decode_responses=True)
        self.redis_client = redis_client
        self._origin = {"host": socket.gethostname(), "pid": os.getpid()}

    def _envelope(self, event_type: str, component: str, operation: str,
                  data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "event_type": event_type,
            "component": component,
            "operation": operation,
            "data": _encode_payload(data),
            "session_id": self.session_id,
            "timestamp": now().isoformat(),
            "event_version": ENVELOPE_VERSION,
            "namespace": self.namespace or "",
            "stream_name": self.stream_name,
            "db": self.db,
            **self._origin,
        }

    def emit_event(self, event_type: str, component: str, operation: str,
                   data: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Append one entry. Returns the stream id, or None when disabled or redis failed."""
        if not self.obs_enabled:
            return None
        trim = {"maxlen": self.maxlen, "approximate": True} if self.maxlen else {}
        try:
            return self.redis_client.xadd(self.stream_name, self._envelope(event_type, component, operation, data),
                                          **trim)
        except redis.RedisError as e:
            logger.warning(f"Failed to emit {event_type} to {self.stream_name}: {e}")
            return None
