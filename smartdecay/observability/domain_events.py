"""
In-process domain events of the decay engine.

The scheduler publishes what happened; persistence of the facts themselves is
already done by the time a subscriber hears about it. Subscribers (content
degradation, alert delivery, the redis forwarder) are independent: one
failing subscriber never stops the others or the decay cycle.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from smartdecay.models.alert import Alert
from smartdecay.models.archive_item import Stage
from smartdecay.models.history import DecayEvent
from smartdecay.observability.events import EventSpooler
from smartdecay.utils import now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    owner_id: str
    occurred_at: datetime = field(default_factory=now, compare=False)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def payload(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data.pop("occurred_at", None)
        return data


@dataclass(frozen=True)
class DecayEventCompleted(DomainEvent):
    decay_event: Optional[DecayEvent] = None
    resumed: bool = False

    def payload(self) -> Dict[str, Any]:
        event = self.decay_event
        return {
            "owner_id": self.owner_id,
            "decay_event_id": event.event_id if event else None,
            "event_no": event.event_no if event else None,
            "simulated_year": event.simulated_year if event else None,
            "capacity_after_kb": event.capacity_after_kb if event else None,
            "storage_after_kb": event.storage_after_kb if event else None,
            "items_affected": event.items_affected if event else 0,
            "resumed": self.resumed,
        }


@dataclass(frozen=True)
class ItemTransitioned(DomainEvent):
    item_id: str = ""
    item_title: str = ""
    prev_stage: Stage = Stage.FULL
    new_stage: Stage = Stage.COMPRESSED
    size_before_kb: int = 0
    size_after_kb: int = 0
    simulated_year: int = 0
    decay_event_id: str = ""

    def payload(self) -> Dict[str, Any]:
        data = super().payload()
        data["prev_stage"] = self.prev_stage.value
        data["new_stage"] = self.new_stage.value
        return data


@dataclass(frozen=True)
class AlertRaised(DomainEvent):
    alert: Optional[Alert] = None

    def payload(self) -> Dict[str, Any]:
        return {"owner_id": self.owner_id, **(self.alert.to_json_dict() if self.alert else {})}


Subscriber = Callable[[DomainEvent], None]


class DomainEventBus:
    """Synchronous observer list; callbacks run on the publishing thread."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback and return a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber {getattr(callback, '__qualname__', callback)} failed on "
                             f"{event.event_type}: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._subscribers)


class RedisEventForwarder:
    """Bus subscriber that mirrors domain events onto the redis event stream."""

    component = "decay_engine"

    def __init__(self, spooler: EventSpooler):
        self.spooler = spooler

    def __call__(self, event: DomainEvent) -> None:
        self.spooler.emit_event(
            event_type=event.event_type,
            component=self.component,
            operation=event.event_type,
            data=event.payload(),
        )
