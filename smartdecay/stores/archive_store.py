"""
Owner-scoped store for every simulation record.

All reads and writes of the decay engine go through ``ArchiveStore``; it hides
the backend behind one narrow surface and turns backend errors into
``PersistenceFailure`` so the scheduler can apply its retry policy.
"""

import functools
import logging
from typing import List, Optional

from smartdecay.decay.errors import PersistenceFailure
from smartdecay.models.alert import Alert
from smartdecay.models.archive_item import ArchiveItem, Stage
from smartdecay.models.baseline import BaselineResult
from smartdecay.models.history import DecayEvent, DegradationLogEntry
from smartdecay.models.simulation import SimulationState, ValuationWeights
from smartdecay.stores.persistence.base import PersistenceBackend
from smartdecay.stores.persistence.memory import InMemoryBackend
from smartdecay.utils import now

logger = logging.getLogger(__name__)

ALERT_LIST_LIMIT = 100


def _store_operation(fn):
    """Surface backend errors as PersistenceFailure named after the operation."""

    @functools.wraps(fn)
    def _wrap(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.warning(f"Store operation {fn.__name__} failed: {e}")
            raise PersistenceFailure(fn.__name__, e) from e

    return _wrap


class ArchiveStore:

    def __init__(self, backend: Optional[PersistenceBackend] = None):
        self.backend = backend or InMemoryBackend()

    # ---- Items ----------------------------------------------------------

    @_store_operation
    def add_item(self, item: ArchiveItem) -> ArchiveItem:
        return self.backend.save(item)

    @_store_operation
    def save_item(self, item: ArchiveItem) -> ArchiveItem:
        item.updated_at = now()
        return self.backend.save(item)

    @_store_operation
    def get_item(self, owner_id: str, item_id: str) -> Optional[ArchiveItem]:
        return self.backend.find_one(ArchiveItem, owner_id=owner_id, item_id=item_id)

    @_store_operation
    def list_items(self, owner_id: str, include_deleted: bool = False) -> List[ArchiveItem]:
        """Items of an owner, oldest ingestion first."""
        items = self.backend.find_many(ArchiveItem, owner_id=owner_id)
        if not include_deleted:
            items = [i for i in items if i.stage is not Stage.DELETED]
        return sorted(items, key=lambda i: (i.ingested_at, i.item_id))

    # ---- Simulation state and weights ------------------------------------

    @_store_operation
    def get_state(self, owner_id: str) -> Optional[SimulationState]:
        return self.backend.find_one(SimulationState, owner_id=owner_id)

    @_store_operation
    def save_state(self, state: SimulationState) -> SimulationState:
        state.updated_at = now()
        return self.backend.save(state)

    @_store_operation
    def get_weights(self, owner_id: str) -> Optional[ValuationWeights]:
        return self.backend.find_one(ValuationWeights, owner_id=owner_id)

    @_store_operation
    def save_weights(self, weights: ValuationWeights) -> ValuationWeights:
        weights.updated_at = now()
        return self.backend.save(weights)

    # ---- Decay events and degradation log --------------------------------

    @_store_operation
    def save_event(self, event: DecayEvent) -> DecayEvent:
        return self.backend.save(event)

    @_store_operation
    def find_event(self, owner_id: str, simulated_year: int) -> Optional[DecayEvent]:
        return self.backend.find_one(DecayEvent, owner_id=owner_id, simulated_year=simulated_year)

    @_store_operation
    def list_events(self, owner_id: str) -> List[DecayEvent]:
        events = self.backend.find_many(DecayEvent, owner_id=owner_id)
        return sorted(events, key=lambda e: e.simulated_year)

    @_store_operation
    def append_log(self, entry: DegradationLogEntry) -> DegradationLogEntry:
        return self.backend.save(entry)

    @_store_operation
    def list_logs(self, owner_id: str, item_id: Optional[str] = None,
                  decay_event_id: Optional[str] = None) -> List[DegradationLogEntry]:
        filters = {"owner_id": owner_id}
        if item_id is not None:
            filters["item_id"] = item_id
        if decay_event_id is not None:
            filters["decay_event_id"] = decay_event_id
        logs = self.backend.find_many(DegradationLogEntry, **filters)
        return sorted(logs, key=lambda entry: (entry.simulated_year, entry.created_at))

    # ---- Alerts ------------------------------------------------------------

    @_store_operation
    def save_alert(self, alert: Alert) -> Alert:
        return self.backend.save(alert)

    @_store_operation
    def list_alerts(self, owner_id: str, unread_only: bool = False, limit: int = ALERT_LIST_LIMIT) -> List[Alert]:
        """Newest alerts first."""
        filters = {"owner_id": owner_id}
        if unread_only:
            filters["is_read"] = False
        alerts = self.backend.find_many(Alert, **filters)
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        return alerts[:limit]

    @_store_operation
    def mark_alert_read(self, owner_id: str, alert_id: str) -> bool:
        alert = self.backend.find_one(Alert, owner_id=owner_id, alert_id=alert_id)
        if alert is None:
            return False
        if not alert.is_read:
            alert.is_read = True
            self.backend.save(alert)
        return True

    @_store_operation
    def mark_all_alerts_read(self, owner_id: str) -> int:
        unread = self.backend.find_many(Alert, owner_id=owner_id, is_read=False)
        for alert in unread:
            alert.is_read = True
            self.backend.save(alert)
        return len(unread)

    @_store_operation
    def unread_alert_count(self, owner_id: str) -> int:
        return len(self.backend.find_many(Alert, owner_id=owner_id, is_read=False))

    # ---- Baselines --------------------------------------------------------

    @_store_operation
    def save_baseline_results(self, results: List[BaselineResult]) -> List[BaselineResult]:
        return [self.backend.save(r) for r in results]

    @_store_operation
    def list_baselines(self, owner_id: str) -> List[BaselineResult]:
        results = self.backend.find_many(BaselineResult, owner_id=owner_id)
        return sorted(results, key=lambda r: (r.simulation_year, r.strategy.value))

    # ---- Bulk deletes used by reset --------------------------------------

    @_store_operation
    def delete_events(self, owner_id: str) -> int:
        return self.backend.delete_many(DecayEvent, owner_id=owner_id)

    @_store_operation
    def delete_logs(self, owner_id: str) -> int:
        return self.backend.delete_many(DegradationLogEntry, owner_id=owner_id)

    @_store_operation
    def delete_baselines(self, owner_id: str) -> int:
        return self.backend.delete_many(BaselineResult, owner_id=owner_id)
