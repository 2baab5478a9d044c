"""
Timeline replay: what the archive looked like at every decay event.

Snapshots are rebuilt from the append-only history (decay events plus the
degradation log) rather than stored, so they stay consistent with the audit
trail by construction.
"""

import bisect
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from smartdecay.models.archive_item import STAGE_ORDER, ArchiveItem, Stage
from smartdecay.models.base import DecayBaseModel
from smartdecay.models.history import DegradationLogEntry
from smartdecay.models.simulation import SimulationState
from smartdecay.stores.archive_store import ArchiveStore


def _empty_counts() -> Dict[str, int]:
    return {stage.value: 0 for stage in STAGE_ORDER}


@dataclass
class TimelineSnapshot(DecayBaseModel):
    year: int = 0
    capacity_kb: int = 0
    capacity_percent: int = 100
    storage_used_kb: int = 0
    stage_counts: Dict[str, int] = field(default_factory=_empty_counts)
    avg_semantic_score: float = 0.0
    decay_event_no: Optional[int] = None
    items_affected: int = 0


def _capacity_percent(capacity_kb: int, start_capacity_kb: int) -> int:
    if start_capacity_kb <= 0:
        return 0
    return round(capacity_kb / start_capacity_kb * 100)


def _average_score(items: List[ArchiveItem], stages: Dict[str, Stage]) -> float:
    alive = [i.semantic_score for i in items if stages[i.item_id] is not Stage.DELETED]
    return round(sum(alive) / len(alive), 2) if alive else 0.0


def build_snapshots(store: ArchiveStore, owner_id: str, state: SimulationState) -> List[TimelineSnapshot]:
    """One snapshot for year 0 and one per recorded decay event, in year order."""
    items = store.list_items(owner_id, include_deleted=True)
    stages: Dict[str, Stage] = {item.item_id: Stage.FULL for item in items}
    counts = _empty_counts()
    counts[Stage.FULL.value] = len(items)

    snapshots = [TimelineSnapshot(
        owner_id=owner_id,
        year=0,
        capacity_kb=state.start_capacity_kb,
        capacity_percent=100,
        storage_used_kb=sum(item.size_kb for item in items),
        stage_counts=dict(counts),
        avg_semantic_score=_average_score(items, stages),
    )]

    logs_by_event: Dict[str, List[DegradationLogEntry]] = {}
    for entry in store.list_logs(owner_id):
        logs_by_event.setdefault(entry.decay_event_id, []).append(entry)

    for event in store.list_events(owner_id):
        for entry in logs_by_event.get(event.event_id, []):
            counts[entry.prev_stage.value] -= 1
            counts[entry.new_stage.value] += 1
            if entry.item_id in stages:
                stages[entry.item_id] = entry.new_stage
        snapshots.append(TimelineSnapshot(
            owner_id=owner_id,
            year=event.simulated_year,
            capacity_kb=event.capacity_after_kb,
            capacity_percent=_capacity_percent(event.capacity_after_kb, state.start_capacity_kb),
            storage_used_kb=event.storage_after_kb,
            stage_counts=dict(counts),
            avg_semantic_score=_average_score(items, stages),
            decay_event_no=event.event_no,
            items_affected=event.items_affected,
        ))
    return snapshots


def snapshot_at(snapshots: List[TimelineSnapshot], year: int) -> Optional[TimelineSnapshot]:
    """Latest snapshot at or before ``year``."""
    years = [s.year for s in snapshots]
    idx = bisect.bisect_right(years, year)
    return snapshots[idx - 1] if idx else None


def item_history(store: ArchiveStore, owner_id: str, item_id: str) -> List[DegradationLogEntry]:
    """Every transition of one item, in simulated-year order."""
    return store.list_logs(owner_id, item_id=item_id)


def stage_distribution(store: ArchiveStore, owner_id: str) -> Dict[str, Dict[str, int]]:
    """Item count and current size per stage."""
    distribution = {stage.value: {"count": 0, "size_kb": 0} for stage in STAGE_ORDER}
    for item in store.list_items(owner_id, include_deleted=True):
        bucket = distribution[item.stage.value]
        bucket["count"] += 1
        bucket["size_kb"] += item.current_size_kb
    return distribution


def dashboard_stats(store: ArchiveStore, owner_id: str) -> Dict[str, int]:
    items = store.list_items(owner_id, include_deleted=True)
    return {
        "total_items": len(items),
        "total_size_kb": sum(item.current_size_kb for item in items),
        "full_items": sum(1 for item in items if item.stage is Stage.FULL),
        "deleted_items": sum(1 for item in items if item.is_deleted),
        "unscored_items": sum(1 for item in items if item.is_unscored),
    }
