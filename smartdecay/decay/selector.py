"""
Greedy degradation selection.

Lowest-value items degrade first. A single call advances every selected item
by exactly one stage and stops as soon as storage fits the target capacity;
pressure left over after one pass is resolved by the next decay event.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from smartdecay.decay import stages
from smartdecay.models.archive_item import ArchiveItem, Stage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """One item moving one stage forward, decided at a given storage pressure."""
    item: ArchiveItem
    prev_stage: Stage
    next_stage: Stage
    size_before_kb: int
    size_after_kb: int
    storage_pressure: float
    reason: str

    @property
    def freed_kb(self) -> int:
        return self.size_before_kb - self.size_after_kb

    @property
    def semantic_score(self) -> float:
        return self.item.semantic_score

    @property
    def reconstructability(self) -> float:
        return self.item.val_reconstructability


def storage_pressure(storage_kb: float, capacity_kb: float) -> float:
    """Storage usage as a percentage of capacity (infinite once capacity is gone)."""
    if capacity_kb <= 0:
        return math.inf if storage_kb > 0 else 0.0
    return storage_kb / capacity_kb * 100


def _format_pressure(pressure: float) -> str:
    if math.isinf(pressure):
        return "exhausted capacity"
    return f"{pressure:.1f}%"


def build_reason(item: ArchiveItem, target: Stage, pressure: float) -> str:
    """Audit text for a transition, as shown in the degradation log."""
    at = _format_pressure(pressure)
    if target is Stage.COMPRESSED:
        return f"Storage pressure at {at}. Low semantic score ({item.semantic_score:.1f})."
    if target is Stage.SUMMARIZED:
        return (f"Continued storage pressure at {at}. "
                f"Reconstructability: {item.val_reconstructability:.1f}%.")
    if target is Stage.MINIMAL:
        return (f"High storage pressure at {at}. Preserving metadata only "
                f"(score {item.semantic_score:.1f}).")
    return (f"Critical storage pressure at {at}. Item permanently removed "
            f"(score {item.semantic_score:.1f}).")


def selection_key(item: ArchiveItem) -> Tuple[float, int, str]:
    return item.semantic_score, item.current_size_kb, item.item_id


def selection_order(items: Iterable[ArchiveItem]) -> List[ArchiveItem]:
    """Eligible (non-deleted) items, lowest value first."""
    return sorted((i for i in items if not i.is_deleted), key=selection_key)


class DegradationSelector:
    """Decides which items move to which stage to fit a target capacity."""

    def select(self, items: Iterable[ArchiveItem], current_storage_kb: int,
               target_capacity_kb: int) -> List[Transition]:
        """Ordered transitions closing the gap between storage and capacity.

        Returns an empty list when there is no pressure. Items are never
        advanced more than one stage per call, even if the target is missed.
        """
        if current_storage_kb <= target_capacity_kb:
            return []

        running = current_storage_kb
        selected: List[Transition] = []
        for item in selection_order(items):
            if running <= target_capacity_kb:
                break
            target, new_size = stages.advance(item.stage, item.current_size_kb, item.item_id)
            pressure = storage_pressure(running, target_capacity_kb)
            selected.append(Transition(
                item=item,
                prev_stage=item.stage,
                next_stage=target,
                size_before_kb=item.current_size_kb,
                size_after_kb=new_size,
                storage_pressure=pressure,
                reason=build_reason(item, target, pressure),
            ))
            running -= item.current_size_kb - new_size

        if running > target_capacity_kb:
            logger.debug(
                f"One pass left {running - target_capacity_kb} KB over capacity after "
                f"{len(selected)} transitions; deferring to the next decay event"
            )
        return selected
