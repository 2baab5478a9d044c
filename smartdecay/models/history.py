from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Optional

from smartdecay.models.archive_item import Stage
from smartdecay.models.base import DecayBaseModel, coerce_enum, new_id
from smartdecay.utils import now


@dataclass
class DecayEvent(DecayBaseModel):
    """One capacity-shrink step.

    Saved before any item is degraded; ``storage_after_kb``, ``items_affected``
    and ``completed`` are filled in once the degradation pass has finished.
    """
    __collection__: ClassVar[str] = "decay_events"
    __primary_key__: ClassVar[str] = "event_id"

    event_id: str = field(default_factory=new_id)
    event_no: int = 0
    simulated_year: int = 0
    capacity_before_kb: int = 0
    capacity_after_kb: int = 0
    storage_before_kb: int = 0
    storage_after_kb: int = 0
    items_affected: int = 0
    completed: bool = False
    created_at: datetime = field(default_factory=now)

    @property
    def storage_freed_kb(self) -> int:
        return self.storage_before_kb - self.storage_after_kb

    @property
    def within_capacity(self) -> bool:
        return self.storage_after_kb <= self.capacity_after_kb


@dataclass
class DegradationLogEntry(DecayBaseModel):
    """Audit record of a single item's stage transition inside a decay event."""
    __collection__: ClassVar[str] = "degradation_logs"
    __primary_key__: ClassVar[str] = "log_id"

    log_id: str = field(default_factory=new_id)
    decay_event_id: str = ""
    item_id: str = ""
    item_title: Optional[str] = None
    prev_stage: Stage = Stage.FULL
    new_stage: Stage = Stage.COMPRESSED
    reason: str = ""
    semantic_score: Optional[float] = None
    storage_pressure: Optional[float] = None
    reconstructability_score: Optional[float] = None
    size_before_kb: Optional[int] = None
    size_after_kb: Optional[int] = None
    simulated_year: int = 0
    created_at: datetime = field(default_factory=now)

    def __post_init__(self):
        self.prev_stage = coerce_enum(Stage, self.prev_stage)
        self.new_stage = coerce_enum(Stage, self.new_stage)
