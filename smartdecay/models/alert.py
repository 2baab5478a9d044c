from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from smartdecay.models.base import DecayBaseModel, coerce_enum, new_id
from smartdecay.utils import now


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertType(str, Enum):
    STORAGE_PRESSURE = "storage_pressure"
    HIGH_VALUE_RISK = "high_value_risk"
    DECAY_APPROACHING = "decay_approaching"
    ITEM_DEGRADED = "item_degraded"
    ITEM_DELETED = "item_deleted"


@dataclass
class Alert(DecayBaseModel):
    """Notification derived from a decay step. ``is_read`` is the only field that ever changes."""
    __collection__: ClassVar[str] = "alerts"
    __primary_key__: ClassVar[str] = "alert_id"

    alert_id: str = field(default_factory=new_id)
    alert_type: AlertType = AlertType.ITEM_DEGRADED
    severity: AlertSeverity = AlertSeverity.INFO
    reason: str = ""
    simulated_year: int = 0
    item_id: Optional[str] = None
    item_title: Optional[str] = None
    semantic_score: Optional[float] = None
    current_stage: Optional[str] = None
    target_stage: Optional[str] = None
    storage_pressure: Optional[float] = None
    decay_event_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime = field(default_factory=now)

    def __post_init__(self):
        self.alert_type = coerce_enum(AlertType, self.alert_type)
        self.severity = coerce_enum(AlertSeverity, self.severity)
