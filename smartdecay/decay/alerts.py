"""
Alert derivation for decay cycles.

Pure functions of their inputs: nothing here persists or publishes. The
scheduler decides what to do with the alerts it gets back.
"""

import math
from typing import Optional, Tuple

from smartdecay.configuration import AlertsConfig
from smartdecay.decay.selector import Transition, storage_pressure
from smartdecay.models.alert import Alert, AlertSeverity, AlertType
from smartdecay.models.archive_item import Stage
from smartdecay.models.simulation import SimulationState


class AlertEmitter:

    def __init__(self, pressure_threshold: float = 0.8, critical_pressure: float = 1.0,
                 high_value_score: float = 80.0, critical_delete_score: float = 70.0,
                 approaching_window: Tuple[int, ...] = (1, 2)):
        self.pressure_threshold = pressure_threshold
        self.critical_pressure = critical_pressure
        self.high_value_score = high_value_score
        self.critical_delete_score = critical_delete_score
        self.approaching_window = approaching_window

    @classmethod
    def from_config(cls, config: AlertsConfig) -> "AlertEmitter":
        return cls(
            pressure_threshold=config.pressure_threshold,
            critical_pressure=config.critical_pressure,
            high_value_score=config.high_value_score,
            critical_delete_score=config.critical_delete_score,
        )

    def storage_pressure(self, owner_id: str, storage_before_kb: int, capacity_after_kb: int,
                         simulated_year: int, decay_event_id: Optional[str] = None) -> Optional[Alert]:
        """Alert when usage at the start of a cycle exceeds the pressure threshold."""
        pressure = storage_pressure(storage_before_kb, capacity_after_kb)
        ratio = pressure / 100
        if ratio <= self.pressure_threshold:
            return None
        severity = AlertSeverity.CRITICAL if ratio > self.critical_pressure else AlertSeverity.WARNING
        shown = "over 100%" if math.isinf(pressure) else f"{pressure:.1f}%"
        needs = " - degradation required" if ratio > 1.0 else ""
        return Alert(
            owner_id=owner_id,
            alert_type=AlertType.STORAGE_PRESSURE,
            severity=severity,
            item_title="System Alert",
            storage_pressure=None if math.isinf(pressure) else round(pressure, 2),
            reason=f"Storage usage at {shown} of capacity{needs}",
            simulated_year=simulated_year,
            decay_event_id=decay_event_id,
        )

    def for_transition(self, transition: Transition, simulated_year: int,
                       decay_event_id: Optional[str] = None) -> Optional[Alert]:
        """Alert for a high-value item at risk or any deletion; None otherwise."""
        item = transition.item
        item_score = item.semantic_score or 0.0
        deleted = transition.next_stage is Stage.DELETED
        high_value = item_score >= self.high_value_score
        if not (high_value or deleted):
            return None

        if deleted:
            critical = item_score >= self.critical_delete_score
            alert_type = AlertType.ITEM_DELETED
        else:
            critical = True
            alert_type = AlertType.HIGH_VALUE_RISK

        pressure = transition.storage_pressure
        return Alert(
            owner_id=item.owner_id,
            alert_type=alert_type,
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
            item_id=item.item_id,
            item_title=item.title,
            semantic_score=item_score,
            current_stage=transition.prev_stage.value,
            target_stage=transition.next_stage.value,
            storage_pressure=None if math.isinf(pressure) else round(pressure, 2),
            reason=transition.reason,
            simulated_year=simulated_year,
            decay_event_id=decay_event_id,
        )

    def decay_approaching(self, state: SimulationState) -> Optional[Alert]:
        """Info alert when the next decay event is one or two simulated years away."""
        next_in = state.next_decay_in
        if next_in not in self.approaching_window or state.is_complete:
            return None
        next_year = state.current_year + next_in
        return Alert(
            owner_id=state.owner_id,
            alert_type=AlertType.DECAY_APPROACHING,
            severity=AlertSeverity.INFO,
            semantic_score=0.0,
            reason=f"Decay event approaching in {next_in} year(s) at Year {next_year}",
            simulated_year=state.current_year,
        )
