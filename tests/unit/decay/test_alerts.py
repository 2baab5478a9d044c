"""
Unit tests for alert derivation.
"""
import pytest

from smartdecay.configuration import AlertsConfig
from smartdecay.decay.alerts import AlertEmitter
from smartdecay.decay.selector import Transition
from smartdecay.models.alert import AlertSeverity, AlertType
from smartdecay.models.archive_item import Stage
from smartdecay.models.simulation import SimulationState


@pytest.fixture
def emitter():
    return AlertEmitter()


def _transition(item, prev, nxt, pressure=150.0):
    return Transition(item=item, prev_stage=prev, next_stage=nxt, size_before_kb=item.current_size_kb,
                      size_after_kb=0, storage_pressure=pressure, reason="test reason")


class TestStoragePressureAlert:

    def test_below_threshold_is_silent(self, emitter):
        assert emitter.storage_pressure("o", 800, 1000, 2) is None

    def test_warning_between_threshold_and_full(self, emitter):
        alert = emitter.storage_pressure("o", 900, 1000, 2, "evt")
        assert alert.alert_type is AlertType.STORAGE_PRESSURE
        assert alert.severity is AlertSeverity.WARNING
        assert alert.decay_event_id == "evt"
        assert alert.storage_pressure == pytest.approx(90.0)

    def test_exactly_full_is_still_warning(self, emitter):
        assert emitter.storage_pressure("o", 1000, 1000, 2).severity is AlertSeverity.WARNING

    def test_critical_above_capacity(self, emitter):
        alert = emitter.storage_pressure("o", 1001, 1000, 2)
        assert alert.severity is AlertSeverity.CRITICAL
        assert "degradation required" in alert.reason

    def test_zero_capacity_counts_as_infinite_pressure(self, emitter):
        alert = emitter.storage_pressure("o", 10, 0, 40)
        assert alert.severity is AlertSeverity.CRITICAL
        assert alert.storage_pressure is None


class TestTransitionAlert:

    def test_low_value_degradation_is_silent(self, emitter, make_item):
        item = make_item(score=50)
        assert emitter.for_transition(_transition(item, Stage.FULL, Stage.COMPRESSED), 4) is None

    def test_high_value_at_risk_is_critical(self, emitter, make_item):
        item = make_item(score=80)
        alert = emitter.for_transition(_transition(item, Stage.FULL, Stage.COMPRESSED), 4, "evt")
        assert alert.alert_type is AlertType.HIGH_VALUE_RISK
        assert alert.severity is AlertSeverity.CRITICAL
        assert (alert.current_stage, alert.target_stage) == ("FULL", "COMPRESSED")
        assert alert.item_id == item.item_id

    def test_deleting_high_value_item_gives_one_critical_deletion_alert(self, emitter, make_item):
        item = make_item(score=85, stage=Stage.MINIMAL)
        alert = emitter.for_transition(_transition(item, Stage.MINIMAL, Stage.DELETED), 30)
        assert alert.alert_type is AlertType.ITEM_DELETED
        assert alert.severity is AlertSeverity.CRITICAL

    def test_deleting_mid_value_item_is_critical(self, emitter, make_item):
        item = make_item(score=70, stage=Stage.MINIMAL)
        alert = emitter.for_transition(_transition(item, Stage.MINIMAL, Stage.DELETED), 30)
        assert alert.severity is AlertSeverity.CRITICAL

    def test_deleting_low_value_item_is_warning(self, emitter, make_item):
        item = make_item(score=69.99, stage=Stage.MINIMAL)
        alert = emitter.for_transition(_transition(item, Stage.MINIMAL, Stage.DELETED), 30)
        assert alert.alert_type is AlertType.ITEM_DELETED
        assert alert.severity is AlertSeverity.WARNING

    def test_thresholds_come_from_config(self, make_item):
        emitter = AlertEmitter.from_config(AlertsConfig(high_value_score=40))
        alert = emitter.for_transition(_transition(make_item(score=45), Stage.FULL, Stage.COMPRESSED), 2)
        assert alert.alert_type is AlertType.HIGH_VALUE_RISK


class TestDecayApproaching:

    @pytest.mark.parametrize("year,interval,expected", [
        (0, 2, True),    # next decay in 2
        (2, 2, True),
        (3, 4, True),    # next decay in 1
        (0, 4, False),   # next decay in 4
        (60, 2, False),  # complete
    ])
    def test_window(self, emitter, year, interval, expected):
        state = SimulationState(owner_id="o", current_year=year, decay_interval_years=interval, total_years=60)
        alert = emitter.decay_approaching(state)
        assert (alert is not None) == expected
        if alert is not None:
            assert alert.severity is AlertSeverity.INFO
            assert alert.alert_type is AlertType.DECAY_APPROACHING
