"""
Validation rules of the settings sections.
"""
import pytest
from pydantic import ValidationError

from smartdecay.configuration import (
    AlertsConfig,
    BaselineConfig,
    DecaySettings,
    ObservabilityConfig,
    SimulationConfig,
    StoreConfig,
    ValuationConfig,
)


class TestSettingsSchemas:

    def test_defaults(self):
        settings = DecaySettings()

        assert settings.simulation.total_years == 60
        assert settings.simulation.decay_interval_years == 2
        assert settings.valuation.weight_relevance == 0.40
        assert settings.alerts.pressure_threshold == 0.8
        assert settings.observability.stream_name == "smartdecay:events"
        assert settings.observability.enabled is False

    @pytest.mark.parametrize("field,value", [
        ("decay_percent", -1),
        ("decay_percent", 101),
        ("total_years", 0),
        ("decay_interval_years", 0),
        ("start_capacity_kb", -5),
    ])
    def test_simulation_bounds(self, field, value):
        with pytest.raises(ValidationError):
            SimulationConfig(**{field: value})

    def test_zero_capacity_is_allowed(self):
        assert SimulationConfig(start_capacity_kb=0).start_capacity_kb == 0

    def test_weights_must_not_all_be_zero(self):
        with pytest.raises(ValidationError):
            ValuationConfig(weight_relevance=0, weight_uniqueness=0, weight_reconstructability=0)
        assert ValuationConfig(weight_relevance=1, weight_uniqueness=0, weight_reconstructability=0)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            ValuationConfig(weight_uniqueness=-0.1)

    def test_jitter_stays_below_bonus_gap(self):
        with pytest.raises(ValidationError):
            BaselineConfig(jitter=5)
        with pytest.raises(ValidationError):
            BaselineConfig(semantic_bonus=0, time_based_bonus=0)
        with pytest.raises(ValidationError):
            BaselineConfig(jitter=3, semantic_bonus=8, time_based_bonus=5)
        with pytest.raises(ValidationError):
            BaselineConfig(jitter=1, time_based_bonus=1, random_bonus=0.5)

    def test_wider_bonus_gaps_allow_more_jitter(self):
        config = BaselineConfig(jitter=8, semantic_bonus=30, time_based_bonus=15, random_bonus=0)
        assert config.jitter == 8
        assert BaselineConfig(jitter=0, semantic_bonus=2, time_based_bonus=1).random_bonus == 0

    def test_alert_scores_are_percentages(self):
        with pytest.raises(ValidationError):
            AlertsConfig(high_value_score=120)

    def test_store_backend_choices(self):
        assert StoreConfig(backend="json").backend == "json"
        with pytest.raises(ValidationError):
            StoreConfig(backend="mongo")

    def test_observability_port_range(self):
        with pytest.raises(ValidationError):
            ObservabilityConfig(redis_port=70000)

    def test_strings_from_env_are_coerced(self):
        settings = DecaySettings.model_validate({"simulation": {"decay_percent": "10", "total_years": "30"}})

        assert settings.simulation.decay_percent == 10.0
        assert settings.simulation.total_years == 30
