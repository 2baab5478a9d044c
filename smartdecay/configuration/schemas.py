from typing import Literal, Optional

from pydantic import BaseModel, Field, confloat, conint, model_validator


class SimulationConfig(BaseModel):
    start_capacity_kb: conint(ge=0) = 1_000_000
    total_years: conint(ge=1) = 60
    decay_percent: confloat(ge=0, le=100) = 5.0
    decay_interval_years: conint(ge=1) = 2
    time_scale_ms: conint(ge=1) = 1000


class ValuationConfig(BaseModel):
    weight_relevance: confloat(ge=0) = 0.40
    weight_uniqueness: confloat(ge=0) = 0.35
    weight_reconstructability: confloat(ge=0) = 0.25

    @model_validator(mode="after")
    def _positive_total(self):
        if self.weight_relevance + self.weight_uniqueness + self.weight_reconstructability <= 0:
            raise ValueError("valuation weights must not all be zero")
        return self


class SchedulerConfig(BaseModel):
    max_retries: conint(ge=0, le=10) = 2
    retry_backoff_ms: conint(ge=0) = 50


class AlertsConfig(BaseModel):
    pressure_threshold: confloat(gt=0) = 0.8
    critical_pressure: confloat(gt=0) = 1.0
    high_value_score: confloat(ge=0, le=100) = 80.0
    critical_delete_score: confloat(ge=0, le=100) = 70.0


class BaselineConfig(BaseModel):
    report_interval_years: conint(ge=1) = 10
    seed: Optional[int] = None
    jitter: confloat(ge=0) = 4.0
    semantic_bonus: float = 15.0
    time_based_bonus: float = 5.0
    random_bonus: float = 0.0
    reconstruction_bonus: float = 10.0

    @model_validator(mode="after")
    def _bonus_gaps_exceed_jitter(self):
        # semantic > time_based > random must survive the worst-case jitter
        if self.semantic_bonus - self.time_based_bonus <= self.jitter:
            raise ValueError("semantic_bonus must exceed time_based_bonus by more than jitter")
        if self.time_based_bonus - self.random_bonus <= self.jitter:
            raise ValueError("time_based_bonus must exceed random_bonus by more than jitter")
        return self


class StoreConfig(BaseModel):
    backend: Literal["memory", "json"] = "memory"
    data_dir: str = "data"


class ObservabilityConfig(BaseModel):
    enabled: bool = False
    redis_host: str = "localhost"
    redis_port: conint(ge=1, le=65535) = 6379
    db: conint(ge=0) = 1
    stream_name: str = "smartdecay:events"
    maxlen: Optional[conint(ge=1)] = 100_000


class DecaySettings(BaseModel):
    """Validated view over the whole configuration file; every section has defaults."""
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    valuation: ValuationConfig = Field(default_factory=ValuationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    baseline: BaselineConfig = Field(default_factory=BaselineConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
