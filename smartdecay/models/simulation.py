from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Tuple

from smartdecay.models.base import DecayBaseModel
from smartdecay.utils import now


@dataclass
class ValuationWeights(DecayBaseModel):
    """Per-owner weighting of the three valuation dimensions."""
    __collection__: ClassVar[str] = "valuation_weights"
    __primary_key__: ClassVar[str] = "owner_id"

    w_relevance: float = 0.40
    w_uniqueness: float = 0.35
    w_reconstructability: float = 0.25
    updated_at: datetime = field(default_factory=now)

    def as_tuple(self) -> Tuple[float, float, float]:
        return self.w_relevance, self.w_uniqueness, self.w_reconstructability

    @property
    def total(self) -> float:
        return sum(self.as_tuple())


@dataclass
class SimulationState(DecayBaseModel):
    """
    Clock and capacity of one owner's simulation run.

    ``current_capacity_kb`` never increases and ``current_year`` only grows by
    ``decay_interval_years`` per decay cycle, up to ``total_years``. Only an
    explicit reset moves them back to their starting values.
    """
    __collection__: ClassVar[str] = "simulation_state"
    __primary_key__: ClassVar[str] = "owner_id"

    start_capacity_kb: int = 1_000_000
    current_capacity_kb: int = 1_000_000
    current_year: int = 0
    total_years: int = 60
    decay_percent: float = 5.0
    decay_interval_years: int = 2
    time_scale_ms: int = 1000
    is_running: bool = False
    updated_at: datetime = field(default_factory=now)

    @property
    def capacity_percent(self) -> int:
        if self.start_capacity_kb <= 0:
            return 0
        return round(self.current_capacity_kb / self.start_capacity_kb * 100)

    @property
    def total_decay_events(self) -> int:
        return self.total_years // self.decay_interval_years

    @property
    def current_decay_event(self) -> int:
        return self.current_year // self.decay_interval_years

    @property
    def next_decay_in(self) -> int:
        """Simulated years until the next decay event."""
        return self.decay_interval_years - (self.current_year % self.decay_interval_years)

    @property
    def is_complete(self) -> bool:
        return self.current_year + self.decay_interval_years > self.total_years

    @property
    def tick_interval_seconds(self) -> float:
        """Wall-clock seconds between automatic decay cycles."""
        return self.time_scale_ms * self.decay_interval_years / 1000.0
