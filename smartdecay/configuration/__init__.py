"""
Configuration for the decay simulation.

Sections (all optional, defaults in ``schemas.py``):
- simulation: capacity, horizon, decay rate and time scale
- valuation: default weights for new owners
- scheduler: retry policy for item transitions
- alerts: alert thresholds
- baseline: baseline comparison heuristics
- store: persistence backend
- observability: redis event stream
"""

from .environment import EnvironmentHandler
from .manager import ConfigManager
from .models import ConfigDict
from .schemas import (
    AlertsConfig,
    BaselineConfig,
    DecaySettings,
    ObservabilityConfig,
    SchedulerConfig,
    SimulationConfig,
    StoreConfig,
    ValuationConfig,
)

__all__ = [
    "AlertsConfig",
    "BaselineConfig",
    "ConfigDict",
    "ConfigManager",
    "DecaySettings",
    "EnvironmentHandler",
    "ObservabilityConfig",
    "SchedulerConfig",
    "SimulationConfig",
    "StoreConfig",
    "ValuationConfig",
]
