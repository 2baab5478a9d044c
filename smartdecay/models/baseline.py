from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar

from smartdecay.models.base import DecayBaseModel, coerce_enum, new_id
from smartdecay.utils import now


class BaselineStrategy(str, Enum):
    SEMANTIC = "semantic"
    TIME_BASED = "time_based"
    RANDOM = "random"


@dataclass
class BaselineResult(DecayBaseModel):
    """Comparison metrics of one retention strategy at one simulated year."""
    __collection__: ClassVar[str] = "baseline_results"
    __primary_key__: ClassVar[str] = "result_id"

    result_id: str = field(default_factory=new_id)
    simulation_year: int = 0
    strategy: BaselineStrategy = BaselineStrategy.SEMANTIC
    knowledge_coverage: float = 0.0
    semantic_diversity: float = 0.0
    retrieval_quality: float = 0.0
    reconstruction_quality: float = 0.0
    storage_efficiency: float = 0.0
    items_remaining: int = 0
    total_size_kb: int = 0
    created_at: datetime = field(default_factory=now)

    def __post_init__(self):
        self.strategy = coerce_enum(BaselineStrategy, self.strategy)
