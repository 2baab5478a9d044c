"""
Baseline comparison: how would naive retention policies fare on the same archive?

Every strategy keeps the same number of items per reported year (the share of
capacity left after the decay events so far). Only *which* items survive
differs: highest semantic score, most recently ingested, or a fresh uniform
sample each year. The quality metrics are scoring heuristics built from the
surviving share and a per-strategy bonus, not from the survivors themselves;
which items survive shows up only in ``total_size_kb``. BaselineConfig
requires each bonus gap to exceed the jitter, so the ranking
semantic > time-based > random holds for every metric that carries a bonus.
"""

import logging
import math
import random
from typing import Dict, List, Optional, Sequence

import numpy as np

from smartdecay.configuration import BaselineConfig
from smartdecay.models.archive_item import ArchiveItem
from smartdecay.models.baseline import BaselineResult, BaselineStrategy
from smartdecay.models.simulation import SimulationState
from smartdecay.observability.instrumentation import obs_scope
from smartdecay.stores.archive_store import ArchiveStore

logger = logging.getLogger(__name__)

# Share of the remaining-ratio each metric is built from, before bonus and jitter
METRIC_BASES: Dict[str, float] = {
    "semantic_diversity": 0.80,
    "retrieval_quality": 0.85,
    "reconstruction_quality": 0.70,
}


def capacity_ratio(year: int, decay_interval_years: int, decay_percent: float) -> float:
    decay_events = year // decay_interval_years
    return (1 - decay_percent / 100) ** decay_events


def surviving_count(total: int, ratio: float) -> int:
    return int(math.floor(total * ratio + 1e-9))


class BaselineSimulator:

    def __init__(self, store: Optional[ArchiveStore] = None, rng: Optional[random.Random] = None,
                 config: Optional[BaselineConfig] = None):
        self.store = store
        self.config = config or BaselineConfig()
        self.rng = rng or random.Random(self.config.seed)

    def _bonus(self, strategy: BaselineStrategy) -> float:
        return {
            BaselineStrategy.SEMANTIC: self.config.semantic_bonus,
            BaselineStrategy.TIME_BASED: self.config.time_based_bonus,
            BaselineStrategy.RANDOM: self.config.random_bonus,
        }[strategy]

    def _jitter(self) -> float:
        return self.rng.random() * self.config.jitter

    def _survivors(self, strategy: BaselineStrategy, items: Sequence[ArchiveItem], count: int) -> np.ndarray:
        if count <= 0:
            return np.array([], dtype=int)
        if strategy is BaselineStrategy.SEMANTIC:
            scores = np.array([item.semantic_score for item in items], dtype=float)
            return np.argsort(-scores, kind="stable")[:count]
        if strategy is BaselineStrategy.TIME_BASED:
            ingested = np.array([item.ingested_at.timestamp() for item in items], dtype=float)
            return np.argsort(-ingested, kind="stable")[:count]
        return np.array(self.rng.sample(range(len(items)), count), dtype=int)

    def _metrics(self, strategy: BaselineStrategy, ratio: float) -> Dict[str, float]:
        bonus = self._bonus(strategy)
        metrics = {"knowledge_coverage": round(ratio * 100 + bonus, 1)}
        for name, base in METRIC_BASES.items():
            value = base * ratio * 100 + bonus + self._jitter()
            if name == "reconstruction_quality" and strategy is BaselineStrategy.SEMANTIC:
                value += self.config.reconstruction_bonus
            metrics[name] = round(value, 1)
        metrics["storage_efficiency"] = round(ratio * 100, 1)
        return metrics

    def compare(self, items: Sequence[ArchiveItem], state: SimulationState,
                owner_id: Optional[str] = None) -> List[BaselineResult]:
        """Metrics per (reported year, strategy) for the given items, every stage included."""
        total = len(items)
        if total == 0:
            return []
        sizes = np.array([item.size_kb for item in items], dtype=np.int64)

        results = []
        for year in range(0, state.total_years + 1, self.config.report_interval_years):
            count = surviving_count(total, capacity_ratio(year, state.decay_interval_years, state.decay_percent))
            for strategy in BaselineStrategy:
                kept = self._survivors(strategy, items, count)
                results.append(BaselineResult(
                    owner_id=owner_id or state.owner_id,
                    simulation_year=year,
                    strategy=strategy,
                    items_remaining=int(kept.size),
                    total_size_kb=int(sizes[kept].sum()) if kept.size else 0,
                    **self._metrics(strategy, kept.size / total),
                ))
        return results

    def run(self, owner_id: str, state: SimulationState) -> List[BaselineResult]:
        """Replace the owner's stored comparison with a freshly computed one."""
        if self.store is None:
            raise ValueError("BaselineSimulator.run needs a store")
        with obs_scope(owner_id=owner_id, component="baseline_simulator"):
            items = self.store.list_items(owner_id, include_deleted=True)
            removed = self.store.delete_baselines(owner_id)
            if not items:
                logger.warning(f"No archived items for {owner_id}; nothing to compare")
                return []

            results = self.compare(items, state, owner_id)
            self.store.save_baseline_results(results)
            logger.info(f"Baseline comparison for {owner_id}: {len(results)} results over {len(items)} items "
                        f"(replaced {removed})")
            return results
