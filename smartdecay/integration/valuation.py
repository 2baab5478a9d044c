"""
Valuation service contract.

An external analyzer rates an item on relevance, uniqueness and
reconstructability. The engine never calls it during a decay cycle: scores are
refreshed out of band and consumed later. Implementations signal any failure
with ValuationUnavailable so callers can keep the last-known scores.
"""
from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, confloat

from smartdecay.decay.errors import ValuationUnavailable

# Item types whose content survives summarization well
TEXT_ITEM_TYPES = frozenset({"article", "research", "document", "note", "text"})


class ValuationResult(BaseModel):
    relevance: confloat(ge=0, le=100)
    uniqueness: confloat(ge=0, le=100)
    reconstructability: confloat(ge=0, le=100)
    reasoning: str = ""
    summary: Optional[str] = None


class ValuationService(ABC):
    """Abstract analyzer producing the three valuation dimensions of an item."""

    @abstractmethod
    def analyze(self, title: str, content: Optional[str], item_type: str,
                tags: Optional[List[str]] = None) -> ValuationResult:
        """Score an item.

        Raises:
            ValuationUnavailable: If the analysis could not be produced
        """
        raise NotImplementedError


class HeuristicValuationService(ValuationService):
    """Randomized stand-in for a model-based analyzer; reproducible with a seeded RNG."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def analyze(self, title: str, content: Optional[str], item_type: str,
                tags: Optional[List[str]] = None) -> ValuationResult:
        if not title:
            raise ValuationUnavailable("Cannot value an item without a title")
        relevance = 50 + self.rng.random() * 30
        uniqueness = 40 + self.rng.random() * 40
        if (item_type or "").lower() in TEXT_ITEM_TYPES:
            reconstructability = 60 + self.rng.random() * 30
        else:
            reconstructability = 30 + self.rng.random() * 30
        return ValuationResult(
            relevance=round(relevance, 2),
            uniqueness=round(uniqueness, 2),
            reconstructability=round(reconstructability, 2),
            reasoning="Heuristic scoring by item type",
        )
