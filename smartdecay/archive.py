"""
Archive operations around the decay engine.

Ingestion, out-of-band score refresh, weight changes and content degradation.
The decay scheduler decides *that* an item moves to another stage; this
service fills in what is left of its content afterwards.
"""

import logging
import random
from typing import Any, Callable, Dict, Iterable, List, Optional

from smartdecay.configuration import DecaySettings
from smartdecay.decay.errors import ValuationUnavailable
from smartdecay.decay.scheduler import initialize_owner, owner_lock
from smartdecay.decay.valuation import normalize_weights, rescore
from smartdecay.integration.summarization import SummarizationService, TruncatingSummarizer
from smartdecay.integration.valuation import ValuationService
from smartdecay.models.archive_item import NEUTRAL_SCORE, ArchiveItem, Stage
from smartdecay.models.base import DEFAULT_OWNER
from smartdecay.models.simulation import SimulationState, ValuationWeights
from smartdecay.observability.domain_events import DomainEvent, DomainEventBus, ItemTransitioned
from smartdecay.stores.archive_store import ArchiveStore

logger = logging.getLogger(__name__)

MIN_RANDOM_SIZE_KB = 50
MAX_RANDOM_SIZE_KB = 549


class ArchiveService:

    def __init__(self, store: ArchiveStore, owner_id: str = DEFAULT_OWNER,
                 valuation_service: Optional[ValuationService] = None,
                 summarizer: Optional[SummarizationService] = None,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.owner_id = owner_id
        self.valuation_service = valuation_service
        self.summarizer = summarizer or TruncatingSummarizer()
        self.rng = rng or random.Random()

    def initialize(self, settings: Optional[DecaySettings] = None) -> SimulationState:
        """Create default simulation state and weights for the owner if missing."""
        return initialize_owner(self.store, self.owner_id, settings)

    # ---- Ingestion ----------------------------------------------------------

    def ingest(self, title: str, content: Optional[str] = None, item_type: str = "document",
               tags: Optional[List[str]] = None, source_url: Optional[str] = None,
               size_kb: Optional[int] = None) -> ArchiveItem:
        """Archive one item at stage FULL with neutral scores.

        A missing or zero size is drawn from the service's RNG (50-549 KB).
        """
        if not title or not title.strip():
            raise ValueError("An archived item needs a title")
        if size_kb is not None and size_kb < 0:
            raise ValueError(f"size_kb must not be negative, got {size_kb}")
        if not size_kb:
            size_kb = self.rng.randint(MIN_RANDOM_SIZE_KB, MAX_RANDOM_SIZE_KB)

        item = ArchiveItem(
            owner_id=self.owner_id,
            title=title.strip(),
            content=content,
            item_type=item_type,
            tags=list(tags or []),
            source_url=source_url,
            size_kb=int(size_kb),
            val_relevance=NEUTRAL_SCORE,
            val_uniqueness=NEUTRAL_SCORE,
            val_reconstructability=NEUTRAL_SCORE,
        )
        item = rescore(item, self.get_weights())
        self.store.add_item(item)
        logger.debug(f"Ingested {item.item_id} ({item.size_kb} KB) for {self.owner_id}")
        return item

    def ingest_many(self, records: Iterable[Dict[str, Any]]) -> List[ArchiveItem]:
        """Ingest plain dict records (title, content, item_type, tags, source_url, size_kb)."""
        items = []
        for record in records:
            items.append(self.ingest(
                title=record.get("title", ""),
                content=record.get("content"),
                item_type=record.get("item_type", "document"),
                tags=record.get("tags"),
                source_url=record.get("source_url"),
                size_kb=record.get("size_kb"),
            ))
        logger.info(f"Ingested {len(items)} items for {self.owner_id}")
        return items

    # ---- Valuation ----------------------------------------------------------

    def refresh_scores(self, item_ids: Optional[Iterable[str]] = None) -> Dict[str, int]:
        """Ask the valuation service for fresh scores.

        Items the service cannot value keep their last-known scores and are
        counted as skipped. DELETED items are never revalued.
        """
        if self.valuation_service is None:
            raise ValuationUnavailable("No valuation service configured")

        wanted = set(item_ids) if item_ids is not None else None
        weights = self.get_weights()
        refreshed = skipped = 0
        for item in self.store.list_items(self.owner_id):
            if wanted is not None and item.item_id not in wanted:
                continue
            try:
                result = self.valuation_service.analyze(item.title, item.content, item.item_type, item.tags)
            except ValuationUnavailable as e:
                logger.warning(f"Keeping last-known scores of {item.item_id}: {e}")
                skipped += 1
                continue

            with owner_lock(self.owner_id):
                current = self.store.get_item(self.owner_id, item.item_id)
                if current is None or current.is_deleted:
                    skipped += 1
                    continue
                current.val_relevance = result.relevance
                current.val_uniqueness = result.uniqueness
                current.val_reconstructability = result.reconstructability
                self.store.save_item(rescore(current, weights))
            refreshed += 1

        logger.info(f"Refreshed scores for {refreshed} items ({skipped} skipped)")
        return {"refreshed": refreshed, "skipped": skipped}

    def get_weights(self) -> ValuationWeights:
        weights = self.store.get_weights(self.owner_id)
        if weights is None:
            return ValuationWeights(owner_id=self.owner_id)
        return weights

    def update_weights(self, w_relevance: float, w_uniqueness: float,
                       w_reconstructability: float) -> ValuationWeights:
        """Normalize and persist new weights, then rescore every surviving item.

        Raises:
            ValueError: If a weight is negative or all are zero
        """
        weights = normalize_weights(ValuationWeights(
            owner_id=self.owner_id,
            w_relevance=w_relevance,
            w_uniqueness=w_uniqueness,
            w_reconstructability=w_reconstructability,
        ))
        with owner_lock(self.owner_id):
            self.store.save_weights(weights)
            items = self.store.list_items(self.owner_id)
            for item in items:
                self.store.save_item(rescore(item, weights))
        logger.info(f"Updated weights for {self.owner_id} to {weights.as_tuple()}; rescored {len(items)} items")
        return weights

    # ---- Content degradation --------------------------------------------------

    def apply_degraded_content(self, item_id: str) -> Optional[ArchiveItem]:
        """Bring an item's content fields in line with its current stage."""
        with owner_lock(self.owner_id):
            item = self.store.get_item(self.owner_id, item_id)
            if item is None:
                logger.warning(f"Cannot degrade content of unknown item {item_id}")
                return None

            if item.stage is Stage.FULL:
                return item
            if item.stage is Stage.COMPRESSED:
                item.compressed_content = item.content
            elif item.stage is Stage.DELETED:
                item.content = None
                item.compressed_content = None
                item.summary = None
                item.minimal_json = None
            else:
                degraded = self.summarizer.degrade(item.title, item.content or item.summary, item.stage)
                if item.stage is Stage.SUMMARIZED:
                    item.summary = degraded.summary
                else:
                    item.minimal_json = degraded.minimal_json
            return self.store.save_item(item)

    def on_item_transitioned(self, event: DomainEvent) -> None:
        if isinstance(event, ItemTransitioned) and event.owner_id == self.owner_id:
            self.apply_degraded_content(event.item_id)

    def attach(self, bus: DomainEventBus) -> Callable[[], None]:
        """Degrade content automatically whenever the engine transitions one of the owner's items."""
        return bus.subscribe(self.on_item_transitioned)
