"""
Decay scheduler: the only writer of an owner's simulation state.

A decay cycle shrinks capacity by ``decay_percent``, degrades the lowest-value
items until storage fits (one pass), records a DecayEvent with one
DegradationLogEntry per transition, and only then advances the simulated year.

Cycles of one owner are serialized by a process-wide per-owner lock, so two
schedulers built for the same owner never interleave, and the persisted
``is_running`` flag allows one ticker per owner. Capacity decay is applied at
most once per (owner, simulated year): a cycle whose final state write failed
is resumed from its recorded DecayEvent on the next tick, and one whose
degradation pass was cut short finishes that pass.
"""

import dataclasses
import logging
import math
import threading
import time
from typing import Callable, Dict, List, Optional, TypeVar

from smartdecay.configuration import DecaySettings
from smartdecay.decay.alerts import AlertEmitter
from smartdecay.decay.errors import DecayError, PersistenceFailure, SchedulerConflict, StateWriteFailure
from smartdecay.decay.selector import DegradationSelector, Transition
from smartdecay.decay.valuation import normalize_weights, rescore
from smartdecay.models.alert import Alert
from smartdecay.models.archive_item import ArchiveItem, Stage
from smartdecay.models.base import DEFAULT_OWNER
from smartdecay.models.history import DecayEvent, DegradationLogEntry
from smartdecay.models.simulation import SimulationState, ValuationWeights
from smartdecay.observability.domain_events import AlertRaised, DecayEventCompleted, DomainEventBus, ItemTransitioned
from smartdecay.observability.instrumentation import update_obs_context, with_obs_context
from smartdecay.stores.archive_store import ArchiveStore
from smartdecay.utils import get_settings

logger = logging.getLogger(__name__)

R = TypeVar("R")

_owner_locks: Dict[str, threading.RLock] = {}
_registry_lock = threading.Lock()


def owner_lock(owner_id: str) -> threading.RLock:
    """The lock serializing every decay cycle, reset and state change of one owner."""
    with _registry_lock:
        lock = _owner_locks.get(owner_id)
        if lock is None:
            lock = _owner_locks[owner_id] = threading.RLock()
        return lock


def decayed_capacity(capacity_kb: int, decay_percent: float) -> int:
    """Capacity after one decay event, floored to whole KB."""
    # Absorb binary rounding so that 1_000_000 at 5% is exactly 950_000
    return max(0, int(math.floor(capacity_kb * (1 - decay_percent / 100) + 1e-9)))


def initialize_owner(store: ArchiveStore, owner_id: str = DEFAULT_OWNER,
                     settings: Optional[DecaySettings] = None) -> SimulationState:
    """Load the owner's simulation state, creating it and default weights on first use."""
    settings = settings or get_settings()
    if store.get_weights(owner_id) is None:
        cfg = settings.valuation
        store.save_weights(normalize_weights(ValuationWeights(
            owner_id=owner_id,
            w_relevance=cfg.weight_relevance,
            w_uniqueness=cfg.weight_uniqueness,
            w_reconstructability=cfg.weight_reconstructability,
        )))

    state = store.get_state(owner_id)
    if state is None:
        sim = settings.simulation
        state = SimulationState(
            owner_id=owner_id,
            start_capacity_kb=sim.start_capacity_kb,
            current_capacity_kb=sim.start_capacity_kb,
            total_years=sim.total_years,
            decay_percent=sim.decay_percent,
            decay_interval_years=sim.decay_interval_years,
            time_scale_ms=sim.time_scale_ms,
        )
        store.save_state(state)
        logger.info(f"Initialized simulation for owner {owner_id}: {state.start_capacity_kb} KB, "
                    f"{state.total_years} years")
    return state


class DecayScheduler:

    def __init__(self, store: ArchiveStore, state: SimulationState,
                 selector: Optional[DegradationSelector] = None,
                 alert_emitter: Optional[AlertEmitter] = None,
                 event_bus: Optional[DomainEventBus] = None,
                 max_retries: int = 2, retry_backoff_ms: int = 50):
        self.store = store
        self.state = state
        self.owner_id = state.owner_id
        self.selector = selector or DegradationSelector()
        self.alerts = alert_emitter or AlertEmitter()
        self.event_bus = event_bus or DomainEventBus()
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms

        self._lock = owner_lock(self.owner_id)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def for_owner(cls, store: ArchiveStore, owner_id: str = DEFAULT_OWNER,
                  settings: Optional[DecaySettings] = None,
                  event_bus: Optional[DomainEventBus] = None) -> "DecayScheduler":
        """Scheduler for an owner, initializing state and weights from configuration if needed."""
        settings = settings or get_settings()
        state = initialize_owner(store, owner_id, settings)
        return cls(
            store,
            state,
            alert_emitter=AlertEmitter.from_config(settings.alerts),
            event_bus=event_bus,
            max_retries=settings.scheduler.max_retries,
            retry_backoff_ms=settings.scheduler.retry_backoff_ms,
        )

    @property
    def is_ticking(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ---- Public control surface ------------------------------------------

    def start(self) -> bool:
        """Begin automatic decay cycles.

        False if this owner is already running (a ticker of this or another
        scheduler; ``pause`` clears a flag left behind by a dead process) or
        nothing is left to simulate.
        """
        with self._lock:
            self._refresh_state()
            if self.is_ticking or self.state.is_running:
                logger.info(f"Decay for {self.owner_id} is already running")
                return False
            if self.state.is_complete:
                logger.info(f"Simulation for {self.owner_id} already complete at year {self.state.current_year}")
                return False
            self._commit_state(dataclasses.replace(self.state, is_running=True))
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._tick_loop, name=f"decay-ticker-{self.owner_id}", daemon=True
            )
            self._thread.start()
        logger.info(f"Started decay ticker for {self.owner_id} every {self.state.tick_interval_seconds:.3f}s")
        return True

    def pause(self) -> None:
        """Stop ticking. A cycle already in flight completes first."""
        self._stop.set()
        with self._lock:
            self._refresh_state()
            if self.state.is_running:
                self._commit_state(dataclasses.replace(self.state, is_running=False))
        self._join_ticker()

    def step(self) -> Optional[DecayEvent]:
        """Run exactly one decay cycle now.

        Raises:
            SchedulerConflict: If the ticker is running or another cycle holds the owner's lock
        """
        if not self._lock.acquire(blocking=False):
            raise SchedulerConflict(f"A decay cycle for {self.owner_id} is already in flight")
        try:
            self._refresh_state()
            if self.state.is_running:
                raise SchedulerConflict(f"Simulation for {self.owner_id} is running; pause it before stepping")
            return self._run_cycle()
        finally:
            self._lock.release()

    def process_decay_event(self) -> Optional[DecayEvent]:
        """One decay cycle, waiting for any cycle in flight. None once the simulation is complete."""
        with self._lock:
            self._refresh_state()
            return self._run_cycle()

    def reset(self) -> SimulationState:
        """Restore every item to FULL, drop decay history and rewind the clock.

        Alerts are kept; they are an inbox, not simulation history.
        """
        self._stop.set()
        with self._lock:
            self._refresh_state()
            restored = 0
            for item in self.store.list_items(self.owner_id, include_deleted=True):
                self.store.save_item(dataclasses.replace(
                    item,
                    stage=Stage.FULL,
                    current_size_kb=item.size_kb,
                    compressed_content=None,
                    summary=None,
                    minimal_json=None,
                ))
                restored += 1
            events = self.store.delete_events(self.owner_id)
            logs = self.store.delete_logs(self.owner_id)
            baselines = self.store.delete_baselines(self.owner_id)
            self._commit_state(dataclasses.replace(
                self.state,
                current_year=0,
                current_capacity_kb=self.state.start_capacity_kb,
                is_running=False,
            ))
            logger.info(f"Reset {self.owner_id}: {restored} items restored, removed {events} events, "
                        f"{logs} log entries and {baselines} baseline results")
        self._join_ticker()
        return self.state

    # ---- Decay cycle -----------------------------------------------------

    @with_obs_context(lambda self: {"owner_id": self.owner_id, "component": "decay_scheduler"})
    def _run_cycle(self) -> Optional[DecayEvent]:
        state = self.state
        new_year = state.current_year + state.decay_interval_years
        if new_year > state.total_years:
            if state.is_running:
                self._commit_state(dataclasses.replace(state, is_running=False))
            self._stop.set()
            logger.info(f"Simulation complete at year {state.current_year}")
            return None
        update_obs_context({"simulated_year": new_year})

        existing = self.store.find_event(self.owner_id, new_year)
        if existing is not None and existing.completed:
            return self._resume_cycle(existing)

        items = self._scored_items()
        storage_now = sum(item.current_size_kb for item in items)
        if existing is None:
            event = DecayEvent(
                owner_id=self.owner_id,
                event_no=new_year // state.decay_interval_years,
                simulated_year=new_year,
                capacity_before_kb=state.current_capacity_kb,
                capacity_after_kb=decayed_capacity(state.current_capacity_kb, state.decay_percent),
                storage_before_kb=storage_now,
                storage_after_kb=storage_now,
            )
            self.store.save_event(event)
            update_obs_context({"decay_event_id": event.event_id})
            self._emit_alert(self.alerts.storage_pressure(
                self.owner_id, storage_now, event.capacity_after_kb, new_year, event.event_id
            ))
            already_degraded = 0
        else:
            # The pass was cut short: items already logged for this event keep their single step
            event = existing
            update_obs_context({"decay_event_id": event.event_id})
            done = {entry.item_id for entry in self.store.list_logs(self.owner_id, decay_event_id=event.event_id)}
            items = [item for item in items if item.item_id not in done]
            already_degraded = len(done)
            logger.warning(f"Decay event {event.event_no} (year {new_year}) was interrupted after "
                           f"{already_degraded} transitions; finishing its degradation pass")

        transitions = self.selector.select(items, storage_now, event.capacity_after_kb)
        storage_after = storage_now
        applied = 0
        for transition in transitions:
            if self._apply_transition(transition, event):
                storage_after -= transition.freed_kb
                applied += 1

        event.storage_after_kb = storage_after
        event.items_affected = already_degraded + applied
        event.completed = True
        try:
            self._with_retries("complete decay event", lambda: self.store.save_event(event))
        except PersistenceFailure as e:
            logger.error(f"Could not record totals of decay event {event.event_no}: {e}")

        self._commit_state(dataclasses.replace(
            state, current_year=new_year, current_capacity_kb=event.capacity_after_kb
        ))
        logger.info(f"Decay event {event.event_no} (year {new_year}): capacity {event.capacity_before_kb} -> "
                    f"{event.capacity_after_kb} KB, storage {event.storage_before_kb} -> {storage_after} KB, "
                    f"{applied}/{len(transitions)} items degraded")

        self.event_bus.publish(DecayEventCompleted(owner_id=self.owner_id, decay_event=event))
        self._emit_alert(self.alerts.decay_approaching(self.state))
        return event

    def _resume_cycle(self, event: DecayEvent) -> DecayEvent:
        """Finish a completed cycle whose state write failed, without decaying capacity again."""
        logger.warning(f"Decay event for year {event.simulated_year} already recorded; "
                       f"resuming state at {event.capacity_after_kb} KB")
        self._commit_state(dataclasses.replace(
            self.state,
            current_year=event.simulated_year,
            current_capacity_kb=event.capacity_after_kb,
        ))
        self.event_bus.publish(DecayEventCompleted(owner_id=self.owner_id, decay_event=event, resumed=True))
        self._emit_alert(self.alerts.decay_approaching(self.state))
        return event

    def _scored_items(self) -> List[ArchiveItem]:
        """Non-deleted items with semantic scores recomputed from the owner's current weights."""
        weights = self.store.get_weights(self.owner_id) or ValuationWeights(owner_id=self.owner_id)
        scored = []
        for item in self.store.list_items(self.owner_id):
            fresh = rescore(item, weights)
            if fresh.semantic_score != item.semantic_score:
                try:
                    self.store.save_item(fresh)
                except PersistenceFailure as e:
                    logger.warning(f"Could not persist new score of {item.item_id}: {e}")
            scored.append(fresh)
        return scored

    def _apply_transition(self, transition: Transition, event: DecayEvent) -> bool:
        item = transition.item
        changes = {"stage": transition.next_stage, "current_size_kb": transition.size_after_kb}
        if transition.next_stage is Stage.DELETED:
            changes.update(content=None, compressed_content=None, summary=None, minimal_json=None)
        updated = dataclasses.replace(item, **changes)
        entry = DegradationLogEntry(
            owner_id=self.owner_id,
            decay_event_id=event.event_id,
            item_id=item.item_id,
            item_title=item.title,
            prev_stage=transition.prev_stage,
            new_stage=transition.next_stage,
            reason=transition.reason,
            semantic_score=item.semantic_score,
            storage_pressure=None if math.isinf(transition.storage_pressure) else round(transition.storage_pressure, 2),
            reconstructability_score=item.val_reconstructability,
            size_before_kb=transition.size_before_kb,
            size_after_kb=transition.size_after_kb,
            simulated_year=event.simulated_year,
        )

        def _persist() -> None:
            # Both writes are upserts by primary key, so a retry after a partial write is safe
            self.store.save_item(updated)
            self.store.append_log(entry)

        try:
            self._with_retries(f"transition of {item.item_id}", _persist)
        except PersistenceFailure as e:
            logger.error(f"Giving up on {item.item_id} {transition.prev_stage.value} -> "
                         f"{transition.next_stage.value}: {e}")
            return False

        self.event_bus.publish(ItemTransitioned(
            owner_id=self.owner_id,
            item_id=item.item_id,
            item_title=item.title,
            prev_stage=transition.prev_stage,
            new_stage=transition.next_stage,
            size_before_kb=transition.size_before_kb,
            size_after_kb=transition.size_after_kb,
            simulated_year=event.simulated_year,
            decay_event_id=event.event_id,
        ))
        self._emit_alert(self.alerts.for_transition(transition, event.simulated_year, event.event_id))
        return True

    def _emit_alert(self, alert: Optional[Alert]) -> None:
        if alert is None:
            return
        try:
            self.store.save_alert(alert)
        except PersistenceFailure as e:
            logger.error(f"Dropped {alert.alert_type.value} alert: {e}")
            return
        self.event_bus.publish(AlertRaised(owner_id=self.owner_id, alert=alert))

    def _with_retries(self, description: str, operation: Callable[[], R]) -> R:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except PersistenceFailure as e:
                if attempt == attempts:
                    raise
                logger.warning(f"{description} failed (attempt {attempt}/{attempts}): {e}")
                if self.retry_backoff_ms:
                    time.sleep(self.retry_backoff_ms / 1000.0)
        raise AssertionError("unreachable")

    # ---- State ------------------------------------------------------------

    def _refresh_state(self) -> None:
        """Pick up state written by another scheduler of the same owner."""
        stored = self.store.get_state(self.owner_id)
        if stored is not None:
            self.state = stored

    def _commit_state(self, new_state: SimulationState) -> None:
        """Persist first; the in-memory state only moves once the store accepted it."""
        try:
            self.store.save_state(new_state)
        except PersistenceFailure as e:
            logger.error(f"State write for {self.owner_id} failed at year {new_state.current_year}: {e}")
            raise StateWriteFailure(
                f"Could not persist simulation state of {self.owner_id} for year {new_state.current_year}"
            ) from e
        self.state = new_state

    # ---- Ticker -------------------------------------------------------------

    def _tick_loop(self) -> None:
        interval = self.state.tick_interval_seconds
        while not self._stop.wait(interval):
            try:
                with self._lock:
                    if self._stop.is_set():
                        break
                    self._refresh_state()
                    # paused or reset through another scheduler of the same owner
                    if not self.state.is_running:
                        break
                    self._run_cycle()
            except StateWriteFailure as e:
                logger.error(f"{e}; the cycle will be resumed on the next tick")
            except DecayError as e:
                logger.error(f"Decay tick for {self.owner_id} failed: {e}")
            except Exception:
                logger.exception(f"Unexpected error in decay ticker for {self.owner_id}")
            if not self.state.is_running:
                break
        logger.debug(f"Decay ticker for {self.owner_id} stopped")

    def _join_ticker(self) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None
