"""
Concurrency tests: one decay cycle in flight per owner, owners independent.
"""
import threading
import time

import pytest

from smartdecay.decay.errors import SchedulerConflict
from smartdecay.decay.scheduler import DecayScheduler, owner_lock
from smartdecay.models.archive_item import Stage
from smartdecay.models.simulation import SimulationState


def _state(store, owner_id, **fields):
    state = SimulationState(owner_id=owner_id, **fields)
    store.save_state(state)
    return state


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestOwnerLock:

    def test_same_owner_same_lock(self):
        assert owner_lock("o-1") is owner_lock("o-1")
        assert owner_lock("o-1") is not owner_lock("o-2")

    def test_step_is_rejected_while_another_cycle_holds_the_lock(self, store, owner_id):
        scheduler = DecayScheduler(store, _state(store, owner_id))
        held = threading.Event()
        release = threading.Event()

        def holder():
            with owner_lock(owner_id):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert held.wait(5)
            with pytest.raises(SchedulerConflict):
                scheduler.step()
        finally:
            release.set()
            thread.join()

        assert scheduler.step().simulated_year == 2


class TestSerializedCycles:

    def test_concurrent_cycles_apply_decay_once_per_year(self, store, owner_id, make_item):
        _state(store, owner_id, start_capacity_kb=1000, current_capacity_kb=1000, decay_percent=10)
        for n in range(4):
            store.add_item(make_item(score=20 * n, size_kb=300))
        schedulers = [DecayScheduler(store, store.get_state(owner_id), retry_backoff_ms=0) for _ in range(4)]
        start = threading.Barrier(len(schedulers))
        errors = []

        def run(s):
            start.wait()
            try:
                s.process_decay_event()
            except Exception as e:  # surfaced through the errors list
                errors.append(e)

        threads = [threading.Thread(target=run, args=(s,)) for s in schedulers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        events = store.list_events(owner_id)
        assert [e.simulated_year for e in events] == [2, 4, 6, 8]
        capacities = [e.capacity_after_kb for e in events]
        assert capacities == [900, 810, 729, 656]
        assert store.get_state(owner_id).current_capacity_kb == 656
        for earlier, later in zip(events, events[1:]):
            assert later.capacity_before_kb == earlier.capacity_after_kb

    def test_owners_are_independent(self, store, make_item):
        a = DecayScheduler(store, _state(store, "owner-x", start_capacity_kb=100, current_capacity_kb=100))
        b = DecayScheduler(store, _state(store, "owner-y", start_capacity_kb=100, current_capacity_kb=100,
                                         decay_percent=50))
        store.add_item(make_item(owner_id="owner-x", size_kb=100))

        a.step()
        a.step()
        b.step()

        assert store.get_state("owner-x").current_year == 4
        assert store.get_state("owner-y").current_year == 2
        assert store.get_state("owner-y").current_capacity_kb == 50
        assert len(store.list_events("owner-x")) == 2
        assert store.list_logs("owner-y") == []

    def test_reset_waits_for_the_cycle_in_flight(self, store, owner_id, make_item):
        _state(store, owner_id, start_capacity_kb=1000, current_capacity_kb=1000, decay_percent=10)
        item = store.add_item(make_item(score=10, size_kb=1000))
        cycling = DecayScheduler(store, store.get_state(owner_id), retry_backoff_ms=0)
        resetting = DecayScheduler(store, store.get_state(owner_id), retry_backoff_ms=0)
        in_cycle = threading.Event()
        release = threading.Event()
        reset_done = threading.Event()

        def cycle():
            with owner_lock(owner_id):
                in_cycle.set()
                release.wait(5)
                cycling.process_decay_event()

        def reset():
            resetting.reset()
            reset_done.set()

        cycle_thread = threading.Thread(target=cycle)
        cycle_thread.start()
        assert in_cycle.wait(5)
        reset_thread = threading.Thread(target=reset)
        reset_thread.start()

        assert not reset_done.wait(0.2)
        release.set()
        cycle_thread.join(5)
        reset_thread.join(5)

        assert reset_done.is_set()
        state = store.get_state(owner_id)
        assert (state.current_year, state.current_capacity_kb, state.is_running) == (0, 1000, False)
        assert store.list_events(owner_id) == []
        restored = store.get_item(owner_id, item.item_id)
        assert (restored.stage, restored.current_size_kb) == (Stage.FULL, 1000)


class TestSharedOwnerControl:
    """Two schedulers for one owner drive a single decay process."""

    @pytest.fixture
    def pair(self, store, owner_id):
        _state(store, owner_id, time_scale_ms=20)
        first = DecayScheduler(store, store.get_state(owner_id), retry_backoff_ms=0)
        second = DecayScheduler(store, store.get_state(owner_id), retry_backoff_ms=0)
        yield first, second
        first.pause()
        second.pause()

    def test_second_start_is_refused(self, pair, store, owner_id):
        first, second = pair

        assert first.start()
        assert not second.start()
        assert not second.is_ticking

        first.pause()
        assert second.start()
        assert store.get_state(owner_id).is_running

    def test_reset_through_another_scheduler_stops_the_ticker(self, pair, store, owner_id):
        first, second = pair
        first.start()
        assert _wait_for(lambda: store.get_state(owner_id).current_year >= 2)

        second.reset()

        assert _wait_for(lambda: not first.is_ticking)
        time.sleep(0.1)
        state = store.get_state(owner_id)
        assert (state.current_year, state.is_running) == (0, False)
        assert store.list_events(owner_id) == []

    def test_pause_through_another_scheduler_stops_the_ticker(self, pair, store, owner_id):
        first, second = pair
        first.start()
        assert _wait_for(lambda: store.get_state(owner_id).current_year >= 2)

        second.pause()

        assert _wait_for(lambda: not first.is_ticking)
        year = store.get_state(owner_id).current_year
        time.sleep(0.1)
        assert store.get_state(owner_id).current_year == year
        assert not store.get_state(owner_id).is_running
