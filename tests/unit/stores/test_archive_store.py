"""
Tests for ArchiveStore over the in-memory backend.
"""
from datetime import timedelta
from unittest.mock import Mock

import pytest

from smartdecay.configuration import StoreConfig
from smartdecay.decay.errors import PersistenceFailure
from smartdecay.models.alert import Alert, AlertType
from smartdecay.models.archive_item import Stage
from smartdecay.models.baseline import BaselineResult, BaselineStrategy
from smartdecay.models.history import DecayEvent, DegradationLogEntry
from smartdecay.models.simulation import SimulationState, ValuationWeights
from smartdecay.stores.archive_store import ArchiveStore
from smartdecay.stores.factory import create_store
from smartdecay.stores.persistence.json import JSONFileBackend
from smartdecay.stores.persistence.memory import InMemoryBackend
from smartdecay.utils import now


class TestItems:

    def test_add_and_get(self, store, make_item, owner_id):
        item = store.add_item(make_item(item_id="a"))

        found = store.get_item(owner_id, "a")
        assert found == item
        assert found is not item

    def test_items_are_owner_scoped(self, store, make_item, owner_id):
        store.add_item(make_item(item_id="a"))
        store.add_item(make_item(item_id="b", owner_id="someone-else"))

        assert [i.item_id for i in store.list_items(owner_id)] == ["a"]
        assert store.get_item(owner_id, "b") is None

    def test_list_orders_by_ingestion_and_hides_deleted(self, store, make_item, owner_id):
        t = now()
        store.add_item(make_item(item_id="late", ingested_at=t))
        store.add_item(make_item(item_id="early", ingested_at=t - timedelta(hours=1)))
        store.add_item(make_item(item_id="gone", stage=Stage.DELETED, ingested_at=t - timedelta(hours=2)))

        assert [i.item_id for i in store.list_items(owner_id)] == ["early", "late"]
        assert [i.item_id for i in store.list_items(owner_id, include_deleted=True)] == ["gone", "early", "late"]

    def test_save_item_upserts_and_touches_updated_at(self, store, make_item, owner_id):
        item = store.add_item(make_item(item_id="a"))
        before = item.updated_at

        item.stage = Stage.COMPRESSED
        store.save_item(item)

        found = store.get_item(owner_id, "a")
        assert found.stage is Stage.COMPRESSED
        assert found.updated_at >= before
        assert len(store.list_items(owner_id)) == 1


class TestStateAndWeights:

    def test_state_round_trip(self, store, owner_id):
        assert store.get_state(owner_id) is None
        store.save_state(SimulationState(owner_id=owner_id, current_year=4))

        assert store.get_state(owner_id).current_year == 4

    def test_one_state_per_owner(self, store, owner_id):
        store.save_state(SimulationState(owner_id=owner_id, current_year=2))
        store.save_state(SimulationState(owner_id=owner_id, current_year=4))

        assert len(store.backend.find_many(SimulationState, owner_id=owner_id)) == 1

    def test_weights_round_trip(self, store, owner_id):
        store.save_weights(ValuationWeights(owner_id=owner_id, w_relevance=1, w_uniqueness=0,
                                            w_reconstructability=0))

        assert store.get_weights(owner_id).as_tuple() == (1, 0, 0)
        assert store.get_weights("nobody") is None


class TestHistory:

    def test_find_event_by_year(self, store, owner_id):
        store.save_event(DecayEvent(owner_id=owner_id, event_no=2, simulated_year=4))
        store.save_event(DecayEvent(owner_id=owner_id, event_no=1, simulated_year=2))

        assert store.find_event(owner_id, 4).event_no == 2
        assert store.find_event(owner_id, 6) is None
        assert [e.simulated_year for e in store.list_events(owner_id)] == [2, 4]

    def test_logs_filter_by_item_and_event(self, store, owner_id):
        store.append_log(DegradationLogEntry(owner_id=owner_id, decay_event_id="e2", item_id="x", simulated_year=4))
        store.append_log(DegradationLogEntry(owner_id=owner_id, decay_event_id="e1", item_id="x", simulated_year=2))
        store.append_log(DegradationLogEntry(owner_id=owner_id, decay_event_id="e1", item_id="y", simulated_year=2))

        assert [entry.simulated_year for entry in store.list_logs(owner_id, item_id="x")] == [2, 4]
        assert {entry.item_id for entry in store.list_logs(owner_id, decay_event_id="e1")} == {"x", "y"}
        assert len(store.list_logs(owner_id)) == 3

    def test_bulk_deletes_are_owner_scoped(self, store, owner_id):
        store.save_event(DecayEvent(owner_id=owner_id, simulated_year=2))
        store.save_event(DecayEvent(owner_id="other", simulated_year=2))
        store.append_log(DegradationLogEntry(owner_id=owner_id))

        assert store.delete_events(owner_id) == 1
        assert store.delete_logs(owner_id) == 1
        assert store.list_events("other") != []


class TestAlerts:

    def _alert(self, owner_id, minutes_ago=0, **kwargs):
        return Alert(owner_id=owner_id, alert_type=AlertType.ITEM_DELETED,
                     created_at=now() - timedelta(minutes=minutes_ago), **kwargs)

    def test_newest_first_with_limit(self, store, owner_id):
        for n in range(5):
            store.save_alert(self._alert(owner_id, minutes_ago=n, reason=str(n)))

        alerts = store.list_alerts(owner_id, limit=3)
        assert [a.reason for a in alerts] == ["0", "1", "2"]

    def test_mark_read(self, store, owner_id):
        first = store.save_alert(self._alert(owner_id))
        store.save_alert(self._alert(owner_id))

        assert store.unread_alert_count(owner_id) == 2
        assert store.mark_alert_read(owner_id, first.alert_id) is True
        assert store.mark_alert_read(owner_id, "missing") is False
        assert store.unread_alert_count(owner_id) == 1
        assert len(store.list_alerts(owner_id, unread_only=True)) == 1

    def test_mark_all_read_returns_count(self, store, owner_id):
        for _ in range(3):
            store.save_alert(self._alert(owner_id))
        store.save_alert(self._alert("other"))

        assert store.mark_all_alerts_read(owner_id) == 3
        assert store.mark_all_alerts_read(owner_id) == 0
        assert store.unread_alert_count("other") == 1


class TestBaselines:

    def test_sorted_by_year_then_strategy(self, store, owner_id):
        store.save_baseline_results([
            BaselineResult(owner_id=owner_id, simulation_year=10, strategy=BaselineStrategy.RANDOM),
            BaselineResult(owner_id=owner_id, simulation_year=0, strategy=BaselineStrategy.TIME_BASED),
            BaselineResult(owner_id=owner_id, simulation_year=0, strategy=BaselineStrategy.RANDOM),
        ])

        listed = [(r.simulation_year, r.strategy.value) for r in store.list_baselines(owner_id)]
        assert listed == [(0, "random"), (0, "time_based"), (10, "random")]
        assert store.delete_baselines(owner_id) == 3


class TestFailures:

    def test_backend_errors_become_persistence_failures(self, make_item):
        backend = Mock()
        backend.save.side_effect = OSError("disk full")
        store = ArchiveStore(backend)

        with pytest.raises(PersistenceFailure) as exc_info:
            store.add_item(make_item())

        assert exc_info.value.operation == "add_item"
        assert isinstance(exc_info.value.cause, OSError)


class TestFactory:

    def test_defaults_to_memory(self):
        assert isinstance(create_store().backend, InMemoryBackend)

    def test_data_dir_selects_json(self, tmp_path):
        store = create_store(data_dir=str(tmp_path / "records"))
        assert isinstance(store.backend, JSONFileBackend)
        assert (tmp_path / "records").is_dir()

    def test_json_backend_from_config(self, tmp_path):
        store = create_store(StoreConfig(backend="json", data_dir=str(tmp_path)))
        assert isinstance(store.backend, JSONFileBackend)
