"""
Test configuration and fixtures for the smartdecay test suite.
Provides isolated configuration, in-memory stores and item factories.
"""
import random

import pytest

from smartdecay.configuration import DecaySettings, SchedulerConfig
from smartdecay.decay.scheduler import DecayScheduler
from smartdecay.models.archive_item import ArchiveItem, Stage
from smartdecay.observability.instrumentation import clear_obs_context
from smartdecay.stores.archive_store import ArchiveStore
from smartdecay.stores.persistence.memory import InMemoryBackend
from smartdecay.utils import clear_config_cache

OWNER = "owner-a"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point configuration at an empty location so every test runs on defaults."""
    monkeypatch.setenv("SMARTDECAY_CONFIG", str(tmp_path / "missing-config.json"))
    monkeypatch.delenv("SMARTDECAY_NAMESPACE", raising=False)
    monkeypatch.delenv("SMARTDECAY_OBSERVABILITY", raising=False)
    clear_config_cache()
    clear_obs_context()
    yield
    clear_config_cache()
    clear_obs_context()


@pytest.fixture
def owner_id():
    return OWNER


@pytest.fixture
def store():
    return ArchiveStore(InMemoryBackend())


@pytest.fixture
def settings():
    """Default settings without retry backoff, so failure tests stay fast."""
    return DecaySettings(scheduler=SchedulerConfig(max_retries=2, retry_backoff_ms=0))


@pytest.fixture
def seeded_rng():
    return random.Random(42)


@pytest.fixture
def make_item():
    """Build an item whose three valuation dimensions (and so its semantic score) equal ``score``."""

    def _make(score=50.0, size_kb=100, item_id=None, stage=Stage.FULL, owner_id=OWNER, **kwargs):
        fields = dict(
            owner_id=owner_id,
            title=f"Item {item_id or score}",
            content="Some archived text about decay",
            stage=stage,
            size_kb=size_kb,
            val_relevance=score,
            val_uniqueness=score,
            val_reconstructability=score,
            semantic_score=score,
        )
        if item_id is not None:
            fields["item_id"] = item_id
        fields.update(kwargs)
        return ArchiveItem(**fields)

    return _make


@pytest.fixture
def scheduler(store, settings, owner_id):
    return DecayScheduler.for_owner(store, owner_id, settings)
