import logging
from pathlib import Path
from typing import Optional

from smartdecay.configuration import StoreConfig
from smartdecay.stores.archive_store import ArchiveStore
from smartdecay.stores.persistence.json import JSONFileBackend
from smartdecay.stores.persistence.memory import InMemoryBackend

logger = logging.getLogger(__name__)


def create_store(config: Optional[StoreConfig] = None, data_dir: Optional[str] = None) -> ArchiveStore:
    """Build the store for the configured backend; ``data_dir`` forces the JSON backend."""
    config = config or StoreConfig()
    if data_dir is not None or config.backend == "json":
        path = Path(data_dir or config.data_dir)
        logger.info(f"Using JSON store at {path}")
        return ArchiveStore(JSONFileBackend(str(path)))
    return ArchiveStore(InMemoryBackend())
