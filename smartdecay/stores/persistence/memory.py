import copy
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Type

from smartdecay.stores.persistence.base import T, PersistenceBackend, collection_name, matches_filters, primary_key_of


class InMemoryBackend(PersistenceBackend):
    """Process-local backend. Records are copied in and out so callers never share instances."""

    def __init__(self):
        self._collections: Dict[str, Dict[Any, Any]] = defaultdict(dict)
        self._lock = threading.RLock()

    def _rows(self, model_class: Type[T]) -> Dict[Any, Any]:
        return self._collections[collection_name(model_class)]

    def find_one(self, model_class: Type[T], **filters) -> Optional[T]:
        with self._lock:
            for model in self._rows(model_class).values():
                if matches_filters(model, filters):
                    return copy.deepcopy(model)
        return None

    def find_many(self, model_class: Type[T], **filters) -> List[T]:
        with self._lock:
            return [copy.deepcopy(m) for m in self._rows(model_class).values() if matches_filters(m, filters)]

    def save(self, model: T) -> T:
        with self._lock:
            self._rows(model.__class__)[primary_key_of(model)] = copy.deepcopy(model)
        return model

    def delete_one(self, model_class: Type[T], **filters) -> bool:
        with self._lock:
            rows = self._rows(model_class)
            for key, model in rows.items():
                if matches_filters(model, filters):
                    del rows[key]
                    return True
        return False

    def delete_many(self, model_class: Type[T], **filters) -> int:
        with self._lock:
            rows = self._rows(model_class)
            doomed = [key for key, model in rows.items() if matches_filters(model, filters)]
            for key in doomed:
                del rows[key]
            return len(doomed)
