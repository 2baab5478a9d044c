import json
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Type

from smartdecay.stores.persistence.base import T, PersistenceBackend, collection_name, matches_filters, primary_key_of


class JSONFileBackend(PersistenceBackend):
    """One ``<collection>.json`` array per record type under ``data_dir``.

    Every write rewrites the whole collection through a temp file and an
    atomic rename, so a crash mid-cycle leaves the previous file intact.
    Good for runs of a few thousand items, not for large archives.
    """

    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, model_class: type) -> Path:
        return self.data_dir / f"{collection_name(model_class)}.json"

    def _read(self, model_class: Type[T]) -> Dict[object, T]:
        """Collection keyed by primary key, in file order."""
        path = self._path(model_class)
        try:
            with open(path, "r", encoding="utf-8") as f:
                rows = json.load(f)
        except FileNotFoundError:
            return {}
        records = (model_class.from_dict(row) for row in rows)
        return {primary_key_of(record): record for record in records}

    def _write(self, model_class: type, records: Dict[object, T]) -> None:
        path = self._path(model_class)
        staging = path.with_suffix(".json.tmp")
        with open(staging, "w", encoding="utf-8") as f:
            json.dump([record.to_json_dict() for record in records.values()], f, indent=2)
        os.replace(staging, path)

    def find_one(self, model_class: Type[T], **filters) -> Optional[T]:
        with self._lock:
            records = self._read(model_class)
        return next((r for r in records.values() if matches_filters(r, filters)), None)

    def find_many(self, model_class: Type[T], **filters) -> List[T]:
        with self._lock:
            records = self._read(model_class)
        return [r for r in records.values() if matches_filters(r, filters)]

    def save(self, model: T) -> T:
        """Upsert by primary key; a replaced record keeps its position in the file."""
        with self._lock:
            records = self._read(type(model))
            records[primary_key_of(model)] = model
            self._write(type(model), records)
        return model

    def delete_one(self, model_class: Type[T], **filters) -> bool:
        with self._lock:
            records = self._read(model_class)
            key = next((k for k, r in records.items() if matches_filters(r, filters)), None)
            if key is None:
                return False
            del records[key]
            self._write(model_class, records)
            return True

    def delete_many(self, model_class: Type[T], **filters) -> int:
        with self._lock:
            records = self._read(model_class)
            doomed = [k for k, r in records.items() if matches_filters(r, filters)]
            for key in doomed:
                del records[key]
            if doomed:
                self._write(model_class, records)
            return len(doomed)

    def stats(self) -> Dict[str, int]:
        """Record count per collection file."""
        with self._lock:
            counts = {}
            for path in sorted(self.data_dir.glob("*.json")):
                with open(path, "r", encoding="utf-8") as f:
                    counts[path.stem] = len(json.load(f))
            return counts
