"""
Record (de)serialization for the persisted simulation dataclasses.

Records go to disk as plain JSON: enum fields as their values, timestamps as
UTC ISO strings. Reading back is driven by the dataclass annotations, so a
``title`` that happens to look like a date stays a string.
"""
import dataclasses
import json
import typing
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, FrozenSet, Type, TypeVar

R = TypeVar("R", bound="DataclassModelMixin")


def _is_datetime_annotation(annotation: Any) -> bool:
    if annotation is datetime:
        return True
    # Optional[datetime] and friends
    return datetime in typing.get_args(annotation)


@lru_cache(maxsize=None)
def _record_fields(cls: type) -> FrozenSet[str]:
    return frozenset(f.name for f in dataclasses.fields(cls))


@lru_cache(maxsize=None)
def _timestamp_fields(cls: type) -> FrozenSet[str]:
    hints = typing.get_type_hints(cls)
    return frozenset(name for name in _record_fields(cls) if _is_datetime_annotation(hints.get(name)))


def parse_timestamp(value: Any) -> Any:
    """ISO string to an aware UTC datetime; anything else is returned untouched."""
    if not isinstance(value, str):
        return value
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_encode(item) for item in value]
    return value


class DataclassModelMixin:
    """Dict and JSON views shared by every persisted record."""

    def to_dict(self) -> Dict[str, Any]:
        """Field values as a dict; nested containers are copied, enums and datetimes kept."""
        return dataclasses.asdict(self)

    def to_json_dict(self) -> Dict[str, Any]:
        """JSON-safe dict: enum values and ISO timestamps."""
        return _encode(self.to_dict())

    def to_json(self) -> str:
        return json.dumps(self.to_json_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls: Type[R], data: Dict[str, Any]) -> R:
        """Build a record from stored data, ignoring keys the record no longer has."""
        known = _record_fields(cls)
        timestamps = _timestamp_fields(cls)
        values = {
            key: parse_timestamp(value) if key in timestamps else value
            for key, value in data.items()
            if key in known
        }
        return cls(**values)
