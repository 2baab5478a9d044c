"""
Storage contract for the simulation records.

A record class names its collection (``__collection__``) and primary key
(``__primary_key__``); backends file records under those. Filters are exact
field matches, ANDed together:

    backend.save(ArchiveItem(owner_id="alice", title="Report", size_kb=120))
    backend.find_many(ArchiveItem, owner_id="alice", stage=Stage.FULL)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar

T = TypeVar('T', bound='DecayBaseModel')


def collection_name(model_class: Type[T]) -> str:
    return getattr(model_class, '__collection__', model_class.__name__.lower())


def primary_key_of(model: T) -> Any:
    return getattr(model, getattr(model, '__primary_key__', 'id'))


_ABSENT = object()


def matches_filters(model: T, filters: Dict[str, Any]) -> bool:
    return all(getattr(model, key, _ABSENT) == value for key, value in filters.items())


class PersistenceBackend(ABC):
    """Where ArchiveStore keeps records. Implementations must be safe to share between threads."""

    @abstractmethod
    def find_one(self, model_class: Type[T], **filters) -> Optional[T]:
        """First match, or None."""

    @abstractmethod
    def find_many(self, model_class: Type[T], **filters) -> List[T]:
        """Every match; no filters means the whole collection."""

    @abstractmethod
    def save(self, model: T) -> T:
        """Insert, or replace the record with the same primary key."""

    @abstractmethod
    def delete_one(self, model_class: Type[T], **filters) -> bool:
        """Remove the first match. False when nothing matched."""

    @abstractmethod
    def delete_many(self, model_class: Type[T], **filters) -> int:
        """Remove every match and return the count."""
