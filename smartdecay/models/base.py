import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Type, TypeVar

from smartdecay.models.compat.dataclass_model import DataclassModelMixin

E = TypeVar("E", bound=Enum)

DEFAULT_OWNER = "default_owner"


def new_id() -> str:
    return str(uuid.uuid4())


def coerce_enum(enum_cls: Type[E], value: Any) -> E:
    """Accept enum members, their values or their names (e.g. from JSON files)."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        if isinstance(value, str) and value.upper() in enum_cls.__members__:
            return enum_cls[value.upper()]
        raise


@dataclass
class DecayBaseModel(DataclassModelMixin):
    """
    Base model for all persisted simulation records.

    Every record is scoped to an owner; different owners never share
    items, state or history.
    """
    __collection__: ClassVar[str] = "records"
    __primary_key__: ClassVar[str] = "id"

    owner_id: str = field(default=DEFAULT_OWNER, metadata={"description": "Owner (tenant) of the record"})

    @property
    def primary_key(self) -> str:
        return getattr(self, self.__primary_key__)
