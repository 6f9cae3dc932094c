from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from .errors import ValidationError

type ReturnValues = Literal["NONE", "ALL_OLD", "UPDATED_OLD", "ALL_NEW", "UPDATED_NEW"]

_UPDATE_RETURN_VALUES = frozenset({"NONE", "ALL_OLD", "UPDATED_OLD", "ALL_NEW", "UPDATED_NEW"})
_DELETE_RETURN_VALUES = frozenset({"NONE", "ALL_OLD"})


@dataclass(frozen=True)
class GetOptions:
    consistent_read: bool = False


@dataclass(frozen=True)
class CreateOptions:
    expected: Mapping[str, Any] | None = None
    overwrite: bool = True


@dataclass(frozen=True)
class UpdateOptions:
    return_values: ReturnValues = "ALL_NEW"
    expected: Mapping[str, Any] | None = None
    actions: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.return_values not in _UPDATE_RETURN_VALUES:
            raise ValidationError(f"unsupported ReturnValues for update: {self.return_values!r}")


@dataclass(frozen=True)
class DestroyOptions:
    return_values: ReturnValues | None = None
    expected: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.return_values is not None and self.return_values not in _DELETE_RETURN_VALUES:
            raise ValidationError(f"unsupported ReturnValues for destroy: {self.return_values!r}")


@dataclass(frozen=True)
class Throughput:
    read_capacity: int
    write_capacity: int

    def __post_init__(self) -> None:
        for label, value in (("read_capacity", self.read_capacity), ("write_capacity", self.write_capacity)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationError(f"{label} must be a positive integer")

    def to_request(self) -> dict[str, int]:
        return {"ReadCapacityUnits": self.read_capacity, "WriteCapacityUnits": self.write_capacity}
