from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any


class Item(Mapping[str, Any]):
    """Read-only view over one deserialized item."""

    __slots__ = ("_attributes",)

    def __init__(self, attributes: Mapping[str, Any]) -> None:
        self._attributes: Mapping[str, Any] = MappingProxyType(dict(attributes))

    def get(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self._attributes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    def __repr__(self) -> str:
        return f"Item({dict(self._attributes)!r})"
