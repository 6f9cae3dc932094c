from __future__ import annotations

import copy
import uuid as _uuid
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import SchemaError

MISSING: Any = object()


class AttributeType(Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BINARY = "BINARY"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    STRING_SET = "STRING_SET"
    NUMBER_SET = "NUMBER_SET"
    BINARY_SET = "BINARY_SET"

    @property
    def wire_tag(self) -> str:
        return _WIRE_TAGS[self]

    @property
    def is_set(self) -> bool:
        return self in _SET_ELEMENT_TYPES

    @property
    def element_type(self) -> AttributeType:
        """Scalar type of a set's members (the type itself for scalars)."""
        return _SET_ELEMENT_TYPES.get(self, self)

    @property
    def is_key_type(self) -> bool:
        return self.wire_tag in {"S", "N", "B"}


_WIRE_TAGS: dict[AttributeType, str] = {
    AttributeType.STRING: "S",
    AttributeType.NUMBER: "N",
    AttributeType.BINARY: "B",
    AttributeType.BOOLEAN: "BOOL",
    AttributeType.DATE: "S",
    AttributeType.STRING_SET: "SS",
    AttributeType.NUMBER_SET: "NS",
    AttributeType.BINARY_SET: "BS",
}

_SET_ELEMENT_TYPES: dict[AttributeType, AttributeType] = {
    AttributeType.STRING_SET: AttributeType.STRING,
    AttributeType.NUMBER_SET: AttributeType.NUMBER,
    AttributeType.BINARY_SET: AttributeType.BINARY,
}


@dataclass(frozen=True)
class AttributeDefinition:
    name: str
    type: AttributeType
    hash_key: bool = False
    range_key: bool = False
    secondary_index: bool = False
    default: Any = MISSING

    @property
    def is_key(self) -> bool:
        return self.hash_key or self.range_key

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def resolve_default(self) -> Any:
        if self.default is MISSING:
            raise SchemaError(f"attribute has no default: {self.name}")
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)


def _generate_uuid() -> str:
    return str(_uuid.uuid4())


class Schema:
    """Declared attributes of one item type.

    Attributes are registered with :meth:`declare` (or one of the typed
    helpers) and the schema is frozen once a :class:`~dynoschema.table.Table`
    binds it.

    >>> schema = Schema().string("email", hash_key=True).number("age")
    >>> schema.hash_key_name
    'email'
    """

    def __init__(self) -> None:
        self._attributes: dict[str, AttributeDefinition] = {}
        self._hash_key: str | None = None
        self._range_key: str | None = None
        self._frozen = False

    def declare(
        self,
        name: str,
        type: AttributeType,
        *,
        hash_key: bool = False,
        range_key: bool = False,
        secondary_index: bool = False,
        default: Any = MISSING,
    ) -> Schema:
        if self._frozen:
            raise SchemaError(f"schema is frozen; cannot declare {name!r}")
        if not isinstance(name, str) or not name:
            raise SchemaError("attribute name must be a non-empty string")
        if not isinstance(type, AttributeType):
            raise SchemaError(f"unsupported attribute type for {name}: {type!r}")
        if name in self._attributes:
            raise SchemaError(f"attribute declared twice: {name}")
        if hash_key and range_key:
            raise SchemaError(f"attribute cannot be both hash and range key: {name}")
        if hash_key and self._hash_key is not None:
            raise SchemaError(f"hash key already declared ({self._hash_key}); cannot add {name}")
        if range_key and self._range_key is not None:
            raise SchemaError(f"range key already declared ({self._range_key}); cannot add {name}")
        if (hash_key or range_key) and not type.is_key_type:
            raise SchemaError(f"key attribute must be a string, number or binary: {name}")
        if secondary_index:
            if hash_key or range_key:
                raise SchemaError(f"key attribute cannot also be a secondary index: {name}")
            if not type.is_key_type:
                raise SchemaError(f"secondary index attribute must be a string, number or binary: {name}")

        self._attributes[name] = AttributeDefinition(
            name=name,
            type=type,
            hash_key=hash_key,
            range_key=range_key,
            secondary_index=secondary_index,
            default=default,
        )
        if hash_key:
            self._hash_key = name
        if range_key:
            self._range_key = name
        return self

    def string(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.STRING, **options)

    def number(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.NUMBER, **options)

    def binary(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.BINARY, **options)

    def boolean(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.BOOLEAN, **options)

    def date(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.DATE, **options)

    def string_set(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.STRING_SET, **options)

    def number_set(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.NUMBER_SET, **options)

    def binary_set(self, name: str, **options: Any) -> Schema:
        return self.declare(name, AttributeType.BINARY_SET, **options)

    def uuid(self, name: str, **options: Any) -> Schema:
        """Declare a string attribute defaulting to a fresh uuid4."""
        options.setdefault("default", _generate_uuid)
        return self.declare(name, AttributeType.STRING, **options)

    @property
    def attributes(self) -> Mapping[str, AttributeDefinition]:
        return MappingProxyType(self._attributes)

    @property
    def hash_key_name(self) -> str:
        if self._hash_key is None:
            raise SchemaError("schema does not declare a hash key")
        return self._hash_key

    @property
    def range_key_name(self) -> str | None:
        return self._range_key

    @property
    def hash_key(self) -> AttributeDefinition:
        return self._attributes[self.hash_key_name]

    @property
    def range_key(self) -> AttributeDefinition | None:
        if self._range_key is None:
            return None
        return self._attributes[self._range_key]

    @property
    def key_names(self) -> tuple[str, ...]:
        if self._range_key is None:
            return (self.hash_key_name,)
        return (self.hash_key_name, self._range_key)

    @property
    def secondary_indexes(self) -> tuple[AttributeDefinition, ...]:
        return tuple(attr for attr in self._attributes.values() if attr.secondary_index)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> AttributeDefinition | None:
        return self._attributes.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    def apply_defaults(self, item: Mapping[str, Any]) -> dict[str, Any]:
        out = dict(item)
        for name, attr in self._attributes.items():
            if attr.has_default and out.get(name) is None:
                out[name] = attr.resolve_default()
        return out

    def validate(self) -> None:
        if self._hash_key is None:
            raise SchemaError("schema must declare exactly one hash key (found 0)")

    def freeze(self) -> Schema:
        self.validate()
        self._frozen = True
        return self

    def __repr__(self) -> str:
        attrs = ", ".join(f"{a.name}:{a.type.value}" for a in self._attributes.values())
        return f"Schema({attrs})"
