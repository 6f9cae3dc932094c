from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from .errors import DeserializationError, InvalidKeyError, SerializationError
from .schema import AttributeDefinition, AttributeType, Schema


class UpdateAction(Enum):
    PUT = "PUT"
    ADD = "ADD"
    DELETE = "DELETE"

    @classmethod
    def coerce(cls, value: UpdateAction | str) -> UpdateAction:
        if isinstance(value, UpdateAction):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as err:
            raise SerializationError(f"unsupported update action: {value!r}") from err


def _normalize_number(number: Decimal) -> int | Decimal:
    if number.is_finite() and number.as_tuple().exponent >= 0:  # type: ignore[operator]
        return int(number)
    return number


def _normalize_native(value: Any) -> Any:
    if isinstance(value, Decimal):
        return _normalize_number(value)
    if isinstance(value, Binary):
        return bytes(value.value)
    if isinstance(value, set):
        return {_normalize_native(v) for v in value}
    if isinstance(value, list):
        return [_normalize_native(v) for v in value]
    if isinstance(value, dict):
        return {k: _normalize_native(v) for k, v in value.items()}
    return value


def _prepare_native(value: Any) -> Any:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(f"number must be finite: {value!r}")
        return Decimal(repr(value))
    if isinstance(value, (set, frozenset)):
        return {_prepare_native(v) for v in value}
    if isinstance(value, (list, tuple)):
        return [_prepare_native(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _prepare_native(v) for k, v in value.items()}
    return value


def _is_absent(attr: AttributeDefinition | None, value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (set, frozenset)):
        return len(value) == 0
    if attr is not None and attr.type.is_set and isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


class Serializer:
    """Translate native attribute values to DynamoDB's tagged wire format and back.

    Every method is a pure function of its arguments; a single instance can be
    shared by any number of tables.
    """

    def __init__(self) -> None:
        self._type_serializer = TypeSerializer()
        self._type_deserializer = TypeDeserializer()

    # -- scalar codecs ---------------------------------------------------

    def _check_scalar(self, type_: AttributeType, value: Any, attribute: str) -> Any:
        """Validate a declared scalar and return the native value TypeSerializer expects."""
        if type_ is AttributeType.STRING:
            if not isinstance(value, str):
                raise SerializationError(
                    f"expected a string, got {type(value).__name__}", attribute=attribute
                )
            return value

        if type_ is AttributeType.NUMBER:
            if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
                raise SerializationError(
                    f"expected a number, got {type(value).__name__}", attribute=attribute
                )
            if isinstance(value, float):
                if not math.isfinite(value):
                    raise SerializationError(f"number must be finite: {value!r}", attribute=attribute)
                number = Decimal(repr(value))
            else:
                number = Decimal(value)
            if not number.is_finite():
                raise SerializationError(f"number must be finite: {value!r}", attribute=attribute)
            return number

        if type_ is AttributeType.BINARY:
            if isinstance(value, Binary):
                return bytes(value.value)
            if not isinstance(value, (bytes, bytearray)):
                raise SerializationError(f"expected bytes, got {type(value).__name__}", attribute=attribute)
            return bytes(value)

        if type_ is AttributeType.BOOLEAN:
            if not isinstance(value, bool):
                raise SerializationError(f"expected a bool, got {type(value).__name__}", attribute=attribute)
            return value

        if type_ is AttributeType.DATE:
            if not isinstance(value, datetime):
                raise SerializationError(
                    f"expected a datetime, got {type(value).__name__}", attribute=attribute
                )
            return value.isoformat()

        raise SerializationError(f"not a scalar type: {type_.value}", attribute=attribute)

    def _decode_scalar(self, type_: AttributeType, raw: Any, attribute: str) -> Any:
        if type_ in {AttributeType.STRING, AttributeType.DATE}:
            if not isinstance(raw, str):
                raise DeserializationError("S value must be a string", attribute=attribute)
            if type_ is AttributeType.STRING:
                return raw
            try:
                return datetime.fromisoformat(raw)
            except ValueError as err:
                raise DeserializationError(f"invalid date: {raw!r}", attribute=attribute) from err

        if type_ is AttributeType.NUMBER:
            if not isinstance(raw, str):
                raise DeserializationError("N value must be a string", attribute=attribute)
            try:
                return _normalize_number(Decimal(raw))
            except InvalidOperation as err:
                raise DeserializationError(f"invalid number: {raw!r}", attribute=attribute) from err

        if type_ is AttributeType.BINARY:
            if isinstance(raw, Binary):
                return bytes(raw.value)
            if not isinstance(raw, (bytes, bytearray)):
                raise DeserializationError("B value must be bytes", attribute=attribute)
            return bytes(raw)

        if type_ is AttributeType.BOOLEAN:
            if not isinstance(raw, bool):
                raise DeserializationError("BOOL value must be a boolean", attribute=attribute)
            return raw

        raise DeserializationError(f"not a scalar type: {type_.value}", attribute=attribute)

    # -- attribute codecs ------------------------------------------------

    def _to_wire(self, value: Any, attribute: str) -> dict[str, Any]:
        try:
            return self._type_serializer.serialize(value)
        except (TypeError, ValueError, ArithmeticError) as err:
            raise SerializationError(str(err), attribute=attribute) from err

    def serialize_attribute(self, attr: AttributeDefinition, value: Any) -> dict[str, Any]:
        """Encode one declared attribute value into a single-tag wire map."""
        if not attr.type.is_set:
            return self._to_wire(self._check_scalar(attr.type, value, attr.name), attr.name)

        if isinstance(value, (str, bytes, bytearray, Mapping)) or not isinstance(value, Iterable):
            raise SerializationError(f"expected a collection for {attr.type.value}", attribute=attr.name)

        members = {self._check_scalar(attr.type.element_type, v, attr.name) for v in value}
        if not members:
            raise SerializationError("sets cannot be empty", attribute=attr.name)
        ((tag, wire),) = self._to_wire(members, attr.name).items()
        return {tag: sorted(wire)}

    def serialize_element(self, attr: AttributeDefinition, value: Any) -> dict[str, Any]:
        """Encode a single member of a set attribute (or a scalar value)."""
        element_type = attr.type.element_type
        return self._to_wire(self._check_scalar(element_type, value, attr.name), attr.name)

    def deserialize_attribute(self, attr: AttributeDefinition, av: Any) -> Any:
        if not isinstance(av, Mapping) or len(av) != 1:
            raise DeserializationError("attribute value must be a single-key map", attribute=attr.name)
        (tag, raw), *_ = av.items()
        if tag == "NULL":
            if attr.is_key:
                raise DeserializationError("key attribute cannot be NULL", attribute=attr.name)
            return None
        if tag != attr.type.wire_tag:
            raise DeserializationError(
                f"expected {attr.type.wire_tag} for {attr.type.value}, got {tag}", attribute=attr.name
            )

        if not attr.type.is_set:
            return self._decode_scalar(attr.type, raw, attr.name)

        if not isinstance(raw, (list, set, tuple)):
            raise DeserializationError(f"{tag} value must be a list", attribute=attr.name)
        return {self._decode_scalar(attr.type.element_type, v, attr.name) for v in raw}

    def serialize_value(self, schema: Schema, name: str, value: Any) -> dict[str, Any]:
        attr = schema.get(name)
        if attr is not None:
            return self.serialize_attribute(attr, value)
        return self._to_wire(_prepare_native(value), name)

    def deserialize_value(self, schema: Schema, name: str, av: Any) -> Any:
        attr = schema.get(name)
        if attr is not None:
            return self.deserialize_attribute(attr, av)
        try:
            return _normalize_native(self._type_deserializer.deserialize(av))
        except (TypeError, ValueError) as err:
            raise DeserializationError(str(err), attribute=name) from err

    # -- items -----------------------------------------------------------

    def serialize_item(
        self,
        schema: Schema,
        item: Mapping[str, Any],
        *,
        expected: bool = False,
    ) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name, value in item.items():
            attr = schema.get(name)
            if _is_absent(attr, value):
                if expected:
                    out[name] = {"Exists": False}
                continue

            av = self.serialize_value(schema, name, value)
            out[name] = {"Value": av} if expected else av
        return out

    def deserialize_item(self, schema: Schema, wire_item: Mapping[str, Any]) -> dict[str, Any]:
        for key_name in schema.key_names:
            if key_name not in wire_item:
                raise DeserializationError("key attribute missing from item", attribute=key_name)

        return {name: self.deserialize_value(schema, name, av) for name, av in wire_item.items()}

    def serialize_item_for_update(
        self,
        schema: Schema,
        action: UpdateAction | str,
        item: Mapping[str, Any],
        *,
        actions: Mapping[str, UpdateAction | str] | None = None,
    ) -> dict[str, Any]:
        default_action = UpdateAction.coerce(action)
        overrides = {name: UpdateAction.coerce(a) for name, a in (actions or {}).items()}

        out: dict[str, Any] = {}
        for name, value in item.items():
            attr = schema.get(name)
            if attr is not None and attr.is_key:
                continue

            act = overrides.get(name, default_action)
            if _is_absent(attr, value):
                if act is UpdateAction.ADD:
                    raise SerializationError("ADD requires a value", attribute=name)
                out[name] = {"Action": UpdateAction.DELETE.value}
                continue

            if attr is not None:
                if act is UpdateAction.ADD and not (attr.type.is_set or attr.type is AttributeType.NUMBER):
                    raise SerializationError("ADD is only valid for numbers and sets", attribute=name)
                if act is UpdateAction.DELETE and not attr.type.is_set:
                    raise SerializationError("DELETE with a value is only valid for sets", attribute=name)

            out[name] = {"Action": act.value, "Value": self.serialize_value(schema, name, value)}
        return out

    def build_key(self, hash_value: Any, range_value: Any, schema: Schema) -> dict[str, Any]:
        if hash_value is None:
            raise InvalidKeyError(f"hash key value is required: {schema.hash_key_name}")

        range_attr = schema.range_key
        if range_attr is None and range_value is not None:
            raise InvalidKeyError("schema does not declare a range key")
        if range_attr is not None and range_value is None:
            raise InvalidKeyError(f"range key value is required: {range_attr.name}")

        key = {schema.hash_key_name: self.serialize_attribute(schema.hash_key, hash_value)}
        if range_attr is not None:
            key[range_attr.name] = self.serialize_attribute(range_attr, range_value)
        return key

    def key_of(self, schema: Schema, item: Mapping[str, Any]) -> dict[str, Any]:
        """Build the wire key from the key attributes of a native item."""
        range_name = schema.range_key_name
        return self.build_key(
            item.get(schema.hash_key_name),
            item.get(range_name) if range_name is not None else None,
            schema,
        )


default_serializer = Serializer()
