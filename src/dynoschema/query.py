from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Self

from botocore.exceptions import ClientError

from .aws_errors import map_client_error as _map_client_error
from .errors import ValidationError
from .item import Item
from .schema import Schema
from .serializer import Serializer

_logger: logging.Logger = logging.getLogger(__name__)

_KEY_OPERATORS = frozenset({"EQ", "LE", "LT", "GE", "GT", "BEGINS_WITH", "BETWEEN"})
_SELECT_VALUES = frozenset({"ALL_ATTRIBUTES", "ALL_PROJECTED_ATTRIBUTES", "SPECIFIC_ATTRIBUTES", "COUNT"})


@dataclass(frozen=True)
class Page:
    items: list[Item]
    last_evaluated_key: dict[str, Any] | None
    count: int
    scanned_count: int


class Condition[B: "_Request"]:
    """One pending comparison on an attribute, completed by an operator method."""

    def __init__(self, builder: B, name: str, section: str) -> None:
        self._builder = builder
        self._name = name
        self._section = section

    def _add(self, operator: str, *values: Any, element: bool = False) -> B:
        self._builder._add_condition(self._section, self._name, operator, values, element=element)
        return self._builder

    def equals(self, value: Any) -> B:
        return self._add("EQ", value)

    eq = equals

    def ne(self, value: Any) -> B:
        return self._add("NE", value)

    def lt(self, value: Any) -> B:
        return self._add("LT", value)

    def lte(self, value: Any) -> B:
        return self._add("LE", value)

    def gt(self, value: Any) -> B:
        return self._add("GT", value)

    def gte(self, value: Any) -> B:
        return self._add("GE", value)

    def between(self, low: Any, high: Any) -> B:
        return self._add("BETWEEN", low, high)

    def begins_with(self, prefix: Any) -> B:
        return self._add("BEGINS_WITH", prefix)

    def contains(self, value: Any) -> B:
        return self._add("CONTAINS", value, element=True)

    def not_contains(self, value: Any) -> B:
        return self._add("NOT_CONTAINS", value, element=True)

    def in_(self, values: Sequence[Any]) -> B:
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence) or not values:
            raise ValidationError("IN requires a non-empty sequence of values")
        return self._add("IN", *values)

    def exists(self) -> B:
        return self._add("NOT_NULL")

    def not_exists(self) -> B:
        return self._add("NULL")


class _Request(ABC):
    _operation: str = ""

    def __init__(self, table_name: str, schema: Schema, serializer: Serializer, client: Any) -> None:
        self._table_name = table_name
        self._schema = schema
        self._serializer = serializer
        self._client = client
        self._conditions: dict[str, dict[str, Any]] = {}
        self._limit: int | None = None
        self._attributes: list[str] | None = None
        self._start_key: dict[str, Any] | None = None
        self._select: str | None = None
        self._consistent_read = False

    def limit(self, n: int) -> Self:
        if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
            raise ValidationError("limit must be > 0")
        self._limit = n
        return self

    def attributes(self, names: Sequence[str]) -> Self:
        if isinstance(names, str):
            names = [names]
        out = list(names)
        for key_name in self._schema.key_names:
            if key_name not in out:
                out.append(key_name)
        self._attributes = out
        return self

    def start_key(self, key: Mapping[str, Any] | None) -> Self:
        self._start_key = dict(key) if key else None
        return self

    def select(self, value: str) -> Self:
        if value not in _SELECT_VALUES:
            raise ValidationError(f"unsupported Select: {value!r}")
        self._select = value
        return self

    def consistent_read(self, enabled: bool = True) -> Self:
        self._consistent_read = enabled
        return self

    def _require_declared(self, name: str) -> None:
        if self._schema.get(name) is None:
            raise ValidationError(f"unknown attribute: {name}")

    def _add_condition(
        self,
        section: str,
        name: str,
        operator: str,
        values: tuple[Any, ...],
        *,
        element: bool = False,
    ) -> None:
        attr = self._schema.get(name)
        wire_values: list[dict[str, Any]] = []
        for value in values:
            if element and attr is not None and attr.type.is_set:
                wire_values.append(self._serializer.serialize_element(attr, value))
            else:
                wire_values.append(self._serializer.serialize_value(self._schema, name, value))

        condition: dict[str, Any] = {"ComparisonOperator": operator}
        if wire_values:
            condition["AttributeValueList"] = wire_values
        self._conditions.setdefault(section, {})[name] = condition

    def _base_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self._table_name}
        for section, conditions in self._conditions.items():
            req[section] = dict(conditions)
        if self._limit is not None:
            req["Limit"] = self._limit
        if self._attributes is not None:
            req["AttributesToGet"] = list(self._attributes)
        if self._start_key is not None:
            req["ExclusiveStartKey"] = dict(self._start_key)
        if self._select is not None:
            req["Select"] = self._select
        if self._consistent_read:
            req["ConsistentRead"] = True
        return req

    @abstractmethod
    def build_request(self) -> dict[str, Any]: ...

    def _fetch(self, req: dict[str, Any]) -> Page:
        _logger.debug("%s %s (start=%s)", self._operation, self._table_name, req.get("ExclusiveStartKey"))
        try:
            resp = getattr(self._client, self._operation)(**req)
        except ClientError as err:
            raise _map_client_error(err) from err

        items = [Item(self._serializer.deserialize_item(self._schema, raw)) for raw in resp.get("Items", [])]
        return Page(
            items=items,
            last_evaluated_key=resp.get("LastEvaluatedKey") or None,
            count=int(resp.get("Count", len(items))),
            scanned_count=int(resp.get("ScannedCount", len(items))),
        )

    def exec(self) -> Page:
        return self._fetch(self.build_request())

    def pages(self) -> Iterator[Page]:
        req = self.build_request()
        while True:
            page = self._fetch(req)
            yield page
            if page.last_evaluated_key is None:
                return
            req = dict(req, ExclusiveStartKey=page.last_evaluated_key)

    def __iter__(self) -> Iterator[Item]:
        for page in self.pages():
            yield from page.items

    def load_all(self) -> list[Item]:
        return list(self)


class Query(_Request):
    """Builds a Query request against one hash key value."""

    _operation = "query"

    def __init__(
        self,
        hash_value: Any,
        table_name: str,
        schema: Schema,
        serializer: Serializer,
        client: Any,
    ) -> None:
        super().__init__(table_name, schema, serializer, client)
        if hash_value is None:
            raise ValidationError("hash key value is required")
        self._hash_value = hash_value
        self._index_name: str | None = None
        self._scan_forward: bool | None = None

    def where(self, name: str) -> Condition[Query]:
        if name != self._schema.range_key_name:
            attr = self._schema.get(name)
            if attr is None or not attr.secondary_index:
                raise ValidationError(f"not a range key or secondary index attribute: {name}")
            if self._index_name is None:
                self._index_name = f"{name}Index"
        return Condition(self, name, "KeyConditions")

    def filter(self, name: str) -> Condition[Query]:
        self._require_declared(name)
        if name in self._schema.key_names:
            raise ValidationError(f"key attributes cannot be used in a query filter: {name}")
        return Condition(self, name, "QueryFilter")

    def using_index(self, index_name: str) -> Query:
        self._index_name = index_name
        return self

    def ascending(self) -> Query:
        self._scan_forward = True
        return self

    def descending(self) -> Query:
        self._scan_forward = False
        return self

    def _add_condition(
        self,
        section: str,
        name: str,
        operator: str,
        values: tuple[Any, ...],
        *,
        element: bool = False,
    ) -> None:
        if section == "KeyConditions" and operator not in _KEY_OPERATORS:
            raise ValidationError(f"operator not allowed in a key condition: {operator}")
        super()._add_condition(section, name, operator, values, element=element)

    def build_request(self) -> dict[str, Any]:
        req = self._base_request()
        hash_name = self._schema.hash_key_name
        key_conditions = {
            hash_name: {
                "ComparisonOperator": "EQ",
                "AttributeValueList": [
                    self._serializer.serialize_attribute(self._schema.hash_key, self._hash_value)
                ],
            }
        }
        key_conditions.update(req.get("KeyConditions", {}))
        req["KeyConditions"] = key_conditions
        if self._index_name is not None:
            req["IndexName"] = self._index_name
        if self._scan_forward is not None:
            req["ScanIndexForward"] = self._scan_forward
        return req


class Scan(_Request):
    """Builds a Scan request over the whole table."""

    _operation = "scan"

    def __init__(self, table_name: str, schema: Schema, serializer: Serializer, client: Any) -> None:
        super().__init__(table_name, schema, serializer, client)
        self._segment: int | None = None
        self._total_segments: int | None = None

    def where(self, name: str) -> Condition[Scan]:
        self._require_declared(name)
        return Condition(self, name, "ScanFilter")

    def segments(self, segment: int, total_segments: int) -> Scan:
        if total_segments <= 0 or segment < 0 or segment >= total_segments:
            raise ValidationError("invalid segment/total_segments")
        self._segment = segment
        self._total_segments = total_segments
        return self

    def build_request(self) -> dict[str, Any]:
        req = self._base_request()
        if self._segment is not None:
            req["Segment"] = self._segment
            req["TotalSegments"] = self._total_segments
        return req


def build_query(
    hash_value: Any, *, table_name: str, schema: Schema, serializer: Serializer, client: Any
) -> Query:
    return Query(hash_value, table_name, schema, serializer, client)


def build_scan(*, table_name: str, schema: Schema, serializer: Serializer, client: Any) -> Scan:
    return Scan(table_name, schema, serializer, client)
