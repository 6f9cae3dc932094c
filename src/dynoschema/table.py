from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from botocore.exceptions import ClientError

from .aws_errors import map_client_error as _map_client_error
from .errors import ValidationError
from .item import Item
from .options import CreateOptions, DestroyOptions, GetOptions, ReturnValues, Throughput, UpdateOptions
from .query import Query, Scan, build_query, build_scan
from .schema import Schema
from .serializer import Serializer, UpdateAction, default_serializer

_logger: logging.Logger = logging.getLogger(__name__)

type QueryFactory = Callable[..., Query]
type ScanFactory = Callable[..., Scan]


class Table:
    """Schema-bound operations against one DynamoDB table.

    ``client`` is any object with the low-level boto3 DynamoDB method surface
    (``get_item``, ``put_item``, ...). Each operation makes at most one call
    and either returns or raises; ``botocore`` client errors surface as
    :class:`~dynoschema.errors.OperationError`.
    """

    def __init__(
        self,
        table_name: str,
        schema: Schema,
        *,
        serializer: Serializer | None = None,
        client: Any | None = None,
        query_factory: QueryFactory = build_query,
        scan_factory: ScanFactory = build_scan,
    ) -> None:
        if not table_name:
            raise ValueError("table_name is required")

        self._table_name = table_name
        self._schema = schema.freeze()
        self._serializer = serializer if serializer is not None else default_serializer
        if client is None:
            from .runtime import get_dynamodb_client

            client = get_dynamodb_client()
        self._client: Any = client
        self._query_factory = query_factory
        self._scan_factory = scan_factory

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def schema(self) -> Schema:
        return self._schema

    def _call(self, operation: str, req: dict[str, Any]) -> Mapping[str, Any]:
        _logger.debug("%s %s", operation, self._table_name)
        try:
            return getattr(self._client, operation)(**req)
        except ClientError as err:
            raise _map_client_error(err) from err

    def _to_item(self, attrs: Mapping[str, Any]) -> Item:
        return Item(self._serializer.deserialize_item(self._schema, attrs))

    def _expected(self, expected: Mapping[str, Any] | None) -> dict[str, Any] | None:
        if not expected:
            return None
        return self._serializer.serialize_item(self._schema, expected, expected=True)

    def get(
        self, hash_value: Any, range_value: Any | None = None, *, consistent_read: bool = False
    ) -> Item | None:
        options = GetOptions(consistent_read=consistent_read)

        req: dict[str, Any] = {
            "TableName": self._table_name,
            "Key": self._serializer.build_key(hash_value, range_value, self._schema),
        }
        if options.consistent_read:
            req["ConsistentRead"] = True

        resp = self._call("get_item", req)
        item = resp.get("Item")
        if not item:
            return None
        return self._to_item(item)

    def create(
        self,
        item: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
        overwrite: bool = True,
    ) -> Item:
        options = CreateOptions(expected=expected, overwrite=overwrite)

        data = self._schema.apply_defaults(item)
        wire_item = self._serializer.serialize_item(self._schema, data)
        for key_name in self._schema.key_names:
            if key_name not in wire_item:
                raise ValidationError(f"missing key attribute: {key_name}")

        req: dict[str, Any] = {"TableName": self._table_name, "Item": wire_item}
        conditions = self._expected(options.expected) or {}
        if not options.overwrite:
            for key_name in self._schema.key_names:
                conditions.setdefault(key_name, {"Exists": False})
        if conditions:
            req["Expected"] = conditions

        self._call("put_item", req)
        return Item({name: value for name, value in data.items() if name in wire_item})

    def update(
        self,
        item: Mapping[str, Any],
        *,
        return_values: ReturnValues = "ALL_NEW",
        expected: Mapping[str, Any] | None = None,
        actions: Mapping[str, UpdateAction | str] | None = None,
    ) -> Item | None:
        options = UpdateOptions(return_values=return_values, expected=expected, actions=actions)

        key = self._serializer.key_of(self._schema, item)
        updates = self._serializer.serialize_item_for_update(
            self._schema, UpdateAction.PUT, item, actions=options.actions
        )

        req: dict[str, Any] = {"TableName": self._table_name, "Key": key}
        if updates:
            req["AttributeUpdates"] = updates
        conditions = self._expected(options.expected)
        if conditions:
            req["Expected"] = conditions
        req["ReturnValues"] = options.return_values

        resp = self._call("update_item", req)
        attrs = resp.get("Attributes")
        if not attrs:
            return None
        if options.return_values in {"UPDATED_NEW", "UPDATED_OLD"}:
            attrs = {**key, **attrs}
        return self._to_item(attrs)

    def destroy(
        self,
        hash_value: Any,
        range_value: Any | None = None,
        *,
        return_values: ReturnValues | None = None,
        expected: Mapping[str, Any] | None = None,
    ) -> Item | None:
        options = DestroyOptions(return_values=return_values, expected=expected)

        req: dict[str, Any] = {
            "TableName": self._table_name,
            "Key": self._serializer.build_key(hash_value, range_value, self._schema),
        }
        conditions = self._expected(options.expected)
        if conditions:
            req["Expected"] = conditions
        if options.return_values is not None:
            req["ReturnValues"] = options.return_values

        resp = self._call("delete_item", req)
        attrs = resp.get("Attributes")
        if not attrs:
            return None
        return self._to_item(attrs)

    def query(self, hash_value: Any) -> Query:
        return self._query_factory(
            hash_value,
            table_name=self._table_name,
            schema=self._schema,
            serializer=self._serializer,
            client=self._client,
        )

    def scan(self) -> Scan:
        return self._scan_factory(
            table_name=self._table_name,
            schema=self._schema,
            serializer=self._serializer,
            client=self._client,
        )

    def build_create_table_request(self, *, read_capacity: int, write_capacity: int) -> dict[str, Any]:
        throughput = Throughput(read_capacity=read_capacity, write_capacity=write_capacity)

        hash_attr = self._schema.hash_key
        range_attr = self._schema.range_key

        definitions = [{"AttributeName": hash_attr.name, "AttributeType": hash_attr.type.wire_tag}]
        key_schema = [{"AttributeName": hash_attr.name, "KeyType": "HASH"}]
        if range_attr is not None:
            definitions.append({"AttributeName": range_attr.name, "AttributeType": range_attr.type.wire_tag})
            key_schema.append({"AttributeName": range_attr.name, "KeyType": "RANGE"})

        indexes: list[dict[str, Any]] = []
        for attr in self._schema.secondary_indexes:
            definitions.append({"AttributeName": attr.name, "AttributeType": attr.type.wire_tag})
            indexes.append(
                {
                    "IndexName": f"{attr.name}Index",
                    "KeySchema": [
                        {"AttributeName": hash_attr.name, "KeyType": "HASH"},
                        {"AttributeName": attr.name, "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            )

        req: dict[str, Any] = {
            "TableName": self._table_name,
            "AttributeDefinitions": definitions,
            "KeySchema": key_schema,
        }
        if indexes:
            req["LocalSecondaryIndexes"] = indexes
        req["ProvisionedThroughput"] = throughput.to_request()
        return req

    def create_table(self, *, read_capacity: int, write_capacity: int) -> dict[str, Any]:
        req = self.build_create_table_request(read_capacity=read_capacity, write_capacity=write_capacity)
        return dict(self._call("create_table", req))

    def describe_table(self) -> dict[str, Any]:
        return dict(self._call("describe_table", {"TableName": self._table_name}))

    def update_table(self, *, read_capacity: int, write_capacity: int) -> dict[str, Any]:
        throughput = Throughput(read_capacity=read_capacity, write_capacity=write_capacity)
        req = {"TableName": self._table_name, "ProvisionedThroughput": throughput.to_request()}
        return dict(self._call("update_table", req))

    def delete_table(self) -> dict[str, Any]:
        return dict(self._call("delete_table", {"TableName": self._table_name}))
