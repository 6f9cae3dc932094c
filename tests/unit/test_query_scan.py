from __future__ import annotations

import inspect

import pytest
from botocore.exceptions import ClientError

from dynoschema import Item, Schema, TableNotFoundError, ValidationError
from dynoschema.mocks import ANY, FakeDynamoDBClient
from dynoschema.query import Query, Scan, _Request, build_query, build_scan
from dynoschema.serializer import default_serializer


@pytest.fixture()
def schema() -> Schema:
    schema = Schema().string("name", hash_key=True).string("email", range_key=True)
    return schema.number("age", secondary_index=True).string_set("tags").string("nick").freeze()


def _query(schema: Schema, client: FakeDynamoDBClient, hash_value: object = "Bob") -> Query:
    return build_query(
        hash_value, table_name="accounts", schema=schema, serializer=default_serializer, client=client
    )


def _scan(schema: Schema, client: FakeDynamoDBClient) -> Scan:
    return build_scan(table_name="accounts", schema=schema, serializer=default_serializer, client=client)


def test_query_request_shape(schema: Schema) -> None:
    req = (
        _query(schema, FakeDynamoDBClient())
        .where("email")
        .begins_with("bob@")
        .filter("tags")
        .contains("admin")
        .limit(10)
        .attributes(["nick"])
        .descending()
        .consistent_read()
        .build_request()
    )

    assert req == {
        "TableName": "accounts",
        "KeyConditions": {
            "name": {"ComparisonOperator": "EQ", "AttributeValueList": [{"S": "Bob"}]},
            "email": {"ComparisonOperator": "BEGINS_WITH", "AttributeValueList": [{"S": "bob@"}]},
        },
        "QueryFilter": {"tags": {"ComparisonOperator": "CONTAINS", "AttributeValueList": [{"S": "admin"}]}},
        "Limit": 10,
        "AttributesToGet": ["nick", "name", "email"],
        "ConsistentRead": True,
        "ScanIndexForward": False,
    }
    assert list(req["KeyConditions"]) == ["name", "email"]


def test_query_on_secondary_index_sets_index_name(schema: Schema) -> None:
    req = _query(schema, FakeDynamoDBClient()).where("age").between(18, 30).build_request()
    assert req["IndexName"] == "ageIndex"
    assert req["KeyConditions"]["age"] == {
        "ComparisonOperator": "BETWEEN",
        "AttributeValueList": [{"N": "18"}, {"N": "30"}],
    }

    explicit = _query(schema, FakeDynamoDBClient()).using_index("byAge").where("age").gte(1)
    assert explicit.build_request()["IndexName"] == "byAge"


def test_query_rejects_invalid_conditions(schema: Schema) -> None:
    query = _query(schema, FakeDynamoDBClient())
    with pytest.raises(ValidationError, match="not a range key"):
        query.where("nick")
    with pytest.raises(ValidationError, match="key condition"):
        query.where("email").ne("x")
    with pytest.raises(ValidationError, match="query filter"):
        query.filter("email")
    with pytest.raises(ValidationError, match="limit"):
        query.limit(0)
    with pytest.raises(ValidationError):
        _query(schema, FakeDynamoDBClient(), hash_value=None)


def test_filter_operators(schema: Schema) -> None:
    req = (
        _scan(schema, FakeDynamoDBClient())
        .where("nick")
        .in_(["a", "b"])
        .where("age")
        .not_exists()
        .where("tags")
        .not_contains("x")
        .build_request()
    )
    assert req["ScanFilter"] == {
        "nick": {"ComparisonOperator": "IN", "AttributeValueList": [{"S": "a"}, {"S": "b"}]},
        "age": {"ComparisonOperator": "NULL"},
        "tags": {"ComparisonOperator": "NOT_CONTAINS", "AttributeValueList": [{"S": "x"}]},
    }

    with pytest.raises(ValidationError, match="IN requires"):
        _scan(schema, FakeDynamoDBClient()).where("nick").in_([])


def test_scan_segments_and_select(schema: Schema) -> None:
    req = _scan(schema, FakeDynamoDBClient()).segments(1, 4).select("COUNT").build_request()
    assert req == {"TableName": "accounts", "Segment": 1, "TotalSegments": 4, "Select": "COUNT"}

    with pytest.raises(ValidationError):
        _scan(schema, FakeDynamoDBClient()).segments(4, 4)
    with pytest.raises(ValidationError, match="Select"):
        _scan(schema, FakeDynamoDBClient()).select("EVERYTHING")


def test_exec_returns_page(schema: Schema) -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "query",
        {"TableName": "accounts", "KeyConditions": ANY},
        response={
            "Items": [{"name": {"S": "Bob"}, "email": {"S": "b@x.com"}, "age": {"N": "30"}}],
            "Count": 1,
            "ScannedCount": 3,
            "LastEvaluatedKey": {"name": {"S": "Bob"}, "email": {"S": "b@x.com"}},
        },
    )

    page = _query(schema, client).exec()

    assert page.items == [Item({"name": "Bob", "email": "b@x.com", "age": 30})]
    assert page.count == 1
    assert page.scanned_count == 3
    assert page.last_evaluated_key == {"name": {"S": "Bob"}, "email": {"S": "b@x.com"}}


def test_iteration_follows_last_evaluated_key(schema: Schema) -> None:
    start = {"name": {"S": "A"}, "email": {"S": "1"}}
    client = FakeDynamoDBClient()
    client.expect(
        "scan",
        response={"Items": [{"name": {"S": "A"}, "email": {"S": "1"}}], "LastEvaluatedKey": start},
    )
    client.expect(
        "scan",
        {"ExclusiveStartKey": start},
        response={"Items": [{"name": {"S": "B"}, "email": {"S": "2"}}]},
    )

    items = _scan(schema, client).load_all()

    assert [item["name"] for item in items] == ["A", "B"]
    assert "ExclusiveStartKey" not in client.calls[0][1]
    client.assert_no_pending()


def test_start_key_is_sent(schema: Schema) -> None:
    client = FakeDynamoDBClient()
    key = {"name": {"S": "Bob"}, "email": {"S": "x"}}
    client.expect("query", {"ExclusiveStartKey": key}, response={"Items": []})

    page = _query(schema, client).start_key(key).exec()

    assert page.items == []
    assert page.last_evaluated_key is None


def test_client_errors_are_mapped(schema: Schema) -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "scan",
        error=ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "gone"}}, "Scan"),
    )
    with pytest.raises(TableNotFoundError):
        _scan(schema, client).exec()


def test_builders_reject_undeclared_attributes(schema: Schema) -> None:
    with pytest.raises(ValidationError, match="unknown attribute: nope"):
        _scan(schema, FakeDynamoDBClient()).where("nope")
    with pytest.raises(ValidationError, match="unknown attribute: nope"):
        _query(schema, FakeDynamoDBClient()).filter("nope")


def test_request_base_is_abstract() -> None:
    assert inspect.isabstract(_Request)
    with pytest.raises(TypeError):
        _Request("accounts", Schema(), default_serializer, FakeDynamoDBClient())  # type: ignore[abstract]
