from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Iterator
from typing import Any

import boto3
import pytest

from dynoschema import Schema, Table


def _dynamodb_endpoint() -> str | None:
    return os.environ.get("DYNAMODB_ENDPOINT") or None


@pytest.fixture()
def client() -> Any:
    return boto3.client(
        "dynamodb",
        endpoint_url=_dynamodb_endpoint(),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


@pytest.fixture()
def make_table(client: Any) -> Iterator[Callable[[Schema], Table]]:
    created: list[Table] = []

    def factory(schema: Schema) -> Table:
        table = Table(f"dynoschema_it_{uuid.uuid4().hex[:12]}", schema, client=client)
        table.create_table(read_capacity=1, write_capacity=1)
        client.get_waiter("table_exists").wait(TableName=table.table_name)
        created.append(table)
        return table

    yield factory

    for table in created:
        table.delete_table()
