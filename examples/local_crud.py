from __future__ import annotations

import logging
import os
import uuid

from dynoschema import ClientSettings, Schema, Table, get_dynamodb_client


def main() -> None:
    logging.basicConfig(level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO)

    settings = ClientSettings.from_env(
        {
            "AWS_REGION": os.environ.get("AWS_REGION", "us-east-1"),
            "DYNAMODB_ENDPOINT": os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        }
    )
    client = get_dynamodb_client(settings)

    schema = (
        Schema()
        .string("author", hash_key=True)
        .string("slug", range_key=True)
        .number("votes", secondary_index=True, default=0)
        .string_set("tags")
    )
    table = Table(f"dynoschema_example_{uuid.uuid4().hex[:12]}", schema, client=client)
    table.create_table(read_capacity=1, write_capacity=1)
    client.get_waiter("table_exists").wait(TableName=table.table_name)

    try:
        table.create({"author": "ada", "slug": "engines", "tags": {"history"}})
        table.create({"author": "ada", "slug": "notes", "votes": 10})
        table.update({"author": "ada", "slug": "engines", "votes": 3}, actions={"votes": "ADD"})

        print("get:", table.get("ada", "engines"))
        print("popular:", table.query("ada").where("votes").gt(5).load_all())
    finally:
        table.delete_table()


if __name__ == "__main__":
    main()
