from __future__ import annotations

import uuid

import pytest

from dynoschema import AttributeType, Schema, SchemaError


def test_schema_tracks_keys_and_indexes() -> None:
    schema = Schema().string("name", hash_key=True).string("email", range_key=True)
    schema.number("age", secondary_index=True).string_set("tags")

    assert schema.hash_key_name == "name"
    assert schema.range_key_name == "email"
    assert schema.key_names == ("name", "email")
    assert [a.name for a in schema.secondary_indexes] == ["age"]
    assert schema.attributes["tags"].type is AttributeType.STRING_SET
    assert "tags" in schema
    assert schema.get("missing") is None


def test_range_key_name_is_none_without_range_key() -> None:
    schema = Schema().string("email", hash_key=True)
    assert schema.range_key_name is None
    assert schema.range_key is None
    assert schema.key_names == ("email",)


@pytest.mark.parametrize(
    ("build", "message"),
    [
        (lambda s: s.string("a", hash_key=True).string("b", hash_key=True), "hash key already declared"),
        (lambda s: s.string("a", range_key=True).string("b", range_key=True), "range key already declared"),
        (lambda s: s.string("a", hash_key=True, range_key=True), "both hash and range"),
        (lambda s: s.string("a").number("a"), "declared twice"),
        (lambda s: s.string_set("a", hash_key=True), "key attribute must be"),
        (lambda s: s.boolean("a", secondary_index=True), "secondary index attribute must be"),
        (lambda s: s.string("a", hash_key=True, secondary_index=True), "cannot also be a secondary index"),
    ],
)
def test_declare_rejects_malformed_attributes(build, message: str) -> None:
    with pytest.raises(SchemaError, match=message):
        build(Schema())


def test_declare_rejects_unknown_type() -> None:
    with pytest.raises(SchemaError, match="unsupported attribute type"):
        Schema().declare("a", "S")  # type: ignore[arg-type]


def test_freeze_requires_hash_key_and_blocks_declarations() -> None:
    with pytest.raises(SchemaError, match="exactly one hash key"):
        Schema().string("name").freeze()

    schema = Schema().string("email", hash_key=True).freeze()
    assert schema.frozen is True
    with pytest.raises(SchemaError, match="frozen"):
        schema.string("name")


def test_apply_defaults_fills_missing_without_mutating_input() -> None:
    schema = Schema().string("email", hash_key=True).string("name", default="Foo").number("age")
    item = {"email": "a@b.com"}

    out = schema.apply_defaults(item)

    assert out == {"email": "a@b.com", "name": "Foo"}
    assert item == {"email": "a@b.com"}
    assert schema.apply_defaults({"email": "a@b.com", "name": "Bar"})["name"] == "Bar"


def test_apply_defaults_invokes_callables_and_is_idempotent() -> None:
    calls: list[int] = []

    def counter() -> int:
        calls.append(1)
        return len(calls)

    schema = Schema().uuid("id", hash_key=True).number("seq", default=counter)

    once = schema.apply_defaults({})
    twice = schema.apply_defaults(once)

    assert once == twice
    assert once["seq"] == 1
    assert len(calls) == 1
    assert str(uuid.UUID(once["id"])) == once["id"]
    assert schema.apply_defaults({})["id"] != once["id"]


def test_attribute_type_wire_tags() -> None:
    assert AttributeType.STRING.wire_tag == "S"
    assert AttributeType.DATE.wire_tag == "S"
    assert AttributeType.NUMBER_SET.wire_tag == "NS"
    assert AttributeType.NUMBER_SET.element_type is AttributeType.NUMBER
    assert AttributeType.BOOLEAN.is_key_type is False


def test_apply_defaults_copies_mutable_defaults() -> None:
    schema = Schema().string("email", hash_key=True).string_set("tags", default={"a"})

    first = schema.apply_defaults({"email": "x"})
    first["tags"].add("b")

    assert schema.apply_defaults({"email": "y"})["tags"] == {"a"}
    assert schema.attributes["tags"].default == {"a"}
