from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any

from .errors import (
    ConditionFailedError,
    DeserializationError,
    DynoschemaError,
    InvalidKeyError,
    OperationError,
    SchemaError,
    SerializationError,
    TableNotFoundError,
    ValidationError,
)
from .item import Item
from .options import CreateOptions, DestroyOptions, GetOptions, Throughput, UpdateOptions
from .schema import AttributeDefinition, AttributeType, Schema
from .serializer import Serializer, UpdateAction

if TYPE_CHECKING:
    from .query import Condition, Page, Query, Scan
    from .runtime import ClientSettings, create_boto3_config, get_dynamodb_client
    from .table import Table


def _read_version() -> str:
    try:
        return version("dynoschema")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _read_version()

logging.getLogger(__name__).addHandler(logging.NullHandler())


def __getattr__(name: str) -> Any:
    if name == "Table":
        from .table import Table

        return Table
    if name in {"Condition", "Page", "Query", "Scan"}:
        from . import query

        return getattr(query, name)
    if name in {"ClientSettings", "create_boto3_config", "get_dynamodb_client"}:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AttributeDefinition",
    "AttributeType",
    "ClientSettings",
    "Condition",
    "ConditionFailedError",
    "CreateOptions",
    "DeserializationError",
    "DestroyOptions",
    "DynoschemaError",
    "GetOptions",
    "InvalidKeyError",
    "Item",
    "OperationError",
    "Page",
    "Query",
    "Scan",
    "Schema",
    "SchemaError",
    "SerializationError",
    "Serializer",
    "Table",
    "TableNotFoundError",
    "Throughput",
    "UpdateAction",
    "UpdateOptions",
    "ValidationError",
    "__version__",
    "create_boto3_config",
    "get_dynamodb_client",
]
