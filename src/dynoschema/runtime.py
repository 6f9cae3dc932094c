from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

from .errors import ValidationError

_RETRY_MODES = frozenset({"legacy", "standard", "adaptive"})


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be a number (got {raw!r})") from err


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be an integer (got {raw!r})") from err


@dataclass(frozen=True)
class ClientSettings:
    region: str | None = None
    endpoint_url: str | None = None
    connect_timeout: float = 1.0
    read_timeout: float = 3.0
    max_attempts: int = 3
    retry_mode: str = "standard"

    def __post_init__(self) -> None:
        if self.retry_mode not in _RETRY_MODES:
            raise ValidationError(f"unsupported retry mode: {self.retry_mode}")
        if self.max_attempts < 1:
            raise ValidationError("max_attempts must be >= 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> ClientSettings:
        return cls(
            region=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or None,
            endpoint_url=(environ.get("DYNAMODB_ENDPOINT") or "").strip() or None,
            connect_timeout=_env_float(environ, "DYNOSCHEMA_CONNECT_TIMEOUT", 1.0),
            read_timeout=_env_float(environ, "DYNOSCHEMA_READ_TIMEOUT", 3.0),
            max_attempts=_env_int(environ, "DYNOSCHEMA_MAX_ATTEMPTS", 3),
            retry_mode=(environ.get("DYNOSCHEMA_RETRY_MODE") or "standard").strip().lower(),
        )


def create_boto3_config(settings: ClientSettings) -> Config:
    return Config(
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        retries={"max_attempts": settings.max_attempts, "mode": settings.retry_mode},
    )


def get_dynamodb_client(settings: ClientSettings | None = None, *, session: Any | None = None) -> Any:
    settings = settings or ClientSettings.from_env()
    sess = session or boto3.session.Session(region_name=settings.region)
    kwargs: dict[str, Any] = {"region_name": settings.region, "config": create_boto3_config(settings)}
    if settings.endpoint_url:
        kwargs["endpoint_url"] = settings.endpoint_url
    return cast(Any, sess).client("dynamodb", **kwargs)
