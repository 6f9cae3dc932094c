from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

OPERATIONS = frozenset(
    {
        "get_item",
        "put_item",
        "update_item",
        "delete_item",
        "query",
        "scan",
        "create_table",
        "describe_table",
        "update_table",
        "delete_table",
    }
)


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()

type RequestCheck = Mapping[str, Any] | Callable[[Mapping[str, Any]], None]
type Response = Mapping[str, Any] | Callable[[Mapping[str, Any]], Mapping[str, Any]]


def _mismatches(expected: Any, actual: Any, path: str) -> list[str]:
    if expected is ANY:
        return []

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return [f"{path}: expected a map, got {type(actual).__name__}"]
        out: list[str] = []
        for k, v in expected.items():
            if k not in actual:
                out.append(f"{path}: missing key {k!r}")
            else:
                out.extend(_mismatches(v, actual[k], f"{path}.{k}"))
        return out

    if isinstance(expected, list):
        if not isinstance(actual, list) or len(expected) != len(actual):
            return [f"{path}: expected {expected!r}, got {actual!r}"]
        out = []
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            out.extend(_mismatches(e, a, f"{path}[{i}]"))
        return out

    return [] if expected == actual else [f"{path}: expected {expected!r}, got {actual!r}"]


@dataclass(frozen=True)
class ScriptedCall:
    operation: str
    check: RequestCheck | None = None
    response: Response | None = None
    error: Exception | None = None


class FakeDynamoDBClient:
    """Scripted stand-in for a low-level boto3 DynamoDB client.

    Each call consumes the next :meth:`expect` entry in order: the operation
    name must match, the request is checked against a partial map (``ANY``
    matches anything) or a callable, then the scripted response is returned
    or the scripted error raised.
    """

    def __init__(self) -> None:
        self._script: list[ScriptedCall] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        operation: str,
        check: RequestCheck | None = None,
        *,
        response: Response | None = None,
        error: Exception | None = None,
    ) -> FakeDynamoDBClient:
        if operation not in OPERATIONS:
            raise ValueError(f"unknown operation: {operation}")
        self._script.append(ScriptedCall(operation=operation, check=check, response=response, error=error))
        return self

    def assert_no_pending(self) -> None:
        if self._script:
            pending = ", ".join(call.operation for call in self._script)
            raise AssertionError(f"scripted calls never made: {pending}")

    def requests(self, operation: str) -> list[dict[str, Any]]:
        return [req for op, req in self.calls if op == operation]

    def _invoke(self, operation: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((operation, req))
        if not self._script:
            raise AssertionError(f"unexpected call: {operation}")

        call = self._script.pop(0)
        if call.operation != operation:
            raise AssertionError(f"expected {call.operation}, got {operation}")

        if callable(call.check):
            call.check(req)
        elif call.check is not None:
            problems = _mismatches(call.check, req, operation)
            if problems:
                raise AssertionError("; ".join(problems))

        if call.error is not None:
            raise call.error
        if callable(call.response):
            return dict(call.response(req))
        return dict(call.response or {})

    def __getattr__(self, name: str) -> Callable[..., Mapping[str, Any]]:
        if name not in OPERATIONS:
            raise AttributeError(name)

        def operation(**kwargs: Any) -> Mapping[str, Any]:
            return self._invoke(name, dict(kwargs))

        return operation
