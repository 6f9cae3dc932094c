from __future__ import annotations


class DynoschemaError(Exception):
    pass


class SchemaError(DynoschemaError, ValueError):
    pass


class ValidationError(DynoschemaError):
    pass


class SerializationError(ValidationError):
    def __init__(self, message: str, *, attribute: str | None = None) -> None:
        super().__init__(f"{attribute}: {message}" if attribute else message)
        self.attribute = attribute


class InvalidKeyError(ValidationError):
    pass


class DeserializationError(DynoschemaError):
    def __init__(self, message: str, *, attribute: str | None = None) -> None:
        super().__init__(f"{attribute}: {message}" if attribute else message)
        self.attribute = attribute


class OperationError(DynoschemaError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class ConditionFailedError(OperationError):
    pass


class TableNotFoundError(OperationError):
    pass
