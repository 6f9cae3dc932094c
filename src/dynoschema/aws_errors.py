from __future__ import annotations

from botocore.exceptions import ClientError

from .errors import ConditionFailedError, OperationError, TableNotFoundError


def map_client_error(err: ClientError) -> OperationError:
    code = str(err.response.get("Error", {}).get("Code", "")) or "UnknownError"
    message = str(err.response.get("Error", {}).get("Message", "")) or str(err)

    if code == "ConditionalCheckFailedException":
        return ConditionFailedError(code=code, message=message)
    if code == "ResourceNotFoundException":
        return TableNotFoundError(code=code, message=message)

    return OperationError(code=code, message=message)
