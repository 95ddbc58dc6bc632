from typing import Any

from fastapi import HTTPException

from stockdesk.schemas.common import ErrorKind, OperationResult

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PERSISTENCE: 500,
}


def unwrap(result: OperationResult) -> Any:
    """Return the result payload, or raise the HTTP error matching its failure kind."""
    if not result.success:
        raise HTTPException(STATUS_BY_KIND.get(result.error_kind, 400), result.error)
    return result.data
