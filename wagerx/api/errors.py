"""
WAGERX - Translate escrow reverts into HTTP errors.
"""

from typing import NoReturn

from fastapi import HTTPException, status

from wagerx.escrow import describe_error
from wagerx.schemas import ErrorResponse

STATUS_BY_CODE = {
    "INSUFFICIENT_FUNDS": status.HTTP_400_BAD_REQUEST,
    "INVALID_PARAMS": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_PARTICIPANT": status.HTTP_403_FORBIDDEN,
    "UNAUTHORIZED": status.HTTP_403_FORBIDDEN,
    "INVALID_STATUS": status.HTTP_409_CONFLICT,
    "TRANSFER_FAILED": status.HTTP_409_CONFLICT,
    "REENTRANT_CALL": status.HTTP_409_CONFLICT,
}


def raise_escrow_http_error(exc: Exception) -> NoReturn:
    """
    Raise the HTTPException matching an escrow error.

    Raises:
        HTTPException: Always; detail is {code, message, user_message}
    """
    detail = ErrorResponse(**describe_error(exc))
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(detail.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=detail.model_dump(),
    ) from exc
