"""Translation of service errors into HTTP errors."""

from fastapi import HTTPException

from hakufloat.host.exceptions import (
    AddressInUseError,
    BadRequestError,
    DuplicateAddressError,
    DuplicatePoolNameError,
    HakuFloatError,
    NotFoundError,
    PoolEmptyError,
    QuotaExceededError,
    RemoteAgentError,
)

_STATUS_CODES: list[tuple[type[HakuFloatError], int]] = [
    (NotFoundError, 404),
    (BadRequestError, 400),
    (DuplicatePoolNameError, 409),
    (DuplicateAddressError, 409),
    (AddressInUseError, 409),
    (PoolEmptyError, 409),
    (QuotaExceededError, 403),
    (RemoteAgentError, 502),
]


def http_error(error: HakuFloatError) -> HTTPException:
    """Build the HTTPException matching a service error."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
