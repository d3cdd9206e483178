from typing import Any

from fastapi import HTTPException, status

from ..domain.errors import BookingError, ErrorCode, InvalidInputError, SlotUnavailableError
from ..schemas import AvailabilityRead

_STATUS_BY_CODE = {
    ErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PAST: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.OUT_OF_WINDOW: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.BLOCKED: status.HTTP_409_CONFLICT,
    ErrorCode.FULL: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CANCELED: status.HTTP_409_CONFLICT,
    ErrorCode.CANNOT_CANCEL_BLOCKED: status.HTTP_409_CONFLICT,
    ErrorCode.CANNOT_CHANGE_BLOCKED: status.HTTP_409_CONFLICT,
    ErrorCode.STORAGE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: BookingError) -> HTTPException:
    detail: dict[str, Any] = {"error": exc.code.value, "message": str(exc)}
    if isinstance(exc, InvalidInputError) and exc.missing:
        detail["missing"] = exc.missing
    if isinstance(exc, SlotUnavailableError):
        detail["availability"] = AvailabilityRead.from_decision(exc.decision).model_dump(mode="json")
    return HTTPException(status_code=_STATUS_BY_CODE[exc.code], detail=detail)
