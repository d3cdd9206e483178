from __future__ import annotations

from enum import StrEnum
from typing import Iterable, Optional

from .services import AvailabilityDecision, AvailabilityOutcome


class ErrorCode(StrEnum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    PAST = "past"
    OUT_OF_WINDOW = "out_of_window"
    BLOCKED = "blocked"
    FULL = "full"
    ALREADY_CANCELED = "already_canceled"
    CANNOT_CANCEL_BLOCKED = "cannot_cancel_blocked"
    CANNOT_CHANGE_BLOCKED = "cannot_change_blocked"
    STORAGE_ERROR = "storage_error"


class BookingError(Exception):
    code: ErrorCode = ErrorCode.INVALID_INPUT


class InvalidInputError(BookingError):
    code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, *, missing: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing = list(missing)


class NotFoundError(BookingError):
    code = ErrorCode.NOT_FOUND


class TenantNotFoundError(NotFoundError):
    pass


class ReservationNotFoundError(NotFoundError):
    pass


class AlreadyCanceledError(BookingError):
    code = ErrorCode.ALREADY_CANCELED


class CannotCancelBlockedError(BookingError):
    code = ErrorCode.CANNOT_CANCEL_BLOCKED


class CannotChangeBlockedError(BookingError):
    code = ErrorCode.CANNOT_CHANGE_BLOCKED


class StorageError(BookingError):
    code = ErrorCode.STORAGE_ERROR


class DuplicateCodeError(StorageError):
    """Raised by storage when a confirmation code is already taken for the tenant."""


_OUTCOME_CODES = {
    AvailabilityOutcome.INVALID: ErrorCode.INVALID_INPUT,
    AvailabilityOutcome.PAST: ErrorCode.PAST,
    AvailabilityOutcome.OUT_OF_WINDOW: ErrorCode.OUT_OF_WINDOW,
    AvailabilityOutcome.BLOCKED: ErrorCode.BLOCKED,
    AvailabilityOutcome.FULL: ErrorCode.FULL,
}


class SlotUnavailableError(BookingError):
    """The requested slot was evaluated and cannot be booked; carries the decision."""

    def __init__(self, decision: AvailabilityDecision, message: Optional[str] = None) -> None:
        if decision.outcome not in _OUTCOME_CODES:
            raise ValueError(f"{decision.outcome} is not a rejection")
        super().__init__(message or f"slot {decision.date} {decision.time_slot} is {decision.outcome.value}")
        self.decision = decision
        self.code = _OUTCOME_CODES[decision.outcome]
