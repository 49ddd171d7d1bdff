"""
Typed booking errors.

Every business-rule failure raised by the services is a ``BookingError``
subclass. The HTTP layer renders them as ``{"error": ..., "code": ...}`` with
the class status code, plus any extra context (e.g. the week window).
"""


class BookingError(Exception):
    status_code = 400
    code = "BOOKING_ERROR"

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class NotFound(BookingError):
    status_code = 404
    code = "NOT_FOUND"


class Forbidden(BookingError):
    status_code = 403
    code = "FORBIDDEN"


class SlotUnavailable(BookingError):
    status_code = 409
    code = "SLOT_UNAVAILABLE"


class DuplicateBooking(BookingError):
    status_code = 409
    code = "DUPLICATE_BOOKING"


class WeeklyLimitExceeded(BookingError):
    status_code = 409
    code = "WEEKLY_LIMIT_EXCEEDED"

    def __init__(self, message: str, week_start, week_end):
        super().__init__(
            message,
            week_start=week_start.date().isoformat(),
            week_end=week_end.date().isoformat(),
        )
        self.week_start = week_start
        self.week_end = week_end


class PassLimitExceeded(BookingError):
    status_code = 409
    code = "PASS_LIMIT_EXCEEDED"


class ValidationError(BookingError):
    status_code = 400
    code = "VALIDATION_ERROR"


class IntervalsAlreadyGenerated(ValidationError):
    status_code = 409
    code = "INTERVALS_ALREADY_GENERATED"


class InvalidStatusTransition(BookingError):
    status_code = 409
    code = "INVALID_STATUS_TRANSITION"
