from datetime import date, time

from services.errors import ValidationError


def parse_date(value, field="date") -> date:
    # Expect ISO format like "2026-01-20"
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{field} is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")


def parse_time(value, field="time") -> time:
    # "08:00" or "08:00:00"
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{field} is required (HH:MM)")
    try:
        return time.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use HH:MM or HH:MM:SS")


def parse_int(value, field, default=None):
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
