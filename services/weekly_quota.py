from datetime import date, datetime, time, timedelta

from models.appointment import CONFIRMED


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_window(day) -> tuple[datetime, datetime]:
    """
    Returns (Monday 00:00:00, Sunday 23:59:59) of the ISO week containing ``day``.
    """
    day = _as_date(day)
    monday = day - timedelta(days=day.isoweekday() - 1)
    sunday = monday + timedelta(days=6)
    return datetime.combine(monday, time.min), datetime.combine(sunday, time(23, 59, 59))


def has_confirmed_in_week(appointments, day) -> bool:
    start, end = week_window(day)
    for appt in appointments:
        if appt.status != CONFIRMED:
            continue
        if start.date() <= _as_date(appt.appointment_date) <= end.date():
            return True
    return False
