"""
Booking engine: books, resumes and cancels appointments on intervals.

Appointment states::

    confirmed -> cancelled | completed | admin_approved | admin_rejected | missed
    cancelled -> confirmed   (resume, same user and same interval only)

Every state change that touches capacity runs in one transaction together
with the matching ``capacity_ledger`` call. Booking attempts of the same user
are serialized by a write on the user row for the length of the
transaction, which keeps the one-confirmed-appointment-per-week rule race free.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.appointment import Appointment, CANCELLED, CONFIRMED
from models.interval import Interval
from models.user import User
from services import capacity_ledger
from services.errors import (
    DuplicateBooking,
    Forbidden,
    InvalidStatusTransition,
    NotFound,
    PassLimitExceeded,
    SlotUnavailable,
    WeeklyLimitExceeded,
)
from services.weekly_quota import has_confirmed_in_week, week_window

logger = logging.getLogger(__name__)

ELEVATED_ROLES = {"ADMIN", "STAFF"}


@dataclass
class BookingResult:
    appointment: Appointment
    resumed: bool = False

    @property
    def message(self) -> str:
        return "Appointment resumed" if self.resumed else "Appointment booked"


def _lock_user(user_id: int):
    # No-op write held until commit/rollback: a row lock on PostgreSQL, the
    # database write lock on SQLite (which ignores FOR UPDATE).
    result = db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(used_passes=User.used_passes)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return db.session.get(User, user_id, populate_existing=True)


def _confirmed_appointments(user_id: int):
    return Appointment.query.filter_by(user_id=user_id, status=CONFIRMED).all()


def _raise_week_limit(week_start, week_end):
    raise WeeklyLimitExceeded(
        f"Only one appointment per week is allowed "
        f"(week of {week_start.date().isoformat()} to {week_end.date().isoformat()})",
        week_start,
        week_end,
    )


def _copy_interval(appt: Appointment, interval: Interval):
    appt.appointment_date = interval.date
    appt.start_time = interval.start_time
    appt.end_time = interval.end_time


def book(user_id: int, interval_id: int, note=None) -> BookingResult:
    try:
        result = _book(user_id, interval_id, note)
        db.session.commit()
    except IntegrityError:
        # uq_appointment_user_interval: a concurrent request created the row first
        db.session.rollback()
        raise DuplicateBooking("You already have an appointment on this interval")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Appointment %s %s (user=%s interval=%s)",
        result.appointment.id, "resumed" if result.resumed else "booked", user_id, interval_id,
    )
    return result


def _book(user_id, interval_id, note) -> BookingResult:
    user = _lock_user(user_id)
    if user is None:
        raise NotFound("User not found")
    if not user.is_active:
        raise Forbidden("Your account is disabled")

    interval = db.session.get(Interval, interval_id, populate_existing=True)
    if interval is None or not interval.is_active:
        raise NotFound("Interval not available")
    if interval.capacity_remaining <= 0:
        raise SlotUnavailable("No places left on this interval", interval_id=interval.id)

    week_start, week_end = week_window(interval.date)

    existing = Appointment.query.filter_by(user_id=user.id, interval_id=interval.id).first()
    if existing is not None and existing.status == CONFIRMED:
        raise DuplicateBooking("You already have a confirmed appointment on this interval")

    if has_confirmed_in_week(_confirmed_appointments(user.id), interval.date):
        _raise_week_limit(week_start, week_end)

    if existing is not None:
        if existing.status != CANCELLED:
            raise DuplicateBooking(
                f"You already have a {existing.status} appointment on this interval"
            )
        return _resume(existing, interval, note, week_start, week_end)

    if user.used_passes >= user.max_allowed_passes:
        raise PassLimitExceeded(
            f"You have reached your limit of {user.max_allowed_passes} visits",
            used_passes=user.used_passes,
            max_allowed_passes=user.max_allowed_passes,
        )

    appt = Appointment(
        user_id=user.id,
        interval_id=interval.id,
        status=CONFIRMED,
        note=note,
    )
    _copy_interval(appt, interval)
    db.session.add(appt)
    db.session.flush()

    capacity_ledger.reserve(interval.id)
    return BookingResult(appointment=appt, resumed=False)


def _resume(appt: Appointment, interval: Interval, note, week_start, week_end) -> BookingResult:
    # Resuming skips the new-booking path but still re-checks live capacity and
    # every confirmed appointment of the week at this exact moment.
    interval = db.session.get(Interval, interval.id, populate_existing=True)
    if interval.capacity_remaining <= 0:
        raise SlotUnavailable("This interval is no longer available", interval_id=interval.id)

    if has_confirmed_in_week(_confirmed_appointments(appt.user_id), interval.date):
        _raise_week_limit(week_start, week_end)

    appt.status = CONFIRMED
    appt.cancelled_at = None
    appt.note = note or appt.note
    _copy_interval(appt, interval)
    db.session.flush()

    capacity_ledger.reserve(interval.id)
    return BookingResult(appointment=appt, resumed=True)


def cancel(appointment_id: int, caller_id: int, caller_roles=()) -> Appointment:
    try:
        appt = db.session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFound("Appointment not found")

        if appt.user_id != caller_id and not ELEVATED_ROLES.intersection(caller_roles):
            raise Forbidden("Access denied")

        # Conditional transition: two concurrent cancels release capacity once
        result = db.session.execute(
            update(Appointment)
            .where(Appointment.id == appt.id, Appointment.status == CONFIRMED)
            .values(status=CANCELLED, cancelled_at=datetime.utcnow(), updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.refresh(appt)
            raise InvalidStatusTransition(
                f"Appointment is {appt.status} and cannot be cancelled",
                status=appt.status,
            )

        capacity_ledger.release(appt.interval_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(appt)
    logger.info("Appointment %s cancelled by user %s", appt.id, caller_id)
    return appt


def list_for_user(user_id: int):
    return (
        Appointment.query
        .filter_by(user_id=user_id)
        .order_by(Appointment.created_at.desc(), Appointment.id.desc())
        .all()
    )


def list_all(status=None, limit=500):
    q = Appointment.query
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Appointment.created_at.desc(), Appointment.id.desc()).limit(limit).all()
