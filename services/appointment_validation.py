"""
Staff side of the appointment lifecycle and student eligibility.

Approving an appointment consumes one of the student's passes; the booking
engine only reads that counter.
"""
from datetime import datetime

from models import db
from models.appointment import (
    ADMIN_APPROVED,
    ADMIN_REJECTED,
    Appointment,
    COMPLETED,
    CONFIRMED,
    MISSED,
)
from models.interval import Interval
from models.user import JUSTIFICATIF_STATUSES, User
from services.errors import InvalidStatusTransition, NotFound, ValidationError
from services.missed_sweeper import sweep_missed_appointments

VALIDATION_STATUSES = (ADMIN_APPROVED, ADMIN_REJECTED, COMPLETED)
VALIDATABLE_FROM = (CONFIRMED, MISSED)


def validate_appointment(appointment_id: int, status: str, admin_note=None) -> Appointment:
    if status not in VALIDATION_STATUSES:
        raise ValidationError(
            "status must be one of: " + ", ".join(VALIDATION_STATUSES)
        )

    appt = db.session.get(Appointment, appointment_id)
    if appt is None:
        raise NotFound("Appointment not found")
    if appt.status not in VALIDATABLE_FROM:
        raise InvalidStatusTransition(
            f"Appointment is {appt.status} and cannot be validated",
            status=appt.status,
        )

    now = datetime.utcnow()
    appt.status = status
    appt.admin_note = admin_note
    appt.validated_by_admin = status == ADMIN_APPROVED
    appt.validated_at = now

    if status == ADMIN_APPROVED:
        user = db.session.get(User, appt.user_id)
        user.used_passes = (user.used_passes or 0) + 1
        user.last_validation_at = now

    db.session.commit()
    return appt


def list_unvalidated(now=None):
    """Confirmed appointments of active students that staff still need to check in."""
    if now is None:
        now = datetime.now()
    sweep_missed_appointments(now=now)

    return (
        Appointment.query
        .join(User, Appointment.user_id == User.id)
        .join(Interval, Appointment.interval_id == Interval.id)
        .filter(
            Appointment.status == CONFIRMED,
            Appointment.validated_by_admin.is_(False),
            Appointment.appointment_date <= now.date(),
            User.is_active.is_(True),
        )
        .order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc())
        .all()
    )


def set_user_active(user_id: int, active: bool) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    user.is_active = bool(active)
    db.session.commit()
    return user


def set_max_allowed_passes(user_id: int, max_allowed_passes) -> User:
    if not isinstance(max_allowed_passes, int) or isinstance(max_allowed_passes, bool) or max_allowed_passes < 0:
        raise ValidationError("max_allowed_passes must be a non-negative integer")
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    user.max_allowed_passes = max_allowed_passes
    user.last_validation_at = datetime.utcnow()
    db.session.commit()
    return user


def review_justificatif(user_id: int, status: str, comment=None) -> User:
    if status not in JUSTIFICATIF_STATUSES:
        raise ValidationError(
            "status must be one of: " + ", ".join(JUSTIFICATIF_STATUSES)
        )
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    user.justificatif_status = status
    user.justificatif_comment = comment or None
    # only a validated proof of status unlocks booking
    user.is_active = status == "validated"
    db.session.commit()
    return user
