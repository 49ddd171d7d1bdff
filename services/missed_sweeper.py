"""
Marks stale confirmed appointments as missed.

An appointment is missed when it is still ``confirmed``, staff never
validated it, and its end time is more than the grace period in the past.
The transition is a conditional update on ``status = 'confirmed'`` so two
passes running at the same time (scheduler tick + on-demand call) transition
and release each appointment exactly once.
"""
import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import and_, or_, update

from models import db
from models.appointment import Appointment, CONFIRMED, MISSED
from services import capacity_ledger

logger = logging.getLogger(__name__)


def missed_cutoff(now=None, grace_minutes=None) -> datetime:
    if now is None:
        now = datetime.now()
    if grace_minutes is None:
        grace_minutes = current_app.config.get("MISSED_GRACE_MINUTES", 60)
    return now - timedelta(minutes=grace_minutes)


def stale_filter(cutoff: datetime):
    # Past days OR today's appointments that ended before the cutoff
    return and_(
        Appointment.status == CONFIRMED,
        Appointment.validated_by_admin.is_(False),
        or_(
            Appointment.appointment_date < cutoff.date(),
            and_(
                Appointment.appointment_date == cutoff.date(),
                Appointment.end_time < cutoff.time(),
            ),
        ),
    )


def sweep_missed_appointments(now=None, grace_minutes=None, release_capacity=None) -> int:
    """
    Runs one pass and returns how many appointments this pass marked missed.
    """
    if release_capacity is None:
        release_capacity = current_app.config.get("MISSED_RELEASES_CAPACITY", True)
    cutoff = missed_cutoff(now, grace_minutes)

    candidates = (
        db.session.query(Appointment.id, Appointment.interval_id)
        .filter(stale_filter(cutoff))
        .order_by(Appointment.id.asc())
        .all()
    )

    marked = 0
    try:
        for appointment_id, interval_id in candidates:
            result = db.session.execute(
                update(Appointment)
                .where(
                    Appointment.id == appointment_id,
                    Appointment.status == CONFIRMED,
                    Appointment.validated_by_admin.is_(False),
                )
                .values(status=MISSED, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # already handled by another pass, cancelled or validated meanwhile
                continue
            marked += 1
            if release_capacity:
                capacity_ledger.release(interval_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    # bulk updates bypassed the identity map
    db.session.expire_all()

    if marked:
        logger.info("%s appointments marked as missed (cutoff=%s)", marked, cutoff.isoformat())
    return marked
