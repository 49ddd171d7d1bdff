"""
Remaining-capacity counter of an interval.

Both operations are single conditional UPDATE statements so the check and the
write happen atomically in the database. They never commit: the caller's
transaction also writes the matching appointment status.
"""
from sqlalchemy import update

from models import db
from models.interval import Interval
from services.errors import NotFound, SlotUnavailable


def _refresh(interval_id: int):
    return db.session.get(Interval, interval_id, populate_existing=True)


def reserve(interval_id: int) -> Interval:
    result = db.session.execute(
        update(Interval)
        .where(
            Interval.id == interval_id,
            Interval.is_active.is_(True),
            Interval.capacity_remaining > 0,
        )
        .values(capacity_remaining=Interval.capacity_remaining - 1)
        .execution_options(synchronize_session=False)
    )
    interval = _refresh(interval_id)
    if interval is None:
        raise NotFound("Interval not found")
    if result.rowcount != 1:
        raise SlotUnavailable("No places left on this interval", interval_id=interval_id)
    return interval


def release(interval_id: int) -> Interval:
    # WHERE clause is the ceiling: releasing more than was reserved is a no-op
    db.session.execute(
        update(Interval)
        .where(
            Interval.id == interval_id,
            Interval.capacity_remaining < Interval.capacity_total,
        )
        .values(capacity_remaining=Interval.capacity_remaining + 1)
        .execution_options(synchronize_session=False)
    )
    interval = _refresh(interval_id)
    if interval is None:
        raise NotFound("Interval not found")
    return interval
