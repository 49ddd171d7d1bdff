"""
Slot catalog: parent time blocks and the bookable intervals generated from them.

Regenerating a block that already has intervals is refused
(``IntervalsAlreadyGenerated``). Deleting and recreating intervals would also
delete the appointments attached to them, so admins must delete the block
explicitly if they want a new layout.
"""
import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.interval import Interval
from models.time_block import TimeBlock
from services.errors import IntervalsAlreadyGenerated, NotFound, ValidationError

logger = logging.getLogger(__name__)


def _check_window(start_time, end_time):
    if end_time <= start_time:
        raise ValidationError("end_time must be after start_time")


def _check_capacity(capacity):
    if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
        raise ValidationError("capacity must be a positive integer")


def create_block(day, start_time, end_time, interval_minutes=None, interval_capacity=None) -> TimeBlock:
    if interval_minutes is None:
        interval_minutes = current_app.config.get("DEFAULT_INTERVAL_MINUTES", 15)
    if interval_capacity is None:
        interval_capacity = current_app.config.get("DEFAULT_INTERVAL_CAPACITY", 3)

    _check_window(start_time, end_time)
    _check_capacity(interval_capacity)
    if not isinstance(interval_minutes, int) or isinstance(interval_minutes, bool) or interval_minutes <= 0:
        raise ValidationError("interval_minutes must be a positive integer")

    window = datetime.combine(day, end_time) - datetime.combine(day, start_time)
    if window < timedelta(minutes=interval_minutes):
        raise ValidationError("interval_minutes is longer than the block window")

    block = TimeBlock(
        date=day,
        start_time=start_time,
        end_time=end_time,
        interval_minutes=interval_minutes,
        interval_capacity=interval_capacity,
    )
    db.session.add(block)
    db.session.commit()
    return block


def split_window(day, start_time, end_time, minutes: int):
    """
    Yields (start, end) time pairs of consecutive ``minutes``-long steps.
    A trailing step that would run past ``end_time`` is dropped.
    """
    step = timedelta(minutes=minutes)
    cursor = datetime.combine(day, start_time)
    stop = datetime.combine(day, end_time)
    while cursor + step <= stop:
        yield cursor.time(), (cursor + step).time()
        cursor += step


def generate_intervals(block_id: int) -> list:
    try:
        intervals = _generate(block_id)
        db.session.commit()
    except IntegrityError:
        # uq_interval_block_start: a concurrent call inserted the layout first
        db.session.rollback()
        raise IntervalsAlreadyGenerated("Intervals already generated for this block", block_id=block_id)
    except Exception:
        db.session.rollback()
        raise

    logger.info("Generated %s intervals for block %s", len(intervals), block_id)
    return intervals


def _generate(block_id: int) -> list:
    block = db.session.get(TimeBlock, block_id, with_for_update=True)
    if not block:
        raise NotFound("Time block not found")

    existing = db.session.query(Interval.id).filter_by(block_id=block.id).count()
    if existing:
        raise IntervalsAlreadyGenerated(
            "Intervals already generated for this block",
            block_id=block.id,
            existing=existing,
        )

    intervals = [
        Interval(
            block=block,
            date=block.date,
            start_time=start,
            end_time=end,
            capacity_total=block.interval_capacity,
            capacity_remaining=block.interval_capacity,
            is_active=True,
        )
        for start, end in split_window(block.date, block.start_time, block.end_time, block.interval_minutes)
    ]
    db.session.add_all(intervals)
    db.session.flush()
    return intervals


def create_interval(day, start_time, end_time, capacity) -> Interval:
    _check_window(start_time, end_time)
    _check_capacity(capacity)

    interval = Interval(
        date=day,
        start_time=start_time,
        end_time=end_time,
        capacity_total=capacity,
        capacity_remaining=capacity,
        is_active=True,
    )
    db.session.add(interval)
    db.session.commit()
    return interval


def delete_block(block_id: int) -> None:
    # ORM cascades remove appointments, then intervals, then the block in one commit
    block = db.session.get(TimeBlock, block_id)
    if not block:
        raise NotFound("Time block not found")
    try:
        db.session.delete(block)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def delete_interval(interval_id: int) -> None:
    interval = db.session.get(Interval, interval_id)
    if not interval:
        raise NotFound("Interval not found")
    try:
        db.session.delete(interval)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def list_blocks():
    return (
        TimeBlock.query
        .order_by(TimeBlock.date.asc(), TimeBlock.start_time.asc())
        .all()
    )


def list_intervals(day=None, include_inactive=False):
    q = Interval.query
    if not include_inactive:
        q = q.filter(Interval.is_active.is_(True))
    if day is not None:
        q = q.filter(Interval.date == day)
    return q.order_by(Interval.date.asc(), Interval.start_time.asc()).all()


def update_interval(interval_id: int, is_active=None, capacity_remaining=None) -> Interval:
    """
    Admin update of an interval. Both fields are validated before anything is
    written, so a rejected request leaves the interval untouched.
    ``capacity_remaining`` is bounded by ``capacity_total``.
    """
    interval = db.session.get(Interval, interval_id)
    if not interval:
        raise NotFound("Interval not found")
    if is_active is None and capacity_remaining is None:
        raise ValidationError("Nothing to update (is_active, capacity_remaining)")

    if is_active is not None and not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean")
    if capacity_remaining is not None:
        if not isinstance(capacity_remaining, int) or isinstance(capacity_remaining, bool):
            raise ValidationError("capacity_remaining must be an integer")
        if capacity_remaining < 0 or capacity_remaining > interval.capacity_total:
            raise ValidationError(
                f"capacity_remaining must be between 0 and {interval.capacity_total}"
            )

    if is_active is not None:
        interval.is_active = is_active
    if capacity_remaining is not None:
        interval.capacity_remaining = capacity_remaining
    db.session.commit()
    return interval


def set_interval_active(interval_id: int, active: bool) -> Interval:
    return update_interval(interval_id, is_active=bool(active))


def override_capacity(interval_id: int, remaining: int) -> Interval:
    return update_interval(interval_id, capacity_remaining=remaining)
