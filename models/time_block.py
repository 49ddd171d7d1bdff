from datetime import datetime
from models.db import db

class TimeBlock(db.Model):
    """Admin-defined opening window (e.g. 08:00-12:00) split into intervals."""
    __tablename__ = "time_blocks"

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    interval_minutes = db.Column(db.Integer, nullable=False, default=15)
    interval_capacity = db.Column(db.Integer, nullable=False, default=3)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    intervals = db.relationship(
        "Interval",
        back_populates="block",
        cascade="all, delete-orphan",
        order_by="Interval.start_time",
    )

    __table_args__ = (
        db.CheckConstraint("interval_minutes > 0", name="ck_time_block_interval_minutes"),
        db.CheckConstraint("interval_capacity > 0", name="ck_time_block_interval_capacity"),
    )
