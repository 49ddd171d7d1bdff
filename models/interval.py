from datetime import datetime
from models.db import db

class Interval(db.Model):
    __tablename__ = "intervals"

    id = db.Column(db.Integer, primary_key=True)

    # null when the interval was created directly instead of generated from a block
    block_id = db.Column(
        db.Integer,
        db.ForeignKey("time_blocks.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    capacity_total = db.Column(db.Integer, nullable=False)
    # only services.capacity_ledger writes this after creation
    capacity_remaining = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    block = db.relationship("TimeBlock", back_populates="intervals")
    appointments = db.relationship(
        "Appointment",
        back_populates="interval",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint("capacity_remaining >= 0", name="ck_interval_remaining_floor"),
        db.CheckConstraint("capacity_remaining <= capacity_total", name="ck_interval_remaining_ceiling"),
        db.UniqueConstraint("block_id", "start_time", name="uq_interval_block_start"),
    )
