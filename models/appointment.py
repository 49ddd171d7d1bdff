from datetime import datetime
from models.db import db

CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"
ADMIN_APPROVED = "admin_approved"
ADMIN_REJECTED = "admin_rejected"
MISSED = "missed"

APPOINTMENT_STATUSES = (CONFIRMED, CANCELLED, COMPLETED, ADMIN_APPROVED, ADMIN_REJECTED, MISSED)


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    interval_id = db.Column(
        db.Integer,
        db.ForeignKey("intervals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # copied from the interval at booking time
    appointment_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=CONFIRMED, index=True)

    validated_by_admin = db.Column(db.Boolean, default=False, nullable=False)
    validated_at = db.Column(db.DateTime, nullable=True)

    note = db.Column(db.String(255), nullable=True)
    admin_note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User")
    interval = db.relationship("Interval", back_populates="appointments")

    __table_args__ = (
        # One row per (user, interval); a cancelled row is resumed instead of duplicated
        db.UniqueConstraint("user_id", "interval_id", name="uq_appointment_user_interval"),
    )
