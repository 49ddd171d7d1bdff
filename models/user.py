from datetime import datetime
from models.db import db

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

JUSTIFICATIF_STATUSES = ("pending", "validated", "rejected")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(120), nullable=True)
    phone_number = db.Column(db.String(30), nullable=True)
    school = db.Column(db.String(160), nullable=True)
    field_of_study = db.Column(db.String(120), nullable=True)

    # reference to the uploaded proof of student status (storage is external)
    justificatif_ref = db.Column(db.String(255), nullable=True)
    justificatif_status = db.Column(db.String(20), nullable=False, default="pending")
    justificatif_comment = db.Column(db.String(255), nullable=True)

    # eligibility snapshot read by the booking engine
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    used_passes = db.Column(db.Integer, default=0, nullable=False)
    max_allowed_passes = db.Column(db.Integer, default=2, nullable=False)
    last_validation_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")

    def role_names(self) -> set:
        return {r.name for r in self.roles}


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # e.g. STUDENT, STAFF, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
