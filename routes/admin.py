from flask import Blueprint, jsonify, g, request

from models.user import User, Role
from security.rbac import require_roles
from services import appointment_validation
from services.errors import ValidationError
from services.missed_sweeper import sweep_missed_appointments
from utils.audit import log_event
from utils.parsing import parse_int
from utils.serializers import appointment_to_dict, user_to_dict

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# ---------- appointment validation ----------
@admin_bp.get("/appointments/unvalidated")
@require_roles("ADMIN", "STAFF")
def unvalidated_appointments():
    rows = appointment_validation.list_unvalidated()
    return jsonify([appointment_to_dict(a, with_user=True) for a in rows]), 200


@admin_bp.patch("/appointments/<int:appointment_id>/validate")
@require_roles("ADMIN", "STAFF")
def validate_appointment(appointment_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    admin_note = (data.get("admin_note") or "").strip() or None

    appt = appointment_validation.validate_appointment(appointment_id, status, admin_note)
    log_event(
        "APPOINTMENT_VALIDATE",
        user_id=g.user.id,
        entity="appointment",
        entity_id=appointment_id,
        metadata={"status": status},
    )
    return jsonify(message="Appointment updated", appointment=appointment_to_dict(appt)), 200


@admin_bp.post("/appointments/mark-missed")
@require_roles("ADMIN", "STAFF")
def mark_missed():
    count = sweep_missed_appointments()
    log_event("APPOINTMENTS_MARK_MISSED", user_id=g.user.id, metadata={"count": count})
    return jsonify(message=f"{count} appointments marked as missed", count=count), 200


# ---------- student eligibility ----------
@admin_bp.get("/users")
@require_roles("ADMIN", "STAFF")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    justificatif = (request.args.get("justificatif_status") or "").strip().lower()

    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)
    if justificatif:
        q = q.filter(User.justificatif_status == justificatif)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify([user_to_dict(u) for u in users]), 200


@admin_bp.patch("/users/<int:user_id>/active")
@require_roles("ADMIN")
def set_user_active(user_id: int):
    data = request.get_json(silent=True) or {}
    active = data.get("is_active")
    if not isinstance(active, bool):
        raise ValidationError("is_active must be a boolean")

    user = appointment_validation.set_user_active(user_id, active)
    log_event("ADMIN_USER_ACTIVE", user_id=g.user.id, entity="user", entity_id=user_id, metadata={"is_active": active})
    return jsonify(user_to_dict(user)), 200


@admin_bp.patch("/users/<int:user_id>/passes")
@require_roles("ADMIN")
def set_user_passes(user_id: int):
    data = request.get_json(silent=True) or {}
    max_passes = parse_int(data.get("max_allowed_passes"), "max_allowed_passes")

    user = appointment_validation.set_max_allowed_passes(user_id, max_passes)
    log_event(
        "ADMIN_USER_PASSES",
        user_id=g.user.id,
        entity="user",
        entity_id=user_id,
        metadata={"max_allowed_passes": max_passes},
    )
    return jsonify(user_to_dict(user)), 200


@admin_bp.patch("/users/<int:user_id>/justificatif")
@require_roles("ADMIN", "STAFF")
def review_justificatif(user_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    comment = (data.get("comment") or "").strip() or None

    user = appointment_validation.review_justificatif(user_id, status, comment)
    log_event(
        "ADMIN_JUSTIFICATIF_REVIEW",
        user_id=g.user.id,
        entity="user",
        entity_id=user_id,
        metadata={"status": status},
    )
    return jsonify(user_to_dict(user)), 200
