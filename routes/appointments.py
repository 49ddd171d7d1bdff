from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import booking_engine
from services.errors import BookingError, ValidationError
from utils.audit import log_event
from utils.auth_context import login_required
from utils.parsing import parse_int
from utils.serializers import appointment_to_dict

appointments_bp = Blueprint("appointments", __name__, url_prefix="/appointments")


# ---------- STUDENTS: book or resume an interval ----------
@appointments_bp.post("")
@login_required
def book():
    data = request.get_json(silent=True) or {}
    interval_id = parse_int(data.get("interval_id"), "interval_id")
    if not interval_id:
        raise ValidationError("interval_id required")
    note = data.get("note")
    if note is not None and (not isinstance(note, str) or len(note) > 255):
        raise ValidationError("note must be a string of at most 255 characters")

    try:
        result = booking_engine.book(g.user.id, interval_id, note=note)
    except BookingError as e:
        log_event(
            "APPOINTMENT_BOOK_FAIL",
            user_id=g.user.id,
            entity="interval",
            entity_id=interval_id,
            metadata={"code": e.code},
        )
        raise

    appt = result.appointment
    log_event(
        "APPOINTMENT_RESUME" if result.resumed else "APPOINTMENT_BOOK",
        user_id=g.user.id,
        entity="appointment",
        entity_id=appt.id,
        metadata={"interval_id": interval_id},
    )
    return jsonify(
        id=appt.id,
        status=appt.status,
        interval_id=appt.interval_id,
        resumed=result.resumed,
        message=result.message,
    ), (200 if result.resumed else 201)


# ---------- owner or staff: cancel ----------
@appointments_bp.delete("/<int:appointment_id>")
@login_required
def cancel(appointment_id: int):
    appt = booking_engine.cancel(appointment_id, g.user.id, g.user.role_names())
    log_event("APPOINTMENT_CANCEL", user_id=g.user.id, entity="appointment", entity_id=appt.id)
    return jsonify(id=appt.id, status=appt.status, message="Cancelled"), 200


# ---------- STUDENTS: view my appointments ----------
@appointments_bp.get("/me")
@login_required
def my_appointments():
    rows = booking_engine.list_for_user(g.user.id)
    return jsonify([appointment_to_dict(a) for a in rows]), 200


# ---------- STAFF/ADMIN: list all appointments ----------
@appointments_bp.get("")
@require_roles("ADMIN", "STAFF")
def list_all():
    status = request.args.get("status")
    rows = booking_engine.list_all(status=status)
    return jsonify([appointment_to_dict(a, with_user=True) for a in rows]), 200
