from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import slot_catalog
from services.errors import ValidationError
from utils.audit import log_event
from utils.auth_context import login_required
from utils.parsing import parse_date, parse_int, parse_time
from utils.serializers import block_to_dict, interval_to_dict

slots_bp = Blueprint("slots", __name__, url_prefix="/slots")


# ---------- ADMIN: parent time blocks ----------
@slots_bp.post("")
@require_roles("ADMIN")
def create_block():
    data = request.get_json(silent=True) or {}
    block = slot_catalog.create_block(
        parse_date(data.get("date")),
        parse_time(data.get("start_time"), "start_time"),
        parse_time(data.get("end_time"), "end_time"),
        interval_minutes=parse_int(data.get("interval_minutes"), "interval_minutes"),
        interval_capacity=parse_int(data.get("interval_capacity"), "interval_capacity"),
    )
    log_event("BLOCK_CREATE", user_id=g.user.id, entity="time_block", entity_id=block.id)
    return jsonify(block_to_dict(block)), 201


@slots_bp.get("")
@login_required
def list_blocks():
    return jsonify([block_to_dict(b) for b in slot_catalog.list_blocks()]), 200


@slots_bp.delete("/<int:block_id>")
@require_roles("ADMIN")
def delete_block(block_id: int):
    slot_catalog.delete_block(block_id)
    log_event("BLOCK_DELETE", user_id=g.user.id, entity="time_block", entity_id=block_id)
    return jsonify(message="Deleted"), 200


@slots_bp.post("/<int:block_id>/generate-intervals")
@require_roles("ADMIN")
def generate_intervals(block_id: int):
    intervals = slot_catalog.generate_intervals(block_id)
    log_event(
        "INTERVALS_GENERATE",
        user_id=g.user.id,
        entity="time_block",
        entity_id=block_id,
        metadata={"count": len(intervals)},
    )
    return jsonify(
        message=f"{len(intervals)} intervals generated",
        count=len(intervals),
        intervals=[interval_to_dict(i) for i in intervals],
    ), 201


# ---------- intervals ----------
@slots_bp.get("/intervals")
@login_required
def list_intervals():
    # optional filter: date (YYYY-MM-DD)
    date_str = request.args.get("date")
    day = parse_date(date_str) if date_str else None
    intervals = slot_catalog.list_intervals(day=day)
    return jsonify([interval_to_dict(i) for i in intervals]), 200


@slots_bp.post("/intervals")
@require_roles("ADMIN")
def create_interval():
    data = request.get_json(silent=True) or {}
    capacity = parse_int(data.get("capacity"), "capacity")
    if capacity is None:
        raise ValidationError("capacity is required")
    interval = slot_catalog.create_interval(
        parse_date(data.get("date")),
        parse_time(data.get("start_time"), "start_time"),
        parse_time(data.get("end_time"), "end_time"),
        capacity,
    )
    log_event("INTERVAL_CREATE", user_id=g.user.id, entity="interval", entity_id=interval.id)
    return jsonify(interval_to_dict(interval)), 201


@slots_bp.patch("/intervals/<int:interval_id>")
@require_roles("ADMIN")
def update_interval(interval_id: int):
    data = request.get_json(silent=True) or {}
    remaining = None
    if "capacity_remaining" in data:
        remaining = parse_int(data["capacity_remaining"], "capacity_remaining")
    interval = slot_catalog.update_interval(
        interval_id,
        is_active=data.get("is_active"),
        capacity_remaining=remaining,
    )

    log_event(
        "INTERVAL_UPDATE",
        user_id=g.user.id,
        entity="interval",
        entity_id=interval_id,
        metadata=data,
    )
    return jsonify(interval_to_dict(interval)), 200


@slots_bp.delete("/intervals/<int:interval_id>")
@require_roles("ADMIN")
def delete_interval(interval_id: int):
    slot_catalog.delete_interval(interval_id)
    log_event("INTERVAL_DELETE", user_id=g.user.id, entity="interval", entity_id=interval_id)
    return jsonify(message="Deleted"), 200
