def _hhmm(value):
    return value.strftime("%H:%M") if value else None


def _iso(value):
    return value.isoformat() if value else None


def interval_to_dict(i) -> dict:
    return {
        "id": i.id,
        "block_id": i.block_id,
        "date": i.date.isoformat(),
        "start_time": _hhmm(i.start_time),
        "end_time": _hhmm(i.end_time),
        "capacity_total": i.capacity_total,
        "capacity_remaining": i.capacity_remaining,
        "is_active": i.is_active,
    }


def block_to_dict(b, with_intervals=False) -> dict:
    out = {
        "id": b.id,
        "date": b.date.isoformat(),
        "start_time": _hhmm(b.start_time),
        "end_time": _hhmm(b.end_time),
        "interval_minutes": b.interval_minutes,
        "interval_capacity": b.interval_capacity,
        "is_active": b.is_active,
        "interval_count": len(b.intervals),
    }
    if with_intervals:
        out["intervals"] = [interval_to_dict(i) for i in b.intervals]
    return out


def appointment_to_dict(a, with_user=False) -> dict:
    out = {
        "id": a.id,
        "user_id": a.user_id,
        "interval_id": a.interval_id,
        "status": a.status,
        "date": a.appointment_date.isoformat(),
        "start_time": _hhmm(a.start_time),
        "end_time": _hhmm(a.end_time),
        "note": a.note,
        "admin_note": a.admin_note,
        "validated_by_admin": a.validated_by_admin,
        "validated_at": _iso(a.validated_at),
        "created_at": _iso(a.created_at),
        "cancelled_at": _iso(a.cancelled_at),
        "interval": interval_to_dict(a.interval) if a.interval else None,
    }
    if with_user and a.user:
        out["user"] = {
            "id": a.user.id,
            "email": a.user.email,
            "full_name": a.user.full_name,
            "is_active": a.user.is_active,
            "used_passes": a.user.used_passes,
            "max_allowed_passes": a.user.max_allowed_passes,
        }
    return out


def user_to_dict(u) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "phone_number": u.phone_number,
        "school": u.school,
        "field_of_study": u.field_of_study,
        "roles": sorted(u.role_names()),
        "justificatif_ref": u.justificatif_ref,
        "justificatif_status": u.justificatif_status,
        "justificatif_comment": u.justificatif_comment,
        "is_active": u.is_active,
        "used_passes": u.used_passes,
        "max_allowed_passes": u.max_allowed_passes,
        "last_validation_at": _iso(u.last_validation_at),
        "created_at": _iso(u.created_at),
    }
