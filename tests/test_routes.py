from datetime import timedelta

from conftest import MONDAY, PASSWORD
from models.audit_log import AuditLog


def _client_for(app, email):
    c = app.test_client()
    resp = c.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return c


def _generate(app, make_user, start="08:00", end="09:00"):
    make_user(email="admin@example.org", roles=("ADMIN",))
    admin = _client_for(app, "admin@example.org")
    resp = admin.post("/slots", json={
        "date": MONDAY.isoformat(),
        "start_time": start,
        "end_time": end,
        "interval_minutes": 15,
        "interval_capacity": 3,
    })
    assert resp.status_code == 201, resp.get_json()
    block_id = resp.get_json()["id"]

    resp = admin.post(f"/slots/{block_id}/generate-intervals")
    assert resp.status_code == 201, resp.get_json()
    return admin, block_id, resp.get_json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_register_login_me(client):
    resp = client.post("/auth/register", json={
        "email": "New.Student@Example.org",
        "password": PASSWORD,
        "full_name": "New Student",
        "school": "Le Mans Université",
        "justificatif_ref": "justificatif-123.pdf",
    })
    assert resp.status_code == 201

    resp = client.post("/auth/login", json={"email": "new.student@example.org", "password": PASSWORD})
    assert resp.status_code == 200

    me = client.get("/auth/me").get_json()
    assert me["email"] == "new.student@example.org"
    assert me["roles"] == ["STUDENT"]
    assert me["justificatif_status"] == "pending"
    assert me["max_allowed_passes"] == 2


def test_register_rejects_duplicates_and_short_passwords(client):
    assert client.post("/auth/register", json={"email": "a@example.org", "password": "short"}).status_code == 400
    assert client.post("/auth/register", json={"email": "a@example.org", "password": PASSWORD}).status_code == 201
    assert client.post("/auth/register", json={"email": "a@example.org", "password": PASSWORD}).status_code == 409


def test_bad_credentials(client, make_user):
    make_user()
    resp = client.post("/auth/login", json={"email": "student@example.org", "password": "wrong-password"})
    assert resp.status_code == 401


def test_anonymous_requests_are_rejected(client):
    assert client.get("/slots/intervals").status_code == 401
    assert client.post("/appointments", json={"interval_id": 1}).status_code == 401


def test_generation_endpoint_and_availability(app, make_user):
    admin, block_id, body = _generate(app, make_user)

    assert body["count"] == 4
    assert [i["start_time"] for i in body["intervals"]] == ["08:00", "08:15", "08:30", "08:45"]
    assert all(i["capacity_remaining"] == 3 for i in body["intervals"])

    again = admin.post(f"/slots/{block_id}/generate-intervals")
    assert again.status_code == 409
    assert again.get_json()["code"] == "INTERVALS_ALREADY_GENERATED"

    listed = admin.get(f"/slots/intervals?date={MONDAY.isoformat()}").get_json()
    assert len(listed) == 4
    assert admin.get("/slots/intervals?date=2026-13-01").status_code == 400


def test_students_cannot_manage_slots(app, make_user, login, client):
    make_user()
    login("student@example.org")

    resp = client.post("/slots", json={"date": MONDAY.isoformat(), "start_time": "08:00", "end_time": "09:00"})
    assert resp.status_code == 403


def test_malformed_block_is_a_validation_error(app, make_user):
    make_user(email="admin@example.org", roles=("ADMIN",))
    admin = _client_for(app, "admin@example.org")

    resp = admin.post("/slots", json={"date": MONDAY.isoformat(), "start_time": "10:00", "end_time": "09:00"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"


def test_booking_flow_over_http(app, make_user):
    _, _, body = _generate(app, make_user)
    first, second = body["intervals"][0]["id"], body["intervals"][1]["id"]
    make_user(email="student@example.org")
    student = _client_for(app, "student@example.org")

    resp = student.post("/appointments", json={"interval_id": first, "note": "with a friend"})
    assert resp.status_code == 201
    booked = resp.get_json()
    assert booked["status"] == "confirmed"
    assert booked["interval_id"] == first
    assert booked["resumed"] is False

    dup = student.post("/appointments", json={"interval_id": first})
    assert dup.status_code == 409
    assert dup.get_json()["code"] == "DUPLICATE_BOOKING"

    week = student.post("/appointments", json={"interval_id": second})
    assert week.status_code == 409
    assert week.get_json()["code"] == "WEEKLY_LIMIT_EXCEEDED"
    assert week.get_json()["week_start"] == "2026-11-02"
    assert week.get_json()["week_end"] == "2026-11-08"

    cancel = student.delete(f"/appointments/{booked['id']}")
    assert cancel.status_code == 200
    assert cancel.get_json()["status"] == "cancelled"

    again = student.delete(f"/appointments/{booked['id']}")
    assert again.status_code == 409
    assert again.get_json()["code"] == "INVALID_STATUS_TRANSITION"

    resumed = student.post("/appointments", json={"interval_id": first})
    assert resumed.status_code == 200
    assert resumed.get_json()["resumed"] is True
    assert resumed.get_json()["message"] == "Appointment resumed"

    mine = student.get("/appointments/me").get_json()
    assert len(mine) == 1
    assert mine[0]["status"] == "confirmed"
    assert mine[0]["interval"]["capacity_remaining"] == 2
    assert mine[0]["note"] == "with a friend"

    actions = {row.action for row in AuditLog.query.all()}
    assert {"APPOINTMENT_BOOK", "APPOINTMENT_BOOK_FAIL", "APPOINTMENT_CANCEL", "APPOINTMENT_RESUME"} <= actions


def test_full_interval_and_pass_limit_errors(app, make_user, make_interval):
    full = make_interval(capacity_remaining=0)
    other = make_interval(day=MONDAY + timedelta(days=7))
    make_user(email="student@example.org", used_passes=2, max_allowed_passes=2)
    student = _client_for(app, "student@example.org")

    resp = student.post("/appointments", json={"interval_id": full.id})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "SLOT_UNAVAILABLE"

    resp = student.post("/appointments", json={"interval_id": other.id})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "PASS_LIMIT_EXCEEDED"

    assert student.post("/appointments", json={}).status_code == 400
    assert student.post("/appointments", json={"interval_id": 999}).status_code == 404


def test_inactive_student_gets_forbidden(app, make_user, make_interval):
    interval = make_interval()
    make_user(email="student@example.org", is_active=False)
    student = _client_for(app, "student@example.org")

    resp = student.post("/appointments", json={"interval_id": interval.id})
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "FORBIDDEN"


def test_other_students_cannot_cancel(app, make_user, make_interval):
    interval = make_interval()
    make_user(email="owner@example.org")
    make_user(email="other@example.org")
    owner = _client_for(app, "owner@example.org")
    other = _client_for(app, "other@example.org")

    appt_id = owner.post("/appointments", json={"interval_id": interval.id}).get_json()["id"]

    assert other.delete(f"/appointments/{appt_id}").status_code == 403
    assert other.get("/appointments").status_code == 403


def test_staff_validation_endpoints(app, make_user, make_interval):
    interval = make_interval()
    student = make_user(email="student@example.org")
    make_user(email="staff@example.org", roles=("STAFF",))
    student_client = _client_for(app, "student@example.org")
    staff = _client_for(app, "staff@example.org")

    appt_id = student_client.post("/appointments", json={"interval_id": interval.id}).get_json()["id"]

    all_rows = staff.get("/appointments").get_json()
    assert all_rows[0]["user"]["email"] == "student@example.org"

    resp = staff.patch(f"/admin/appointments/{appt_id}/validate", json={"status": "admin_approved", "admin_note": "ok"})
    assert resp.status_code == 200
    assert resp.get_json()["appointment"]["validated_by_admin"] is True

    users = staff.get("/admin/users?role=STUDENT").get_json()
    assert [u["used_passes"] for u in users if u["id"] == student.id] == [1]

    # max passes is admin-only
    assert staff.patch(f"/admin/users/{student.id}/passes", json={"max_allowed_passes": 4}).status_code == 403

    resp = staff.patch(f"/admin/users/{student.id}/justificatif", json={"status": "rejected", "comment": "expired card"})
    assert resp.status_code == 200
    assert resp.get_json()["is_active"] is False

    resp = staff.post("/admin/appointments/mark-missed")
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 0


def test_admin_interval_override_and_delete(app, make_user):
    admin, block_id, body = _generate(app, make_user)
    interval_id = body["intervals"][0]["id"]

    resp = admin.patch(f"/slots/intervals/{interval_id}", json={"is_active": False})
    assert resp.status_code == 200
    assert resp.get_json()["is_active"] is False

    resp = admin.patch(f"/slots/intervals/{interval_id}", json={"capacity_remaining": 9})
    assert resp.status_code == 400

    assert admin.delete(f"/slots/{block_id}").status_code == 200
    assert admin.get("/slots").get_json() == []
    assert admin.delete(f"/slots/{block_id}").status_code == 404


def test_csrf_is_enforced_for_authenticated_writes(app, make_user, make_interval):
    interval = make_interval()
    make_user(email="student@example.org")
    student = _client_for(app, "student@example.org")
    app.config["CSRF_ENABLED"] = True

    resp = student.post("/appointments", json={"interval_id": interval.id})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "CSRF validation failed"

    token = student.get_cookie("csrf_token").value
    resp = student.post("/appointments", json={"interval_id": interval.id}, headers={"X-CSRF-Token": token})
    assert resp.status_code == 201


def test_rejected_interval_update_changes_nothing(app, make_user):
    admin, _, body = _generate(app, make_user)
    interval_id = body["intervals"][0]["id"]

    resp = admin.patch(f"/slots/intervals/{interval_id}", json={"is_active": False, "capacity_remaining": 9})
    assert resp.status_code == 400

    listed = admin.get(f"/slots/intervals?date={MONDAY.isoformat()}").get_json()
    assert interval_id in [i["id"] for i in listed]
    assert admin.patch(f"/slots/intervals/{interval_id}", json={}).status_code == 400
