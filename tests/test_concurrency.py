"""
Concurrent requests against a file-backed SQLite database.

In-memory SQLite is a single shared connection, so these tests use a database
file where every thread gets its own connection and transaction.
"""
import threading
import time as clock
from datetime import time, timedelta

import pytest

from app import create_app
from conftest import MONDAY, PASSWORD, TestingConfig
from models import db
from models.appointment import Appointment, CONFIRMED
from models.interval import Interval
from models.time_block import TimeBlock
from models.user import User
from security.password import hash_password
from services import booking_engine, slot_catalog
from services.errors import BookingError


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "episol.db")

    app = create_app(FileConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _add(app, *rows):
    with app.app_context():
        db.session.add_all(rows)
        db.session.commit()
        return [row.id for row in rows]


def _user(email):
    return User(email=email, password_hash=hash_password(PASSWORD))


def _interval(day, capacity=3):
    return Interval(
        date=day,
        start_time=time(8, 0),
        end_time=time(8, 15),
        capacity_total=capacity,
        capacity_remaining=capacity,
    )


def _race(app, calls):
    """Runs every (fn, *args) call in its own thread, released together."""
    barrier = threading.Barrier(len(calls))
    outcomes = []

    def run(fn, *args):
        with app.app_context():
            barrier.wait(timeout=5)
            try:
                fn(*args)
                outcomes.append("ok")
            except BookingError as e:
                outcomes.append(e.code)

    threads = [threading.Thread(target=run, args=call) for call in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return sorted(outcomes)


@pytest.fixture
def slow_week_read(monkeypatch):
    # Widen the gap between reading the week and writing the appointment
    read = booking_engine._confirmed_appointments

    def _slow(user_id):
        rows = read(user_id)
        clock.sleep(0.2)
        return rows

    monkeypatch.setattr(booking_engine, "_confirmed_appointments", _slow)


def test_same_user_two_tabs_get_one_appointment_per_week(file_app, slow_week_read):
    user_id, monday, wednesday = _add(
        file_app,
        _user("student@example.org"),
        _interval(MONDAY),
        _interval(MONDAY + timedelta(days=2)),
    )

    outcomes = _race(file_app, [
        (booking_engine.book, user_id, monday),
        (booking_engine.book, user_id, wednesday),
    ])

    assert outcomes == ["WEEKLY_LIMIT_EXCEEDED", "ok"]
    with file_app.app_context():
        assert Appointment.query.filter_by(user_id=user_id, status=CONFIRMED).count() == 1
        remaining = sorted(i.capacity_remaining for i in Interval.query.all())
        assert remaining == [2, 3]


def test_last_place_is_not_overbooked_by_concurrent_users(file_app, slow_week_read):
    alice, bob, interval_id = _add(
        file_app,
        _user("alice@example.org"),
        _user("bob@example.org"),
        _interval(MONDAY, capacity=1),
    )

    outcomes = _race(file_app, [
        (booking_engine.book, alice, interval_id),
        (booking_engine.book, bob, interval_id),
    ])

    assert outcomes == ["SLOT_UNAVAILABLE", "ok"]
    with file_app.app_context():
        assert db.session.get(Interval, interval_id).capacity_remaining == 0
        assert Appointment.query.filter_by(status=CONFIRMED).count() == 1


def test_concurrent_generation_creates_one_layout(file_app, monkeypatch):
    split = slot_catalog.split_window

    def _slow_split(*args):
        clock.sleep(0.2)
        return split(*args)

    monkeypatch.setattr(slot_catalog, "split_window", _slow_split)
    (block_id,) = _add(file_app, TimeBlock(
        date=MONDAY,
        start_time=time(8, 0),
        end_time=time(9, 0),
        interval_minutes=15,
        interval_capacity=3,
    ))

    outcomes = _race(file_app, [
        (slot_catalog.generate_intervals, block_id),
        (slot_catalog.generate_intervals, block_id),
    ])

    assert outcomes == ["INTERVALS_ALREADY_GENERATED", "ok"]
    with file_app.app_context():
        assert Interval.query.filter_by(block_id=block_id).count() == 4
