from datetime import date, time

import pytest

from app import create_app
from config import Config
from models import db
from models.interval import Interval
from models.user import Role, User
from security.password import hash_password

PASSWORD = "correct-horse-battery"

# Monday of an ISO week used across the tests (week runs 2026-11-02 .. 2026-11-08)
MONDAY = date(2026, 11, 2)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CREATE_TABLES_ON_STARTUP = True
    BCRYPT_ROUNDS = 4
    CSRF_ENABLED = False
    MISSED_SWEEP_ENABLED = False
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(email="student@example.org", roles=("STUDENT",), **fields):
        user = User(email=email, password_hash=hash_password(PASSWORD), **fields)
        user.roles = Role.query.filter(Role.name.in_(roles)).all()
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def make_interval(app):
    def _make_interval(day=MONDAY, start=time(8, 0), end=time(8, 15), capacity=3, **fields):
        interval = Interval(
            date=day,
            start_time=start,
            end_time=end,
            capacity_total=capacity,
            capacity_remaining=fields.pop("capacity_remaining", capacity),
            **fields,
        )
        db.session.add(interval)
        db.session.commit()
        return interval
    return _make_interval


@pytest.fixture
def login(client):
    def _login(email):
        resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login
