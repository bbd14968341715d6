# tests/conftest.py
"""
Flask test client against SQLite in-memory.

Each test gets a fresh app (and so a fresh in-memory database); the app
context stays pushed for the whole test so fixtures and requests share one
session.
"""
from __future__ import annotations

import pytest

from app import create_app
from auth_guard import issue_token
from config import TestingConfig
from db import db
from models.bus import Bus, School
from models.route import Route
from models.student import Student
from models.user import User


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture()
def make_user(app):
    counter = {"n": 0}

    def _make(role="parent", name=None, email=None, password="secret123", fcm_token=None):
        counter["n"] += 1
        n = counter["n"]
        u = User(
            name=name or f"{role.title()} {n}",
            email=email or f"{role}{n}@example.com",
            role=role,
            fcm_token=fcm_token,
        )
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user("admin", name="Admin User", email="admin@example.com")


@pytest.fixture()
def parent(make_user):
    return make_user("parent", name="Jane Smith", email="jane@example.com")


@pytest.fixture()
def driver(make_user):
    return make_user("driver", name="John Doe", email="john@example.com")


@pytest.fixture()
def admin_headers(admin):
    return _bearer(admin)


@pytest.fixture()
def parent_headers(parent):
    return _bearer(parent)


@pytest.fixture()
def driver_headers(driver):
    return _bearer(driver)


@pytest.fixture()
def auth_headers():
    return _bearer


@pytest.fixture()
def bus(driver):
    school = School(name="Central High School", latitude=40.712776, longitude=-74.005974)
    db.session.add(school)
    db.session.flush()
    b = Bus(bus_number="BUS-001", driver_id=driver.id, school_id=school.id, capacity=50)
    db.session.add(b)
    db.session.commit()
    return b


@pytest.fixture()
def route(bus):
    r = Route(bus_id=bus.id, name="Morning Route - Central High")
    db.session.add(r)
    db.session.commit()
    return r


@pytest.fixture()
def make_student(parent):
    def _make(full_name="Timmy Johnson", parent_id=None, **kw):
        s = Student(full_name=full_name, grade="5A", parent_id=parent_id or parent.id, **kw)
        db.session.add(s)
        db.session.commit()
        return s

    return _make


@pytest.fixture()
def student(make_student):
    return make_student()
