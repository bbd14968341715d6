#!/usr/bin/env python3
# seed.py
from datetime import time
from decimal import Decimal

from db import db
from models.user import User
from models.bus import Bus, School
from models.route import Route
from models.student import Student
from models.route_assignment import RouteAssignment
from models.rfid_card import RFIDCard
from models.geofence import Geofence
from models.payment import Payment
from models.alcohol_test import AlcoholTest
from models.location import Location

# Demo accounts: (name, email, role, password)
DEMO_USERS = [
    ("Admin User", "admin@schoolbus.local", "admin", "admin123"),
    ("John Doe", "john@example.com", "driver", "user123"),
    ("Jane Smith", "jane@example.com", "parent", "user123"),
]

SCHOOLS = [
    ("Central High School", "123 Main St, Springfield", "40.712776", "-74.005974"),
    ("Westside Elementary", "456 Oak Ave, Springfield", "40.713776", "-74.015974"),
]

ROUTES = [
    ("Morning Route - Central High", time(7, 30), time(8, 30)),
    ("Afternoon Route - Central High", time(15, 0), time(16, 0)),
]

STUDENT_NAME = "Timmy Johnson"
STUDENT_HOME = (Decimal("40.7145"), Decimal("-74.0021"))
RFID_TAG = "RFID-TIMMY-0001"
DEMO_TX_REF = "DEMO-TX-0001"


def _upsert_user(name, email, role, password):
    user = User.query.filter_by(email=email).first()
    if not user:
        user = User(name=name, email=email, role=role)
        user.set_password(password)
        db.session.add(user)
        print(f"➕ Created {role} `{email}`.")
    else:
        # keep the role/password predictable for demos
        user.role = role
        user.set_password(password)
        print(f"🔄 Updated {role} `{email}`.")
    return user


def seed_demo():
    """
    Idempotent demo data: users, schools, one bus with two routes, a student
    with a pickup assignment, an RFID card, the school/home geofences and a
    sample breath test, GPS fix and payment.
    Safe to run repeatedly; existing rows are looked up by natural key.
    """
    users = {role: _upsert_user(name, email, role, pw) for name, email, role, pw in DEMO_USERS}
    db.session.flush()

    schools = {}
    for name, address, lat, lon in SCHOOLS:
        school = School.query.filter_by(name=name).first()
        if not school:
            school = School(name=name, address=address, latitude=Decimal(lat), longitude=Decimal(lon))
            db.session.add(school)
        schools[name] = school
    db.session.flush()

    central = schools["Central High School"]
    bus = Bus.query.filter_by(bus_number="BUS-001").first()
    if not bus:
        bus = Bus(bus_number="BUS-001", driver_id=users["driver"].id, school_id=central.id, capacity=50)
        db.session.add(bus)
        db.session.flush()

    routes = {}
    for name, start, end in ROUTES:
        route = Route.query.filter_by(name=name, bus_id=bus.id).first()
        if not route:
            route = Route(bus_id=bus.id, name=name, start_time=start, end_time=end)
            db.session.add(route)
        routes[name] = route
    db.session.flush()

    student = Student.query.filter_by(full_name=STUDENT_NAME, parent_id=users["parent"].id).first()
    if not student:
        student = Student(
            full_name=STUDENT_NAME,
            grade="5A",
            parent_id=users["parent"].id,
            home_latitude=STUDENT_HOME[0],
            home_longitude=STUDENT_HOME[1],
        )
        db.session.add(student)
        db.session.flush()

    morning = routes["Morning Route - Central High"]
    if not RouteAssignment.query.filter_by(route_id=morning.id, student_id=student.id).first():
        db.session.add(RouteAssignment(
            route_id=morning.id,
            student_id=student.id,
            pickup_latitude=STUDENT_HOME[0],
            pickup_longitude=STUDENT_HOME[1],
            pickup_order=0,
        ))

    if not RFIDCard.query.filter_by(rfid_tag=RFID_TAG).first():
        db.session.add(RFIDCard(rfid_tag=RFID_TAG, student_id=student.id, active=True))

    if not Geofence.query.filter_by(type="school", bus_id=bus.id).first():
        db.session.add(Geofence(
            name=central.name, type="school",
            latitude=central.latitude, longitude=central.longitude,
            radius_meters=100, bus_id=bus.id,
        ))
    if not Geofence.query.filter_by(type="home", student_id=student.id).first():
        db.session.add(Geofence(
            name=f"{STUDENT_NAME} - Home", type="home",
            latitude=STUDENT_HOME[0], longitude=STUDENT_HOME[1],
            radius_meters=50, student_id=student.id, bus_id=bus.id,
        ))

    # one passed breath test, one GPS fix at the school and a settled fee
    if not AlcoholTest.query.filter_by(bus_id=bus.id).first():
        db.session.add(AlcoholTest(
            driver_id=users["driver"].id, bus_id=bus.id, alcohol_level=Decimal("0.000"), passed=True,
            latitude=central.latitude, longitude=central.longitude,
        ))
    if not Location.query.filter_by(bus_id=bus.id).first():
        db.session.add(Location(
            bus_id=bus.id, latitude=central.latitude, longitude=central.longitude, speed=Decimal("0"),
        ))
    if not Payment.query.filter_by(chapa_transaction_id=DEMO_TX_REF).first():
        db.session.add(Payment(
            parent_id=users["parent"].id, student_id=student.id, amount=Decimal("1500.00"),
            chapa_transaction_id=DEMO_TX_REF, payment_method="chapa", status="completed",
        ))

    db.session.commit()
    print("✅ Seeded demo data successfully.")


if __name__ == "__main__":
    from app import create_app

    app = create_app()
    with app.app_context():
        seed_demo()
