# tests/test_geo_geofences.py
from decimal import Decimal
from types import SimpleNamespace

import pytest

from models.alcohol_test import AlcoholTest
from models.bus import Bus
from models.location import Location
from models.payment import Payment
from models.route_assignment import RouteAssignment
from models.rfid_card import RFIDCard
from models.user import User
from utils.geo import find_matching_geofence, haversine_km, to_decimal_coord, within_radius


def test_haversine_known_distance():
    # one degree of latitude is ~111.2 km
    assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.05)
    assert haversine_km(40.7145, -74.0021, 40.7145, -74.0021) == 0


def test_within_radius():
    assert within_radius(40.7145, -74.0021, 40.7147, -74.0021, 50)
    assert not within_radius(40.7145, -74.0021, 40.7155, -74.0021, 50)


def test_find_matching_geofence_respects_order_and_default_radius():
    a = SimpleNamespace(latitude=Decimal("40.7145"), longitude=Decimal("-74.0021"), radius_meters=None)
    b = SimpleNamespace(latitude=Decimal("40.7145"), longitude=Decimal("-74.0021"), radius_meters=500)
    assert find_matching_geofence(40.7146, -74.0021, [a, b]) is a
    # ~220 m out: outside a's 50 m default, inside b
    assert find_matching_geofence(40.7165, -74.0021, [a, b]) is b
    assert find_matching_geofence(41.0, -74.0, [a, b]) is None


@pytest.mark.parametrize("value,limit,expected", [
    (None, 90, None),
    ("", 90, None),
    ("40.71", 90, Decimal("40.71")),
    (-74, 180, Decimal("-74")),
])
def test_to_decimal_coord(value, limit, expected):
    assert to_decimal_coord(value, limit=limit) == expected


@pytest.mark.parametrize("value", ["abc", 90.5, "NaN", "Infinity", False])
def test_to_decimal_coord_rejects(value):
    with pytest.raises(ValueError):
        to_decimal_coord(value, limit=90)


# ---------- geofence endpoints ----------

def test_create_list_delete_geofence(client, admin_headers, bus, student):
    res = client.post("/api/geofences", json={
        "name": "Central High", "type": "school", "latitude": 40.712776, "longitude": -74.005974,
        "bus_id": bus.id,
    }, headers=admin_headers)
    assert res.status_code == 201
    school = res.get_json()["data"]
    assert school["radius_meters"] == 50

    res = client.post("/api/geofences", json={
        "name": "Home", "type": "HOME", "latitude": 40.7145, "longitude": -74.0021,
        "radius_meters": 30, "bus_id": bus.id, "student_id": student.id,
    }, headers=admin_headers)
    assert res.status_code == 201

    rows = client.get("/api/geofences?type=home", headers=admin_headers).get_json()["data"]
    assert [r["name"] for r in rows] == ["Home"]
    rows = client.get(f"/api/geofences?bus_id={bus.id}", headers=admin_headers).get_json()["data"]
    assert len(rows) == 2

    assert client.delete(f"/api/geofences/{school['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/geofences/{school['id']}", headers=admin_headers).status_code == 404


@pytest.mark.parametrize("body,code", [
    ({"type": "school", "latitude": 1, "longitude": 1}, "VALIDATION_ERROR"),
    ({"name": "X", "type": "office", "latitude": 1, "longitude": 1}, "VALIDATION_ERROR"),
    ({"name": "X", "type": "school", "latitude": 1}, "INVALID_COORDINATES"),
    ({"name": "X", "type": "school", "latitude": 1, "longitude": 1, "radius_meters": 0}, "INVALID_RADIUS"),
    ({"name": "X", "type": "school", "latitude": 1, "longitude": 1, "bus_id": "1"}, "VALIDATION_ERROR"),
    ({"name": "X", "type": "home", "latitude": 1, "longitude": 1}, "VALIDATION_ERROR"),
])
def test_create_geofence_validation(client, admin_headers, body, code):
    res = client.post("/api/geofences", json=body, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == code


def test_geofences_are_admin_only(client, driver_headers):
    assert client.get("/api/geofences", headers=driver_headers).status_code == 403


# ---------- seed ----------

def test_seed_is_idempotent(app):
    runner = app.test_cli_runner()
    for _ in range(2):
        result = runner.invoke(args=["seed"])
        assert result.exit_code == 0, result.output

    assert User.query.count() == 3
    assert Bus.query.filter_by(bus_number="BUS-001").count() == 1
    a = RouteAssignment.query.one()
    assert a.pickup_order == 0
    assert float(a.pickup_latitude) == pytest.approx(40.7145)
    assert RFIDCard.query.filter_by(rfid_tag="RFID-TIMMY-0001", active=True).count() == 1
    assert AlcoholTest.query.count() == 1
    assert Location.query.count() == 1
    assert Payment.query.filter_by(chapa_transaction_id="DEMO-TX-0001", status="completed").count() == 1
    admin = User.query.filter_by(role="admin").one()
    assert admin.check_password("admin123")
