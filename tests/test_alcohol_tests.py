# tests/test_alcohol_tests.py
import pytest

from db import db
from models.alcohol_test import AlcoholTest
from models.bus import Bus
from services import alcohol_test as alcohol_svc


@pytest.fixture()
def admin_alerts(monkeypatch):
    sent = []
    monkeypatch.setattr(alcohol_svc, "notify_admins", lambda *a: sent.append(a) or 1)
    return sent


def test_passed_test_is_recorded_without_alert(client, bus, driver, driver_headers, admin_alerts):
    res = client.post("/api/alcohol-tests", json={"alcohol_level": 0.02, "bus_id": bus.id}, headers=driver_headers)
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["passed"] is True
    assert data["driver_id"] == driver.id
    assert data["bus_number"] == "BUS-001"
    assert data["threshold"] == 0.05
    assert admin_alerts == []

    row = AlcoholTest.query.one()
    assert (row.driver_id, row.bus_id, row.passed) == (driver.id, bus.id, True)


def test_level_at_threshold_passes(client, bus, driver_headers, admin_alerts):
    res = client.post("/api/alcohol-tests", json={"alcohol_level": 0.05, "bus_id": bus.id}, headers=driver_headers)
    assert res.get_json()["data"]["passed"] is True


def test_failed_test_alerts_admins(client, bus, driver_headers, admin_alerts):
    body = {"alcohol_level": 0.08, "vehicle_id": "BUS-001", "latitude": 40.7128, "longitude": -74.006}
    res = client.post("/api/alcohol-tests", json=body, headers=driver_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["data"]["passed"] is False
    assert payload["message"].startswith("ALERT: Alcohol test failed.")

    ((kind, message, data),) = admin_alerts
    assert kind == "alcohol_alert"
    assert "John Doe" in message and "BUS-001" in message
    assert data["busId"] == bus.id and data["urgent"] is True

    row = AlcoholTest.query.one()
    assert row.passed is False
    assert float(row.latitude) == pytest.approx(40.7128)


def test_bus_without_driver_is_rejected(client, driver_headers, admin_alerts):
    b = Bus(bus_number="BUS-404")
    db.session.add(b)
    db.session.commit()
    res = client.post("/api/alcohol-tests", json={"alcohol_level": 0.0, "bus_id": b.id}, headers=driver_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == "NO_DRIVER_ASSIGNED"
    assert AlcoholTest.query.count() == 0


def test_unknown_bus_is_404(client, driver_headers):
    res = client.post("/api/alcohol-tests", json={"alcohol_level": 0.0, "vehicle_id": "NOPE"}, headers=driver_headers)
    assert res.status_code == 404
    assert res.get_json()["code"] == "BUS_NOT_FOUND"


@pytest.mark.parametrize("body, code", [
    ({"bus_id": 1}, "MISSING_ALCOHOL_LEVEL"),
    ({"alcohol_level": 0.01}, "MISSING_BUS_IDENTIFIER"),
    ({"alcohol_level": "abc", "bus_id": 1}, "INVALID_ALCOHOL_LEVEL"),
    ({"alcohol_level": -0.1, "bus_id": 1}, "INVALID_ALCOHOL_LEVEL"),
    ({"alcohol_level": 100, "bus_id": 1}, "INVALID_ALCOHOL_LEVEL"),
    ({"alcohol_level": True, "bus_id": 1}, "INVALID_ALCOHOL_LEVEL"),
    ({"alcohol_level": 0.01, "bus_id": 1, "latitude": 91}, "INVALID_LATITUDE"),
    ({"alcohol_level": 0.01, "bus_id": 1, "longitude": "x"}, "INVALID_LONGITUDE"),
])
def test_submit_validation(client, bus, driver_headers, body, code):
    res = client.post("/api/alcohol-tests", json=body, headers=driver_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == code


def test_submit_requires_auth(client, bus):
    assert client.post("/api/alcohol-tests", json={"alcohol_level": 0, "bus_id": bus.id}).status_code == 401


def test_history_by_driver_and_bus(client, bus, driver, admin_headers, driver_headers, admin_alerts):
    for level, ts in ((0.01, "2026-03-01T06:00:00Z"), (0.09, "2026-03-02T06:00:00Z")):
        client.post(
            "/api/alcohol-tests",
            json={"alcohol_level": level, "bus_id": bus.id, "timestamp": ts},
            headers=driver_headers,
        )

    res = client.get(f"/api/alcohol-tests/driver/{driver.id}", headers=admin_headers)
    body = res.get_json()
    assert body["count"] == 2
    assert [r["passed"] for r in body["data"]] == [False, True]
    assert body["data"][0]["driver_name"] == "John Doe"

    res = client.get(
        f"/api/alcohol-tests/driver/{driver.id}?start=2026-03-02T00:00:00Z", headers=admin_headers
    )
    assert [r["alcohol_level"] for r in res.get_json()["data"]] == [0.09]

    res = client.get(f"/api/alcohol-tests/bus/{bus.id}", headers=driver_headers)
    assert res.get_json()["count"] == 2

    assert client.get(f"/api/alcohol-tests/driver/{driver.id}", headers=driver_headers).status_code == 403


def test_latest_failed_test(app, bus, driver):
    db.session.add_all([
        AlcoholTest(driver_id=driver.id, bus_id=bus.id, alcohol_level=0.2, passed=False,
                    timestamp=alcohol_svc.parse_timestamp("2026-03-01T06:00:00Z")),
        AlcoholTest(driver_id=driver.id, bus_id=bus.id, alcohol_level=0.3, passed=False,
                    timestamp=alcohol_svc.parse_timestamp("2026-03-02T06:00:00Z")),
        AlcoholTest(driver_id=driver.id, bus_id=bus.id, alcohol_level=0.0, passed=True,
                    timestamp=alcohol_svc.parse_timestamp("2026-03-03T06:00:00Z")),
    ])
    db.session.commit()
    assert float(alcohol_svc.latest_failed_test(bus.id).alcohol_level) == pytest.approx(0.3)
