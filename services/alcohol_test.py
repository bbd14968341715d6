# services/alcohol_test.py
"""
Breathalyzer results reported by the bus unit.

The driver is not sent by the device; it is whoever is assigned to the bus
at the time of the test. A level above ALCOHOL_THRESHOLD_MG_L fails the test
and pages every admin.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import current_app

from db import db
from errors import ApiError
from models.alcohol_test import AlcoholTest
from services.attendance import parse_timestamp, resolve_bus
from services.notify_fcm import notify_admins
from utils.clock import utc_iso, utcnow


def threshold() -> float:
    return float(current_app.config.get("ALCOHOL_THRESHOLD_MG_L", 0.05))


def submit_alcohol_test(*, alcohol_level: float, bus_id=None, vehicle_id=None,
                        latitude: Optional[Decimal] = None, longitude: Optional[Decimal] = None,
                        timestamp=None) -> dict:
    bus = resolve_bus(bus_id, vehicle_id)
    if not bus.driver_id:
        raise ApiError(
            400, "NO_DRIVER_ASSIGNED",
            f"No driver assigned to bus {bus.bus_number}. Cannot submit alcohol test.",
        )

    limit = threshold()
    passed = alcohol_level <= limit
    ts = parse_timestamp(timestamp) or utcnow()

    test = AlcoholTest(
        driver_id=bus.driver_id,
        bus_id=bus.id,
        alcohol_level=alcohol_level,
        passed=passed,
        latitude=latitude,
        longitude=longitude,
        timestamp=ts,
    )
    db.session.add(test)
    db.session.commit()
    current_app.logger.info(
        "[alcohol] test=%s bus=%s driver=%s level=%.3f passed=%s", test.id, bus.id, bus.driver_id, alcohol_level, passed
    )

    if passed:
        message = f"Alcohol test passed. Level: {alcohol_level:.3f} mg/L (threshold: {limit} mg/L)"
    else:
        _alert_admins(test, bus, alcohol_level, limit)
        message = (
            f"ALERT: Alcohol test failed. Level: {alcohol_level:.3f} mg/L exceeds threshold of "
            f"{limit} mg/L. Admin has been notified."
        )

    return {
        "test_id": test.id,
        "passed": passed,
        "alcohol_level": alcohol_level,
        "threshold": limit,
        "driver_id": bus.driver_id,
        "bus_id": bus.id,
        "bus_number": bus.bus_number,
        "message": message,
    }


def _alert_admins(test: AlcoholTest, bus, level: float, limit: float) -> None:
    driver_name = bus.driver.name if bus.driver else "Unknown Driver"
    notify_admins(
        "alcohol_alert",
        f"URGENT: Driver {driver_name} (Bus {bus.bus_number}) failed alcohol test. "
        f"Level: {level:.3f} mg/L (threshold: {limit} mg/L)",
        {
            "testId": test.id,
            "driverId": bus.driver_id,
            "driverName": driver_name,
            "busId": bus.id,
            "busNumber": bus.bus_number,
            "alcoholLevel": level,
            "threshold": limit,
            "timestamp": utc_iso(),
            "urgent": True,
        },
    )


def latest_failed_test(bus_id: int) -> Optional[AlcoholTest]:
    return (
        AlcoholTest.query
        .filter(AlcoholTest.bus_id == bus_id, AlcoholTest.passed.is_(False))
        .order_by(AlcoholTest.timestamp.desc(), AlcoholTest.id.desc())
        .first()
    )


def list_tests(*, driver_id: Optional[int] = None, bus_id: Optional[int] = None,
               start: Optional[datetime] = None, end: Optional[datetime] = None, limit: int = 50) -> list[dict]:
    q = AlcoholTest.query
    if driver_id is not None:
        q = q.filter(AlcoholTest.driver_id == driver_id)
    if bus_id is not None:
        q = q.filter(AlcoholTest.bus_id == bus_id)
    if start is not None:
        q = q.filter(AlcoholTest.timestamp >= start)
    if end is not None:
        q = q.filter(AlcoholTest.timestamp <= end)
    rows = q.order_by(AlcoholTest.timestamp.desc(), AlcoholTest.id.desc()).limit(limit).all()
    return [r.to_dict() for r in rows]
