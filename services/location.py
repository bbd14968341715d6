# services/location.py
"""
Live bus positions.

Every fix is stored. Two checks run on each one and page people, but never
fail the ingest:
  - movement of more than MOVEMENT_ALERT_METERS away from where the bus's
    latest alcohol test failed → `critical_motion_alert` to admins
  - speed above SPEED_LIMIT_KMH → `speed_violation` to admins and the driver
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import and_, func

from db import db
from errors import ApiError
from models.bus import Bus
from models.location import Location
from services.alcohol_test import latest_failed_test
from services.attendance import parse_timestamp
from services.notify_fcm import notify_admins, send_fcm_notification
from utils.clock import utc_iso, utcnow
from utils.geo import haversine_m


def record_location(*, bus_id: int, latitude: float, longitude: float,
                    speed: Optional[float] = None, timestamp=None) -> dict:
    bus = db.session.get(Bus, bus_id)
    if bus is None:
        raise ApiError(404, "BUS_NOT_FOUND", "Bus not found.")

    loc = Location(
        bus_id=bus.id,
        latitude=latitude,
        longitude=longitude,
        speed=speed,
        timestamp=parse_timestamp(timestamp) or utcnow(),
    )
    db.session.add(loc)
    db.session.commit()

    log = current_app.logger
    try:
        _check_movement_after_failed_test(bus, latitude, longitude)
    except Exception:
        db.session.rollback()
        log.exception("[location] movement check failed bus=%s", bus.id)

    speed_limit = float(current_app.config.get("SPEED_LIMIT_KMH", 60.0))
    violation = None
    if speed is not None and speed > speed_limit:
        violation = {
            "detected": True,
            "speed": speed,
            "speed_limit": speed_limit,
            "message": f"Speed violation detected: {speed:.2f} km/h exceeds limit of {speed_limit:g} km/h",
        }
        log.info("[location] speed violation bus=%s speed=%.2f", bus.id, speed)
        try:
            _notify_speed_violation(bus, speed, speed_limit, latitude, longitude)
        except Exception:
            db.session.rollback()
            log.exception("[location] speed violation notify failed bus=%s", bus.id)

    return {"location_id": loc.id, "speed_violation": violation}


def _check_movement_after_failed_test(bus: Bus, lat: float, lng: float) -> None:
    failed = latest_failed_test(bus.id)
    if failed is None or failed.latitude is None or failed.longitude is None:
        return

    moved = haversine_m(float(failed.latitude), float(failed.longitude), lat, lng)
    if moved <= float(current_app.config.get("MOVEMENT_ALERT_METERS", 100.0)):
        return

    recent = (
        Location.query.filter(Location.bus_id == bus.id)
        .order_by(Location.timestamp.desc(), Location.id.desc())
        .limit(10)
        .all()
    )
    driver_name = bus.driver.name if bus.driver else "Unknown Driver"
    current_app.logger.warning(
        "[location] bus=%s moved %.0fm after failed alcohol test=%s", bus.id, moved, failed.id
    )
    notify_admins(
        "critical_motion_alert",
        f"CRITICAL: Bus {bus.bus_number} (Driver: {driver_name}) has moved {moved:.2f}m after failing "
        f"alcohol test. Current location: {lat:.6f}, {lng:.6f}",
        {
            "testId": failed.id,
            "driverId": bus.driver_id,
            "driverName": driver_name,
            "busId": bus.id,
            "busNumber": bus.bus_number,
            "alcoholLevel": float(failed.alcohol_level),
            "failedTestLocation": {
                "latitude": float(failed.latitude),
                "longitude": float(failed.longitude),
                "timestamp": utc_iso(failed.timestamp),
            },
            "currentLocation": {"latitude": lat, "longitude": lng, "timestamp": utc_iso()},
            "distanceMeters": round(moved),
            "recentCoordinates": [
                {
                    "latitude": float(r.latitude),
                    "longitude": float(r.longitude),
                    "timestamp": utc_iso(r.timestamp),
                    "speed": float(r.speed) if r.speed is not None else None,
                }
                for r in recent
            ],
            "urgent": True,
        },
    )


def _notify_speed_violation(bus: Bus, speed: float, limit: float, lat: float, lng: float) -> None:
    data = {
        "busId": bus.id,
        "busNumber": bus.bus_number,
        "speed": speed,
        "speedLimit": limit,
        "latitude": lat,
        "longitude": lng,
        "timestamp": utc_iso(),
    }
    notify_admins(
        "speed_violation",
        f"Speed violation detected on bus {bus.bus_number}: {speed:.2f} km/h (limit: {limit:g} km/h)",
        data,
    )
    if bus.driver_id:
        send_fcm_notification(
            bus.driver_id,
            "speed_violation",
            f"Speed violation: You are driving at {speed:.2f} km/h (limit: {limit:g} km/h). Please reduce speed.",
            data,
        )


def current_location(bus_id: int) -> Optional[dict]:
    loc = (
        Location.query.filter(Location.bus_id == bus_id)
        .order_by(Location.timestamp.desc(), Location.id.desc())
        .first()
    )
    return loc.to_dict() if loc else None


def location_history(bus_id: int, *, start: Optional[datetime] = None, end: Optional[datetime] = None,
                     limit: int = 100) -> list[dict]:
    q = Location.query.filter(Location.bus_id == bus_id)
    if start is not None:
        q = q.filter(Location.timestamp >= start)
    if end is not None:
        q = q.filter(Location.timestamp <= end)
    rows = q.order_by(Location.timestamp.desc(), Location.id.desc()).limit(limit).all()
    return [r.to_dict() for r in rows]


def latest_positions() -> list[dict]:
    """Newest fix of every bus that has reported at least once (fleet map)."""
    newest = (
        db.session.query(Location.bus_id, func.max(Location.timestamp).label("ts"))
        .group_by(Location.bus_id)
        .subquery()
    )
    rows = (
        Location.query.join(
            newest,
            and_(Location.bus_id == newest.c.bus_id, Location.timestamp == newest.c.ts),
        )
        .order_by(Location.bus_id.asc(), Location.id.desc())
        .all()
    )
    out, seen = [], set()
    for r in rows:
        # two fixes with the same timestamp: keep the later insert
        if r.bus_id in seen:
            continue
        seen.add(r.bus_id)
        out.append(r.to_dict())
    return out
