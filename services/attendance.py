# services/attendance.py
"""
RFID scan → attendance row → parent push.

Boarding vs exiting comes from geofences first (school → exiting,
home → boarding) and falls back to the hour of the scan (before noon →
boarding).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dtparse
from flask import current_app

from db import db
from errors import ApiError
from models.attendance import Attendance
from models.bus import Bus
from models.geofence import Geofence
from models.rfid_card import RFIDCard
from services.notify_fcm import send_attendance_notification
from utils.geo import find_matching_geofence
from utils.clock import utcnow
from utils.ids import parse_id


def parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        ts = dtparse.isoparse(str(value).strip())
    except ValueError:
        raise ApiError(400, "INVALID_TIMESTAMP", "timestamp must be an ISO-8601 date-time.")
    # stored naive UTC, like every other DateTime column
    return ts.astimezone(timezone.utc).replace(tzinfo=None) if ts.tzinfo else ts


def resolve_bus(bus_id=None, vehicle_id=None) -> Bus:
    bus = None
    if bus_id not in (None, ""):
        bid = parse_id(bus_id)
        if bid is None:
            raise ApiError(400, "INVALID_BUS_ID", "bus_id must be a number.")
        bus = db.session.get(Bus, bid)
    elif vehicle_id:
        bus = Bus.query.filter_by(bus_number=str(vehicle_id).strip()).first()
    if bus is None:
        raise ApiError(404, "BUS_NOT_FOUND", "Bus not found.")
    return bus


def _candidate_geofences(bus_id: int, student_id: int) -> list[Geofence]:
    out = []
    school = Geofence.query.filter_by(type="school", bus_id=bus_id).first()
    if school:
        out.append(school)
    home = Geofence.query.filter_by(type="home", student_id=student_id, bus_id=bus_id).first()
    if home:
        out.append(home)
    return out


def process_scan(*, rfid_tag: str, latitude: float, longitude: float,
                 bus_id=None, vehicle_id=None, timestamp=None) -> dict:
    card = RFIDCard.query.filter_by(rfid_tag=rfid_tag, active=True).first()
    if card is None:
        raise ApiError(404, "RFID_NOT_FOUND", "RFID card not found or inactive.")
    student = card.student
    if student is None:
        raise ApiError(404, "STUDENT_NOT_FOUND", "Student associated with RFID card not found.")

    bus = resolve_bus(bus_id, vehicle_id)
    ts = parse_timestamp(timestamp) or utcnow()

    matched = find_matching_geofence(
        latitude, longitude,
        _candidate_geofences(bus.id, student.id),
        current_app.config.get("GEOFENCE_DEFAULT_RADIUS_M", 50),
    )
    if matched is not None:
        kind = "exiting" if matched.type == "school" else "boarding"
    else:
        kind = "boarding" if ts.hour < 12 else "exiting"

    row = Attendance(
        student_id=student.id,
        bus_id=bus.id,
        rfid_card_id=card.id,
        type=kind,
        timestamp=ts,
        latitude=latitude,
        longitude=longitude,
        geofence_id=matched.id if matched else None,
        manual_override=False,
    )
    db.session.add(row)
    db.session.commit()
    current_app.logger.info(
        "[attendance] %s student=%s bus=%s geofence=%s", kind, student.id, bus.id, matched.id if matched else "-"
    )

    location = None
    if matched is not None:
        location = "School" if matched.type == "school" else "Home"
    send_attendance_notification(student.parent_id, student.full_name, kind, location)

    return {
        "attendance_id": row.id,
        "attendance_type": kind,
        "student_id": student.id,
        "student_name": student.full_name,
        "geofence_id": matched.id if matched else None,
        "geofence_name": location,
        "message": f"Attendance recorded: {student.full_name} {kind}",
    }


def list_attendance(*, student_ids=None, student_id=None, bus_id=None, limit: int = 100) -> list[dict]:
    q = Attendance.query
    if student_ids is not None:
        q = q.filter(Attendance.student_id.in_(student_ids))
    if student_id is not None:
        q = q.filter(Attendance.student_id == student_id)
    if bus_id is not None:
        q = q.filter(Attendance.bus_id == bus_id)
    rows = q.order_by(Attendance.timestamp.desc(), Attendance.id.desc()).limit(limit).all()
    return [r.to_dict() for r in rows]
