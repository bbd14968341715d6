# routes/attendance.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from models.student import Student
from services import attendance as attendance_svc

attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")

MAX_LIMIT = 500


def _limit() -> int:
    n = request.args.get("limit", default=100, type=int) or 100
    return max(1, min(n, MAX_LIMIT))


def _as_coord(value, limit: int):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
    return float(value) if abs(value) <= limit else None


@attendance_bp.route("/scan", methods=["POST"])
def scan_attendance():
    """
    Device-facing (no user auth).
    Body: { rfid_tag, latitude, longitude, bus_id? | vehicle_id?, timestamp? }
    """
    data = request.get_json(silent=True) or {}
    tag = data.get("rfid_tag")
    if not isinstance(tag, str) or not tag.strip():
        return error_response(ApiError(400, "VALIDATION_ERROR", "rfid_tag is required."))
    lat = _as_coord(data.get("latitude"), 90)
    lng = _as_coord(data.get("longitude"), 180)
    if lat is None or lng is None:
        return error_response(ApiError(400, "VALIDATION_ERROR", "latitude and longitude are required."))
    if data.get("bus_id") in (None, "") and not data.get("vehicle_id"):
        return error_response(ApiError(400, "VALIDATION_ERROR", "bus_id or vehicle_id is required."))

    try:
        result = attendance_svc.process_scan(
            rfid_tag=tag.strip(),
            latitude=lat,
            longitude=lng,
            bus_id=data.get("bus_id"),
            vehicle_id=data.get("vehicle_id"),
            timestamp=data.get("timestamp"),
        )
    except ApiError as e:
        current_app.logger.info("[attendance] scan rejected tag=%s code=%s", tag, e.code)
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[attendance] scan failed tag=%s", tag)
        return internal_error("An error occurred while processing the scan.")

    return jsonify(success=True, data=result), 201


@attendance_bp.route("", methods=["GET"])
@require_role()
def list_attendance():
    """Admins/drivers see everything; parents only their own children."""
    student_ids = None
    if g.user.is_parent:
        student_ids = [sid for (sid,) in db.session.query(Student.id).filter(Student.parent_id == g.user.id)]
    rows = attendance_svc.list_attendance(student_ids=student_ids, limit=_limit())
    return jsonify(success=True, data=rows), 200


@attendance_bp.route("/student/<id:student_id>", methods=["GET"])
@require_role()
def student_attendance(student_id: int):
    student = db.session.get(Student, student_id)
    if student is None:
        return error_response(ApiError(404, "STUDENT_NOT_FOUND", "Student not found."))
    if g.user.is_parent and student.parent_id != g.user.id:
        return error_response(ApiError(403, "FORBIDDEN", "You can only view attendance for your own students."))
    rows = attendance_svc.list_attendance(student_id=student_id, limit=_limit())
    return jsonify(success=True, data=rows), 200


@attendance_bp.route("/bus/<id:bus_id>", methods=["GET"])
@require_role("admin", "driver")
def bus_attendance(bus_id: int):
    rows = attendance_svc.list_attendance(bus_id=bus_id, limit=_limit())
    return jsonify(success=True, data=rows), 200
