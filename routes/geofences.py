# routes/geofences.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response
from models.bus import Bus
from models.geofence import Geofence, GEOFENCE_TYPES
from models.student import Student
from utils.geo import to_decimal_coord
from utils.ids import parse_id

geofences_bp = Blueprint("geofences", __name__, url_prefix="/api/geofences")


@geofences_bp.route("", methods=["GET"])
@require_role("admin")
def list_geofences():
    """Optional query: bus_id, student_id, type"""
    q = Geofence.query
    bus_id = request.args.get("bus_id", type=parse_id)
    student_id = request.args.get("student_id", type=parse_id)
    typ = (request.args.get("type") or "").strip().lower()
    if bus_id is not None:
        q = q.filter(Geofence.bus_id == bus_id)
    if student_id is not None:
        q = q.filter(Geofence.student_id == student_id)
    if typ:
        q = q.filter(Geofence.type == typ)
    return jsonify(success=True, data=[gf.to_dict() for gf in q.order_by(Geofence.id.asc())]), 200


@geofences_bp.route("", methods=["POST"])
@require_role("admin")
def create_geofence():
    """
    Body: { name, type: school|home, latitude, longitude, radius_meters?, bus_id?, student_id? }
    Home geofences belong to a student.
    """
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    typ = (data.get("type") or "").strip().lower() if isinstance(data.get("type"), str) else ""
    if not isinstance(name, str) or not name.strip():
        return error_response(ApiError(400, "VALIDATION_ERROR", "name is required."))
    if typ not in GEOFENCE_TYPES:
        return error_response(ApiError(400, "VALIDATION_ERROR", "type must be 'school' or 'home'."))

    try:
        lat = to_decimal_coord(data.get("latitude"), limit=90)
        lng = to_decimal_coord(data.get("longitude"), limit=180)
    except ValueError:
        lat = lng = None
    if lat is None or lng is None:
        return error_response(ApiError(400, "INVALID_COORDINATES", "latitude and longitude are required."))

    radius = data.get("radius_meters")
    if radius is None:
        radius = current_app.config.get("GEOFENCE_DEFAULT_RADIUS_M", 50)
    if isinstance(radius, bool) or not isinstance(radius, int) or radius <= 0:
        return error_response(ApiError(400, "INVALID_RADIUS", "radius_meters must be a positive integer."))

    bus_id = data.get("bus_id")
    student_id = data.get("student_id")
    for v in (bus_id, student_id):
        if v is not None and (not isinstance(v, int) or parse_id(v) is None):
            return error_response(ApiError(400, "VALIDATION_ERROR", "bus_id/student_id must be integers."))
    if bus_id is not None and db.session.get(Bus, bus_id) is None:
        return error_response(ApiError(404, "BUS_NOT_FOUND", "Bus not found."))
    if student_id is not None and db.session.get(Student, student_id) is None:
        return error_response(ApiError(404, "STUDENT_NOT_FOUND", "Student not found."))
    if typ == "home" and student_id is None:
        return error_response(ApiError(400, "VALIDATION_ERROR", "home geofences require student_id."))

    gf = Geofence(
        name=name.strip(), type=typ, latitude=lat, longitude=lng,
        radius_meters=radius, bus_id=bus_id, student_id=student_id,
    )
    db.session.add(gf)
    db.session.commit()
    current_app.logger.info("[geofences] created id=%s type=%s bus=%s student=%s", gf.id, typ, bus_id, student_id)
    return jsonify(success=True, data=gf.to_dict()), 201


@geofences_bp.route("/<id:geofence_id>", methods=["DELETE"])
@require_role("admin")
def delete_geofence(geofence_id: int):
    gf = db.session.get(Geofence, geofence_id)
    if gf is None:
        return error_response(ApiError(404, "GEOFENCE_NOT_FOUND", "Geofence not found."))
    db.session.delete(gf)
    db.session.commit()
    return jsonify(success=True, message="Geofence deleted successfully."), 200
