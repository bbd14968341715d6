# routes/locations.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from models.bus import Bus
from services import location as location_svc
from services.attendance import parse_timestamp
from utils.geo import to_decimal_coord
from utils.ids import parse_id

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


def _limit() -> int:
    n = request.args.get("limit", default=100, type=int) or 100
    return max(1, min(n, 1000))


@locations_bp.route("", methods=["POST"])
def create_location():
    """
    Device-facing GPS fix (no user auth), like the RFID scan.
    Body: { bus_id, latitude, longitude, speed? (km/h), timestamp? }
    """
    data = request.get_json(silent=True) or {}
    bus_id = parse_id(data.get("bus_id"))
    if bus_id is None:
        return error_response(ApiError(400, "MISSING_BUS_ID", "bus_id is required."))
    try:
        lat = to_decimal_coord(data.get("latitude"), limit=90)
    except ValueError:
        return error_response(ApiError(400, "INVALID_LATITUDE", "Latitude must be between -90 and 90."))
    try:
        lng = to_decimal_coord(data.get("longitude"), limit=180)
    except ValueError:
        return error_response(ApiError(400, "INVALID_LONGITUDE", "Longitude must be between -180 and 180."))
    if lat is None or lng is None:
        return error_response(ApiError(400, "MISSING_COORDINATES", "latitude and longitude are required."))

    speed = data.get("speed")
    if speed is not None:
        ceiling = float(current_app.config.get("MAX_REPORTED_SPEED_KMH", 200.0))
        if isinstance(speed, bool) or not isinstance(speed, (int, float)) or speed < 0:
            return error_response(ApiError(400, "INVALID_SPEED", "Speed must be a non-negative number."))
        if speed > ceiling:
            return error_response(ApiError(400, "INVALID_SPEED", "Speed value is unreasonably high."))
        speed = float(speed)

    try:
        result = location_svc.record_location(
            bus_id=bus_id, latitude=float(lat), longitude=float(lng), speed=speed, timestamp=data.get("timestamp"),
        )
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[location] ingest failed bus=%s", bus_id)
        return internal_error("An error occurred while saving the location.")

    return jsonify(success=True, data=result), 201


@locations_bp.route("/latest", methods=["GET"])
@require_role("admin")
def fleet_positions():
    return jsonify(success=True, data=location_svc.latest_positions()), 200


@locations_bp.route("/bus/<id:bus_id>/current", methods=["GET"])
@require_role()
def current_bus_location(bus_id: int):
    if db.session.get(Bus, bus_id) is None:
        return error_response(ApiError(404, "BUS_NOT_FOUND", "Bus not found."))
    loc = location_svc.current_location(bus_id)
    if loc is None:
        return error_response(ApiError(404, "LOCATION_NOT_FOUND", "No location recorded for this bus yet."))
    return jsonify(success=True, data=loc), 200


@locations_bp.route("/bus/<id:bus_id>/history", methods=["GET"])
@locations_bp.route("/bus/<id:bus_id>", methods=["GET"])
@require_role()
def bus_location_history(bus_id: int):
    """Optional query: start, end (ISO-8601), limit. Newest first."""
    try:
        start = parse_timestamp(request.args.get("start"))
        end = parse_timestamp(request.args.get("end"))
    except ApiError as e:
        return error_response(e)
    rows = location_svc.location_history(bus_id, start=start, end=end, limit=_limit())
    return jsonify(success=True, data=rows, count=len(rows)), 200
