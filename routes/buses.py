# routes/buses.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from models.bus import Bus, School
from models.user import User
from utils.ids import parse_id

buses_bp = Blueprint("buses", __name__, url_prefix="/api/buses")


def _bus_json(b: Bus) -> dict:
    return {
        **b.summary(),
        "driver_id": b.driver_id,
        "school_id": b.school_id,
        "driver": {"id": b.driver.id, "name": b.driver.name} if b.driver else None,
        "school": {"id": b.school.id, "name": b.school.name} if b.school else None,
    }


def _optional_fk(data: dict, key: str, model, code: str):
    raw = data.get(key)
    if raw in (None, ""):
        return None
    rid = parse_id(raw)
    row = db.session.get(model, rid) if rid is not None else None
    if row is None:
        raise ApiError(400, code, f"{key} does not reference an existing record.")
    return row.id


@buses_bp.route("", methods=["GET"])
@require_role()
def list_buses():
    rows = Bus.query.order_by(Bus.bus_number.asc()).all()
    return jsonify(success=True, data=[_bus_json(b) for b in rows]), 200


@buses_bp.route("", methods=["POST"])
@require_role("admin")
def create_bus():
    """Body: { bus_number, driver_id?, school_id?, capacity? }"""
    data = request.get_json(silent=True) or {}
    number = (data.get("bus_number") or "").strip() if isinstance(data.get("bus_number"), str) else ""
    if not number:
        return error_response(ApiError(400, "INVALID_BUS_NUMBER", "bus_number is required."))

    try:
        capacity = int(data.get("capacity") or 50)
        if capacity <= 0:
            raise ValueError
        bus = Bus(
            bus_number=number,
            driver_id=_optional_fk(data, "driver_id", User, "DRIVER_NOT_FOUND"),
            school_id=_optional_fk(data, "school_id", School, "SCHOOL_NOT_FOUND"),
            capacity=capacity,
        )
    except ApiError as e:
        return error_response(e)
    except (TypeError, ValueError):
        return error_response(ApiError(400, "INVALID_CAPACITY", "capacity must be a positive integer."))

    if Bus.query.filter_by(bus_number=number).first():
        return error_response(ApiError(409, "BUS_NUMBER_TAKEN", "A bus with this number already exists."))

    db.session.add(bus)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return error_response(ApiError(409, "BUS_NUMBER_TAKEN", "A bus with this number already exists."))
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[buses] create failed")
        return internal_error("An error occurred while creating the bus.")

    current_app.logger.info("[buses] created id=%s number=%s", bus.id, bus.bus_number)
    return jsonify(success=True, data=_bus_json(bus)), 201
