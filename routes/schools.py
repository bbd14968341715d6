# routes/schools.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from models.bus import Bus, School
from utils.geo import to_decimal_coord

schools_bp = Blueprint("schools", __name__, url_prefix="/api/schools")


def _get_school_or_404(school_id: int) -> School:
    school = db.session.get(School, school_id)
    if school is None:
        raise ApiError(404, "SCHOOL_NOT_FOUND", "School not found.")
    return school


def _coords(data: dict, school: School) -> None:
    """Apply latitude/longitude present in the body; explicit null clears them."""
    for key, limit, code in (("latitude", 90, "INVALID_LATITUDE"), ("longitude", 180, "INVALID_LONGITUDE")):
        if key not in data:
            continue
        try:
            setattr(school, key, to_decimal_coord(data[key], limit=limit))
        except ValueError:
            raise ApiError(400, code, f"{key.capitalize()} must be between -{limit} and {limit}.")


def _address(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ApiError(400, "INVALID_ADDRESS", "address must be text.")
    return value.strip() or None


@schools_bp.route("", methods=["POST"])
@require_role("admin")
def create_school():
    """Body: { name, address?, latitude?, longitude? }"""
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return error_response(ApiError(400, "MISSING_NAME", "School name is required."))
    if len(name.strip()) > 100:
        return error_response(ApiError(400, "INVALID_NAME", "School name must be at most 100 characters."))

    school = School(name=name.strip())
    try:
        school.address = _address(data.get("address"))
        _coords(data, school)
        db.session.add(school)
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[schools] create failed")
        return internal_error("An error occurred while creating the school.")

    current_app.logger.info("[schools] created id=%s name=%s", school.id, school.name)
    return jsonify(success=True, data=school.to_dict()), 201


@schools_bp.route("", methods=["GET"])
@require_role("admin")
def list_schools():
    rows = School.query.order_by(School.name.asc()).all()
    return jsonify(success=True, data=[s.to_dict() for s in rows]), 200


@schools_bp.route("/<id:school_id>", methods=["GET"])
@require_role("admin")
def get_school(school_id: int):
    try:
        school = _get_school_or_404(school_id)
    except ApiError as e:
        return error_response(e)
    buses = Bus.query.filter_by(school_id=school.id).order_by(Bus.bus_number.asc()).all()
    return jsonify(success=True, data={**school.to_dict(), "buses": [b.summary() for b in buses]}), 200


@schools_bp.route("/<id:school_id>", methods=["PUT"])
@require_role("admin")
def update_school(school_id: int):
    """Body: any of { name, address, latitude, longitude }"""
    data = request.get_json(silent=True) or {}
    try:
        school = _get_school_or_404(school_id)
        if "name" in data:
            name = data["name"].strip() if isinstance(data["name"], str) else ""
            if not name or len(name) > 100:
                raise ApiError(400, "INVALID_NAME", "School name cannot be empty.")
            school.name = name
        if "address" in data:
            school.address = _address(data["address"])
        _coords(data, school)
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[schools] update failed id=%s", school_id)
        return internal_error("An error occurred while updating the school.")

    return jsonify(success=True, data=school.to_dict()), 200


@schools_bp.route("/<id:school_id>", methods=["DELETE"])
@require_role("admin")
def delete_school(school_id: int):
    """Buses of the school are kept and lose their school link."""
    try:
        school = _get_school_or_404(school_id)
        db.session.delete(school)
        db.session.commit()
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[schools] delete failed id=%s", school_id)
        return internal_error("An error occurred while deleting the school.")

    current_app.logger.info("[schools] deleted id=%s", school_id)
    return jsonify(success=True, data={"deleted": True, "id": school_id}), 200
