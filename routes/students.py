# routes/students.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from models.student import Student
from models.user import User
from utils.geo import as_float, to_decimal_coord
from utils.ids import parse_id

students_bp = Blueprint("students", __name__, url_prefix="/api/students")


def _student_json(s: Student) -> dict:
    return {
        **s.summary(),
        "home_latitude": as_float(s.home_latitude),
        "home_longitude": as_float(s.home_longitude),
    }


def _get_visible_student(student_id: int) -> Student:
    s = db.session.get(Student, student_id)
    if s is None:
        raise ApiError(404, "STUDENT_NOT_FOUND", "Student not found.")
    if g.user.is_parent and s.parent_id != g.user.id:
        raise ApiError(403, "FORBIDDEN", "You can only access your own students.")
    return s


def _apply_fields(s: Student, data: dict, *, creating: bool) -> None:
    if creating or "full_name" in data:
        name = data.get("full_name")
        if not isinstance(name, str) or not name.strip():
            raise ApiError(400, "INVALID_FULL_NAME", "full_name is required.")
        s.full_name = name.strip()

    if creating or "parent_id" in data:
        pid = parse_id(data.get("parent_id"))
        if pid is None:
            raise ApiError(400, "INVALID_PARENT_ID", "parent_id is required and must be a number.")
        if db.session.get(User, pid) is None:
            raise ApiError(400, "PARENT_NOT_FOUND", "Parent user not found.")
        s.parent_id = pid

    if "grade" in data:
        grade = data.get("grade")
        s.grade = str(grade).strip() if grade not in (None, "") else None

    try:
        if "home_latitude" in data:
            s.home_latitude = to_decimal_coord(data.get("home_latitude"), limit=90)
        if "home_longitude" in data:
            s.home_longitude = to_decimal_coord(data.get("home_longitude"), limit=180)
    except ValueError:
        raise ApiError(400, "INVALID_COORDINATES", "home_latitude/home_longitude must be valid coordinates.")


@students_bp.route("", methods=["POST"])
@require_role("admin")
def create_student():
    data = request.get_json(silent=True) or {}
    s = Student()
    try:
        _apply_fields(s, data, creating=True)
        db.session.add(s)
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[students] create failed")
        return internal_error("An error occurred while creating the student.")
    current_app.logger.info("[students] created id=%s parent=%s", s.id, s.parent_id)
    return jsonify(success=True, data=_student_json(s)), 201


@students_bp.route("", methods=["GET"])
@require_role()
def list_students():
    """Parents only see their own children."""
    q = Student.query
    if g.user.is_parent:
        q = q.filter(Student.parent_id == g.user.id)
    rows = q.order_by(Student.full_name.asc(), Student.id.asc()).all()
    return jsonify(success=True, data=[_student_json(s) for s in rows]), 200


@students_bp.route("/<id:student_id>", methods=["GET"])
@require_role()
def get_student(student_id: int):
    try:
        s = _get_visible_student(student_id)
    except ApiError as e:
        return error_response(e)
    return jsonify(success=True, data=_student_json(s)), 200


@students_bp.route("/<id:student_id>", methods=["PUT"])
@require_role("admin")
def update_student(student_id: int):
    data = request.get_json(silent=True) or {}
    try:
        s = _get_visible_student(student_id)
        _apply_fields(s, data, creating=False)
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[students] update failed id=%s", student_id)
        return internal_error("An error occurred while updating the student.")
    return jsonify(success=True, data=_student_json(s)), 200


@students_bp.route("/<id:student_id>", methods=["DELETE"])
@require_role("admin")
def delete_student(student_id: int):
    """Route assignments, RFID cards, attendance and home geofences cascade."""
    s = db.session.get(Student, student_id)
    if s is None:
        return error_response(ApiError(404, "STUDENT_NOT_FOUND", "Student not found."))
    try:
        db.session.delete(s)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[students] delete failed id=%s", student_id)
        return internal_error("An error occurred while deleting the student.")
    current_app.logger.info("[students] deleted id=%s", student_id)
    return jsonify(success=True, message="Student deleted successfully."), 200
