# routes/route_assignments.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from services import route_assignment as svc
from utils.geo import to_decimal_coord
from utils.ids import MAX_ID, parse_id

route_assignments_bp = Blueprint("route_assignments", __name__, url_prefix="/api/route-assignments")


def _validated_create_fields(data: dict) -> dict:
    route_id = parse_id(data.get("route_id"))
    student_id = parse_id(data.get("student_id"))
    if route_id is None or student_id is None:
        raise ApiError(400, "INVALID_IDS", "route_id and student_id are required and must be valid numbers.")

    try:
        lat = to_decimal_coord(data.get("pickup_latitude"), limit=90)
        lng = to_decimal_coord(data.get("pickup_longitude"), limit=180)
    except ValueError:
        raise ApiError(400, "INVALID_COORDINATES", "pickup_latitude/pickup_longitude must be valid coordinates.")

    order = data.get("pickup_order")
    if order is not None:
        if isinstance(order, bool) or not isinstance(order, int) or not 0 <= order <= MAX_ID:
            raise ApiError(400, "INVALID_PICKUP_ORDER", "pickup_order must be a non-negative integer.")

    return dict(
        route_id=route_id,
        student_id=student_id,
        pickup_latitude=lat,
        pickup_longitude=lng,
        pickup_order=order,
    )


@route_assignments_bp.route("", methods=["POST"])
@require_role("admin")
def create_route_assignment():
    """
    Assign a student to a route.
    Body: { route_id, student_id, pickup_latitude?, pickup_longitude?, pickup_order? }
    """
    data = request.get_json(silent=True) or {}
    try:
        fields = _validated_create_fields(data)
        rec = svc.create_route_assignment(**fields)
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[route-assignments] create failed body=%s", data)
        return internal_error("An error occurred while assigning the student to the route.")

    return jsonify(success=True, data=rec, message="Student assigned to route successfully."), 201


@route_assignments_bp.route("/route/<id:route_id>", methods=["GET"])
@require_role("admin")
def get_assignments_by_route_id(route_id: int):
    try:
        rows = svc.get_assignments_by_route_id(route_id)
    except ApiError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("[route-assignments] list failed route=%s", route_id)
        return internal_error("An error occurred while fetching route assignments.")

    return jsonify(success=True, data=rows), 200


@route_assignments_bp.route("/<id:assignment_id>", methods=["DELETE"])
@require_role("admin")
def delete_route_assignment(assignment_id: int):
    try:
        svc.delete_route_assignment(assignment_id)
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[route-assignments] delete failed id=%s", assignment_id)
        return internal_error("An error occurred while removing the student from the route.")

    return jsonify(success=True, message="Student removed from route successfully."), 200
