# routes/bus_routes.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from services import route as route_svc
from utils.ids import parse_id

bus_routes_bp = Blueprint("bus_routes", __name__, url_prefix="/api/routes")


@bus_routes_bp.route("", methods=["POST"])
@require_role("admin")
def create_route():
    data = request.get_json(silent=True) or {}
    try:
        rec = route_svc.create_route(
            data.get("bus_id"), data.get("name"), data.get("start_time"), data.get("end_time")
        )
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[routes] create failed")
        return internal_error("An error occurred while creating the route.")
    return jsonify(success=True, data=rec), 201


@bus_routes_bp.route("", methods=["GET"])
@require_role("admin")
def list_routes():
    """Optional query: bus_id=<int>"""
    bus_id = request.args.get("bus_id", type=parse_id)
    try:
        rows = route_svc.list_routes(bus_id)
    except Exception:
        current_app.logger.exception("[routes] list failed")
        return internal_error("An error occurred while fetching routes.")
    return jsonify(success=True, data=rows), 200


@bus_routes_bp.route("/<id:route_id>", methods=["GET"])
@require_role("admin")
def get_route(route_id: int):
    try:
        rec = route_svc.get_route(route_id)
    except ApiError as e:
        return error_response(e)
    return jsonify(success=True, data=rec), 200


@bus_routes_bp.route("/<id:route_id>", methods=["PUT"])
@require_role("admin")
def update_route(route_id: int):
    data = request.get_json(silent=True) or {}
    try:
        rec = route_svc.update_route(route_id, data)
    except ApiError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[routes] update failed id=%s", route_id)
        return internal_error("An error occurred while updating the route.")
    return jsonify(success=True, data=rec), 200


@bus_routes_bp.route("/<id:route_id>", methods=["DELETE"])
@require_role("admin")
def delete_route(route_id: int):
    try:
        route_svc.delete_route(route_id)
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[routes] delete failed id=%s", route_id)
        return internal_error("An error occurred while deleting the route.")
    return jsonify(success=True, message="Route deleted successfully."), 200


@bus_routes_bp.route("/<id:route_id>/optimize", methods=["POST"])
@require_role("admin")
def optimize_route(route_id: int):
    """
    Group pickups into zones and number the stops.
    Body (optional): { "zone_radius_km": 0.2 }
    """
    data = request.get_json(silent=True) or {}
    radius = data.get("zone_radius_km")
    if radius is not None:
        if isinstance(radius, bool) or not isinstance(radius, (int, float)) or radius <= 0:
            return error_response(ApiError(400, "INVALID_RADIUS", "zone_radius_km must be a positive number."))
    try:
        result = route_svc.optimize_route(route_id, radius)
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[routes] optimize failed id=%s", route_id)
        return internal_error("An error occurred while optimizing the route.")
    return jsonify(success=True, data=result), 200
