# routes/driver_ratings.py
from __future__ import annotations

from datetime import date
from typing import Optional

from dateutil import parser as dtparse
from flask import Blueprint, request, jsonify, g

from auth_guard import require_role
from errors import ApiError, error_response
from services import driver_rating as rating_svc

driver_ratings_bp = Blueprint("driver_ratings", __name__, url_prefix="/api/driver-ratings")


def _date_arg(name: str) -> Optional[date]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return dtparse.isoparse(raw).date()
    except ValueError:
        raise ApiError(400, "INVALID_DATE", f"{name} must be an ISO-8601 date (YYYY-MM-DD).")


@driver_ratings_bp.route("/driver/<id:driver_id>", methods=["GET"])
@require_role("driver")
def driver_rating(driver_id: int):
    """Current month plus history. Drivers may only read their own."""
    if not g.user.is_admin and g.user.id != driver_id:
        return error_response(ApiError(403, "FORBIDDEN", "You can only view your own ratings."))
    try:
        data = rating_svc.driver_ratings(driver_id)
    except ApiError as e:
        return error_response(e)
    return jsonify(success=True, data=data), 200


@driver_ratings_bp.route("", methods=["GET"])
@require_role("admin")
def list_driver_ratings():
    """Optional query: start, end (dates), sort_by, order=asc|desc, limit"""
    try:
        start, end = _date_arg("start"), _date_arg("end")
    except ApiError as e:
        return error_response(e)

    sort_by = request.args.get("sort_by") or "overall_score"
    if sort_by not in rating_svc.SORTABLE:
        return error_response(
            ApiError(400, "INVALID_SORT", f"sort_by must be one of: {', '.join(rating_svc.SORTABLE)}")
        )
    descending = (request.args.get("order") or "desc").lower() != "asc"
    limit = max(1, min(request.args.get("limit", default=100, type=int) or 100, 500))

    rows = rating_svc.list_ratings(start=start, end=end, sort_by=sort_by, descending=descending, limit=limit)
    return jsonify(success=True, data=rows, count=len(rows)), 200
