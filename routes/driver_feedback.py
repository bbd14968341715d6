# routes/driver_feedback.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from services import driver_feedback as feedback_svc
from utils.ids import parse_id

driver_feedback_bp = Blueprint("driver_feedback", __name__, url_prefix="/api/driver-feedback")

MAX_COMMENT_LEN = 2000


def _limit() -> int:
    n = request.args.get("limit", default=50, type=int) or 50
    return max(1, min(n, 200))


@driver_feedback_bp.route("", methods=["POST"])
@require_role("parent")
def submit_feedback():
    """
    Body: { driver_id, rating (1-5), comment? }
    Only parents whose child rides one of the driver's buses may rate.
    """
    data = request.get_json(silent=True) or {}
    driver_id = parse_id(data.get("driver_id"))
    if driver_id is None:
        return error_response(ApiError(400, "MISSING_DRIVER_ID", "driver_id is required."))
    comment = data.get("comment")
    if comment is not None and (not isinstance(comment, str) or len(comment) > MAX_COMMENT_LEN):
        return error_response(
            ApiError(400, "INVALID_COMMENT", f"comment must be text of at most {MAX_COMMENT_LEN} characters.")
        )

    try:
        fb = feedback_svc.submit_feedback(
            driver_id=driver_id, parent_id=g.user.id, rating=data.get("rating"), comment=comment,
        )
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[feedback] submit failed driver=%s parent=%s", driver_id, g.user.id)
        return internal_error("An error occurred while submitting feedback.")

    return jsonify(success=True, data=fb, message="Feedback submitted successfully"), 201


@driver_feedback_bp.route("/driver/<id:driver_id>", methods=["GET"])
@require_role("driver")
def driver_feedback(driver_id: int):
    if not g.user.is_admin and g.user.id != driver_id:
        return error_response(ApiError(403, "FORBIDDEN", "You can only view your own feedback."))
    rows = feedback_svc.list_feedback(driver_id=driver_id, limit=_limit())
    return jsonify(success=True, data=rows, count=len(rows)), 200


@driver_feedback_bp.route("/mine", methods=["GET"])
@require_role("parent")
def my_feedback():
    rows = feedback_svc.list_feedback(parent_id=g.user.id, limit=_limit())
    return jsonify(success=True, data=rows, count=len(rows)), 200
