# routes/payments.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, g, current_app

from auth_guard import require_role
from db import db
from errors import ApiError, error_response, internal_error
from models.payment import PAYMENT_STATUSES
from models.student import Student
from services import payment as payment_svc
from services.attendance import parse_timestamp
from utils.ids import parse_id

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")

MAX_AMOUNT = Decimal("99999999.99")


def _amount(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ApiError(400, "INVALID_AMOUNT", "amount must be a positive number.")
    try:
        amount = Decimal(str(value).strip()).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ApiError(400, "INVALID_AMOUNT", "amount must be a positive number.")
    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        raise ApiError(400, "INVALID_AMOUNT", "amount must be a positive number.")
    return amount


def _short_text(data: dict, key: str, max_len: int):
    v = data.get(key)
    if v in (None, ""):
        return None
    if not isinstance(v, str) or len(v.strip()) > max_len:
        raise ApiError(400, "VALIDATION_ERROR", f"{key} must be a string of at most {max_len} characters.")
    return v.strip() or None


def _filters() -> dict:
    limit = request.args.get("limit", default=50, type=int) or 50
    offset = request.args.get("offset", default=0, type=int) or 0
    return dict(
        status=(request.args.get("status") or "").strip().lower() or None,
        start=parse_timestamp(request.args.get("start")),
        end=parse_timestamp(request.args.get("end")),
        limit=max(1, min(limit, 200)),
        offset=max(0, offset),
    )


@payments_bp.route("", methods=["POST"])
@require_role("parent")
def create_payment():
    """
    Body: { student_id, amount, chapa_transaction_id?, payment_method? }
    Admins may also pass parent_id and an initial status.
    """
    data = request.get_json(silent=True) or {}
    try:
        student_id = parse_id(data.get("student_id"))
        if student_id is None:
            raise ApiError(400, "INVALID_STUDENT_ID", "student_id is required and must be a valid number.")
        if g.user.is_admin:
            parent_id = parse_id(data.get("parent_id"))
            if parent_id is None:
                raise ApiError(400, "INVALID_PARENT_ID", "parent_id is required and must be a valid number.")
            status = (data.get("status") or "pending")
            if status not in PAYMENT_STATUSES:
                raise ApiError(400, "INVALID_STATUS", "Status must be one of: pending, completed, failed")
        else:
            parent_id, status = g.user.id, "pending"

        rec = payment_svc.create_payment(
            parent_id=parent_id,
            student_id=student_id,
            amount=_amount(data.get("amount")),
            chapa_transaction_id=_short_text(data, "chapa_transaction_id", 50),
            payment_method=_short_text(data, "payment_method", 20),
            status=status,
        )
    except ApiError as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[payments] create failed")
        return internal_error("An error occurred while recording the payment.")

    return jsonify(success=True, data=rec), 201


@payments_bp.route("/parent/<id:parent_id>", methods=["GET"])
@require_role()
def parent_payments(parent_id: int):
    """Optional query: status, start, end, limit, offset"""
    if not g.user.is_admin and g.user.id != parent_id:
        return error_response(ApiError(403, "FORBIDDEN", "You can only view your own payment history."))
    try:
        result = payment_svc.list_payments(parent_id=parent_id, **_filters())
    except ApiError as e:
        return error_response(e)
    return jsonify(success=True, data=result["payments"], pagination=result["pagination"]), 200


@payments_bp.route("/student/<id:student_id>", methods=["GET"])
@require_role()
def student_payments(student_id: int):
    student = db.session.get(Student, student_id)
    if student is None:
        return error_response(ApiError(404, "STUDENT_NOT_FOUND", "Student not found."))
    if not g.user.is_admin and student.parent_id != g.user.id:
        return error_response(
            ApiError(403, "FORBIDDEN", "You can only view payment history for your own students.")
        )
    try:
        result = payment_svc.list_payments(student_id=student_id, **_filters())
    except ApiError as e:
        return error_response(e)
    return jsonify(success=True, data=result["payments"], pagination=result["pagination"]), 200


@payments_bp.route("/<id:payment_id>/status", methods=["PUT"])
@require_role("admin")
def update_payment_status(payment_id: int):
    """Body: { status: pending|completed|failed, chapa_transaction_id?, payment_method? }"""
    data = request.get_json(silent=True) or {}
    try:
        rec = payment_svc.update_payment_status(
            payment_id,
            data.get("status"),
            chapa_transaction_id=_short_text(data, "chapa_transaction_id", 50),
            payment_method=_short_text(data, "payment_method", 20),
        )
    except ApiError as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[payments] status update failed id=%s", payment_id)
        return internal_error("An error occurred while updating the payment.")

    return jsonify(success=True, data=rec, message="Payment status updated successfully"), 200
