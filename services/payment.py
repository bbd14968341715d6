# services/payment.py
"""
Transport-fee payments made by parents for their children.

A payment starts `pending` and is moved to `completed` or `failed` by an
admin. Moving it to `completed` sends the parent a `payment_confirmation` push.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from db import db
from errors import ApiError
from models.payment import Payment, PAYMENT_STATUSES
from models.student import Student
from services.notify_fcm import send_fcm_notification


def _tx_taken() -> ApiError:
    return ApiError(409, "DUPLICATE_TRANSACTION", "Payment with this transaction ID already exists.")


def create_payment(*, parent_id: int, student_id: int, amount: Decimal,
                   chapa_transaction_id: Optional[str] = None, payment_method: Optional[str] = None,
                   status: str = "pending") -> dict:
    student = Student.query.filter_by(id=student_id, parent_id=parent_id).first()
    if student is None:
        raise ApiError(400, "INVALID_STUDENT", "Student not found or does not belong to the specified parent.")

    if chapa_transaction_id and Payment.query.filter_by(chapa_transaction_id=chapa_transaction_id).first():
        raise _tx_taken()

    p = Payment(
        parent_id=parent_id,
        student_id=student_id,
        amount=amount,
        chapa_transaction_id=chapa_transaction_id or None,
        payment_method=payment_method or None,
        status=status,
    )
    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if chapa_transaction_id and Payment.query.filter_by(chapa_transaction_id=chapa_transaction_id).first():
            raise _tx_taken()
        raise

    current_app.logger.info(
        "[payments] created id=%s parent=%s student=%s amount=%s status=%s",
        p.id, parent_id, student_id, amount, status,
    )
    if status == "completed":
        _confirm(p)
    return p.to_dict()


def update_payment_status(payment_id: int, status: str, *, chapa_transaction_id: Optional[str] = None,
                          payment_method: Optional[str] = None) -> dict:
    if status not in PAYMENT_STATUSES:
        raise ApiError(400, "INVALID_STATUS", "Status must be one of: pending, completed, failed")

    p = db.session.get(Payment, payment_id)
    if p is None:
        raise ApiError(404, "PAYMENT_NOT_FOUND", "Payment not found.")

    if chapa_transaction_id and chapa_transaction_id != p.chapa_transaction_id:
        if Payment.query.filter_by(chapa_transaction_id=chapa_transaction_id).first():
            raise _tx_taken()
        p.chapa_transaction_id = chapa_transaction_id
    if payment_method:
        p.payment_method = payment_method

    previous, p.status = p.status, status
    db.session.commit()
    current_app.logger.info("[payments] id=%s status %s -> %s", p.id, previous, status)

    if status == "completed" and previous != "completed":
        _confirm(p)
    return p.to_dict()


def _confirm(p: Payment) -> None:
    name = p.student.full_name if p.student else "your child"
    send_fcm_notification(
        p.parent_id,
        "payment_confirmation",
        f"Payment of {float(p.amount):.2f} for {name} has been confirmed.",
        {"paymentId": p.id, "studentId": p.student_id, "amount": f"{float(p.amount):.2f}"},
    )


def list_payments(*, parent_id: Optional[int] = None, student_id: Optional[int] = None,
                  status: Optional[str] = None, start: Optional[datetime] = None,
                  end: Optional[datetime] = None, limit: int = 50, offset: int = 0) -> dict:
    q = Payment.query
    if parent_id is not None:
        q = q.filter(Payment.parent_id == parent_id)
    if student_id is not None:
        q = q.filter(Payment.student_id == student_id)
    if status in PAYMENT_STATUSES:
        q = q.filter(Payment.status == status)
    if start is not None:
        q = q.filter(Payment.timestamp >= start)
    if end is not None:
        q = q.filter(Payment.timestamp <= end)

    total = q.count()
    rows = q.order_by(Payment.timestamp.desc(), Payment.id.desc()).limit(limit).offset(offset).all()
    return {
        "payments": [p.to_dict() for p in rows],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }
