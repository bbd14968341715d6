# routes/notifications.py
from __future__ import annotations

import time

from flask import Blueprint, jsonify, g, request

from auth_guard import require_role
from db import db
from models.notification import Notification
from services.notify_fcm import send_fcm_notification
from utils.clock import utcnow

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@require_role()
def list_notifications():
    """Caller's notification log, newest first. Optional: unread=1"""
    q = Notification.query.filter(Notification.user_id == g.user.id)
    if (request.args.get("unread") or "").strip() in {"1", "true", "yes"}:
        q = q.filter(Notification.read_at.is_(None))
    rows = q.order_by(Notification.sent_at.desc(), Notification.id.desc()).limit(200).all()
    return jsonify(success=True, data=[n.to_dict() for n in rows]), 200


@notifications_bp.route("/<id:notification_id>/read", methods=["POST"])
@require_role()
def mark_read(notification_id: int):
    n = db.session.get(Notification, notification_id)
    if n is None or n.user_id != g.user.id:
        return jsonify(success=False, code="NOTIFICATION_NOT_FOUND", message="Notification not found."), 404
    if n.read_at is None:
        n.read_at = utcnow()
        db.session.commit()
    return jsonify(success=True, data=n.to_dict()), 200


@notifications_bp.route("/test", methods=["POST"])
@require_role()
def send_test_notification():
    """Send a quick test push to the currently signed-in user."""
    msg_id = send_fcm_notification(
        g.user.id,
        "test",
        "This is a test notification from the school bus tracker!",
        {"test": "true", "sentAt": int(time.time() * 1000)},
    )
    return jsonify(success=True, message="Test notification sent successfully", data={"message_id": msg_id}), 200
