# routes/users.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError

from auth_guard import require_role
from db import db
from models.user import User

users_bp = Blueprint("users", __name__, url_prefix="/api/user")

_PROFILE_FIELDS = ("name", "phone_number", "username", "language_preference")


@users_bp.route("/me", methods=["GET"])
@require_role()
def get_me():
    return jsonify(success=True, data=g.user.to_profile()), 200


@users_bp.route("/me", methods=["PUT"])
@require_role()
def update_me():
    """Body: any of { name, phone_number, username, language_preference }"""
    data = request.get_json(silent=True) or {}
    user = g.user

    if "name" in data and not (isinstance(data["name"], str) and data["name"].strip()):
        return jsonify(success=False, code="VALIDATION_ERROR", message="name cannot be empty."), 400

    for key in _PROFILE_FIELDS:
        if key in data:
            val = data[key]
            setattr(user, key, val.strip() if isinstance(val, str) and val.strip() else None)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(success=False, code="USERNAME_TAKEN", message="username already in use."), 409
    return jsonify(success=True, data=user.to_profile()), 200


@users_bp.route("/fcm-token", methods=["POST"])
@require_role()
def update_fcm_token():
    """
    Register the caller's current device for push.
    Body: { fcmToken }
    """
    data = request.get_json(silent=True) or {}
    token = data.get("fcmToken")
    if not token or not isinstance(token, str) or not token.strip():
        return jsonify(success=False, code="INVALID_FCM_TOKEN",
                       message="FCM token is required and must be a string."), 400

    g.user.fcm_token = token.strip()
    db.session.commit()
    current_app.logger.info("[fcm] token registered uid=%s token_prefix=%s", g.user.id, token[:18])
    return jsonify(success=True, data={"message": "FCM token updated successfully"}), 200


@users_bp.route("/fcm-token", methods=["DELETE"])
@require_role()
def clear_fcm_token():
    """Stop push to this user (sign-out on the device)."""
    g.user.fcm_token = None
    db.session.commit()
    current_app.logger.info("[fcm] token cleared uid=%s", g.user.id)
    return jsonify(success=True, data={"message": "FCM token removed"}), 200


@users_bp.route("/drivers", methods=["GET"])
@require_role()
def list_drivers():
    rows = User.query.filter(User.role == "driver").order_by(User.name.asc()).all()
    return jsonify(success=True, data=[{"id": u.id, "name": u.name, "email": u.email} for u in rows]), 200
