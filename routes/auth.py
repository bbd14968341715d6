# routes/auth.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import OperationalError

from auth_guard import issue_token
from db import db
from models.user import User

__all__ = ["auth_bp"]
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Sign in with email or username and return a JWT.
    Body: { email | username, password }
    """
    data = request.get_json(silent=True) or {}
    ident = (data.get("email") or data.get("username") or "").strip()
    password = data.get("password") or ""
    if not ident or not password:
        return jsonify(success=False, code="VALIDATION_ERROR",
                       message="email (or username) and password are required."), 400

    def _get_user():
        return User.query.filter((User.email == ident.lower()) | (User.username == ident)).first()

    # One-time retry if DB connection dropped
    try:
        user = _get_user()
    except OperationalError as e:
        current_app.logger.warning("[auth] DB connection dropped; retrying once… %s", e)
        db.session.remove()
        db.engine.dispose()
        user = _get_user()

    if not (user and user.check_password(password)):
        current_app.logger.info("[auth] failed login ident=%s ip=%s", ident, request.remote_addr)
        return jsonify(success=False, code="INVALID_CREDENTIALS", message="Invalid email or password."), 401

    token = issue_token(user)
    current_app.logger.info("[auth] login uid=%s role=%s", user.id, user.role)
    return jsonify(success=True, data={"token": token, "user": user.to_profile()}), 200
