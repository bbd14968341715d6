# auth_guard.py
from __future__ import annotations

import jwt
from functools import wraps
from datetime import datetime, timezone, timedelta

from flask import request, jsonify, g, current_app

from db import db
from models.user import User

__all__ = ["require_role", "issue_token"]

_ALGORITHM = "HS256"


def _deny(status: int, code: str, message: str):
    return jsonify(success=False, code=code, message=message), status


def issue_token(user: User) -> str:
    ttl = int(current_app.config.get("JWT_TTL_HOURS", 24))
    payload = {
        "user_id": user.id,
        "role": (user.role or "").lower(),
        "exp": datetime.now(timezone.utc) + timedelta(hours=ttl),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm=_ALGORITHM)


def require_role(*roles):
    """
    Usage:
      @require_role()                    -> any authenticated user
      @require_role("admin")             -> only admins
      @require_role("parent", "driver")  -> parent or driver (or admin)
    """
    # Support passing a single list/tuple as well
    if len(roles) == 1 and isinstance(roles[0], (list, tuple, set)):
        roles = tuple(roles[0])
    allowed = {str(r).lower() for r in roles if r}

    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                return _deny(401, "UNAUTHORIZED", "Missing token.")

            token = auth.split(" ", 1)[1]
            try:
                payload = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[_ALGORITHM])
            except jwt.ExpiredSignatureError:
                return _deny(401, "UNAUTHORIZED", "Token has expired.")
            except jwt.InvalidTokenError:
                return _deny(401, "UNAUTHORIZED", "Invalid token.")

            uid = payload.get("user_id")
            user = db.session.get(User, uid) if uid is not None else None
            if not user:
                return _deny(401, "UNAUTHORIZED", "User not found.")

            role = (user.role or "").lower()
            g.user = user  # type: ignore[attr-defined]
            g.role = role  # type: ignore[attr-defined]

            current_app.logger.info(
                "[guard] %s %s uid=%s role=%s ip=%s",
                request.method, request.path, user.id, role, request.remote_addr,
            )

            # Role check (admin bypass)
            if allowed and role not in allowed and role != "admin":
                return _deny(403, "FORBIDDEN", "Insufficient permissions.")

            return f(*args, **kwargs)

        return wrapped

    return decorator
