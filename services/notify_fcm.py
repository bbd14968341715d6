# services/notify_fcm.py
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from firebase_admin import exceptions as fb_exceptions
from firebase_admin import messaging
from flask import current_app

from db import db
from firebase_init import get_firebase_app
from models.notification import Notification
from models.user import User
from utils.clock import utc_iso, utcnow

TITLES = {
    "boarding": "Student Boarded Bus",
    "exiting": "Student Exited Bus",
    "alcohol_alert": "Driver Safety Alert",
    "critical_motion_alert": "CRITICAL: Bus Movement After Failed Test",
    "speed_violation": "Speed Violation Alert",
    "payment_confirmation": "Payment Confirmed",
    "test": "Test Notification",
}

# Errors meaning the stored token will never work again
_DEAD_TOKEN_ERRORS = (messaging.UnregisteredError, messaging.SenderIdMismatchError)


def title_for(kind: str) -> str:
    return TITLES.get(kind, "Notification")


def _stringify(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # FCM data payloads accept string values only
    out = {}
    for k, v in (data or {}).items():
        if v is None:
            continue
        out[str(k)] = v if isinstance(v, str) else json.dumps(v)
    return out


def build_message(token: str, *, user_id: int, kind: str, message: str,
                  data: Optional[Dict[str, Any]] = None) -> messaging.Message:
    return messaging.Message(
        token=token,
        notification=messaging.Notification(title=title_for(kind), body=message),
        data={
            "type": kind,
            "message": message,
            "userId": str(int(user_id)),
            "timestamp": utc_iso(),
            **_stringify(data),
        },
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(sound="default", channel_id="default"),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=1)),
        ),
    )


def _log_notification(user_id: int, kind: str, message: str) -> None:
    try:
        db.session.add(Notification(user_id=user_id, type=kind, message=message, sent_at=utcnow()))
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[fcm] failed to log notification uid=%s type=%s", user_id, kind)


def send_fcm_notification(user_id: int, kind: str, message: str,
                          data: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """
    Push `message` to the user's registered device and record it in `notifications`.
    Returns the FCM message id, or None when nothing was sent.
    Never raises: a failed push must not break the calling flow.
    """
    log = current_app.logger

    if not current_app.config.get("PUSH_ENABLED", True):
        log.info("[fcm] disabled by config; skipping uid=%s type=%s", user_id, kind)
        return None
    if get_firebase_app() is None:
        log.warning("[fcm] Firebase not initialized; skipping uid=%s type=%s", user_id, kind)
        return None

    user = db.session.get(User, user_id)
    if user is None:
        log.warning("[fcm] user %s not found", user_id)
        return None
    if not user.fcm_token:
        log.info("[fcm] user %s has no FCM token; skipping", user_id)
        return None

    msg_id = None
    try:
        msg_id = messaging.send(build_message(user.fcm_token, user_id=user.id, kind=kind, message=message, data=data))
        log.info("[fcm] sent uid=%s type=%s id=%s", user_id, kind, msg_id)
    except _DEAD_TOKEN_ERRORS:
        log.warning("[fcm] token for uid=%s is no longer registered; clearing it", user_id)
        user.fcm_token = None
        db.session.commit()
    except fb_exceptions.InvalidArgumentError:
        log.warning("[fcm] invalid token for uid=%s; clearing it", user_id)
        user.fcm_token = None
        db.session.commit()
    except Exception:
        log.exception("[fcm] send failed uid=%s type=%s", user_id, kind)

    # logged whether or not the push went out
    _log_notification(user.id, kind, message)
    return msg_id


def send_attendance_notification(parent_id: int, student_name: str, attendance_type: str,
                                 location: Optional[str] = None) -> Optional[str]:
    verb = "boarded" if attendance_type == "boarding" else "exited"
    text = f"{student_name} has {verb} the bus" + (f" at {location}" if location else "")
    return send_fcm_notification(
        parent_id,
        attendance_type,
        text,
        {
            "studentName": student_name,
            "attendanceType": attendance_type,
            "location": location,
        },
    )


def notify_admins(kind: str, message: str, data: Optional[Dict[str, Any]] = None) -> int:
    """Fan a push out to every admin. Returns how many admins were addressed."""
    admins = User.query.filter(User.role == "admin").order_by(User.id.asc()).all()
    for admin in admins:
        send_fcm_notification(admin.id, kind, message, data)
    current_app.logger.info("[fcm] %s sent to %d admin(s)", kind, len(admins))
    return len(admins)
