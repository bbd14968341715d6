# firebase_init.py
from __future__ import annotations

import base64
import binascii
import json
import os
from pathlib import Path

import firebase_admin
from firebase_admin import credentials
from flask import current_app

__all__ = ["get_firebase_app", "load_service_account"]


def load_service_account(raw: str) -> dict:
    """Service-account JSON given inline, either plain or base64-encoded."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(base64.b64decode(raw).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY must be valid JSON or base64-encoded JSON")


def _resolve_key_path(raw: str) -> Path:
    p = Path(raw)
    if not p.is_absolute():
        # relative names resolve from the project root (where this file lives)
        p = Path(__file__).resolve().parent / p
    return p


def get_firebase_app():
    """
    Initialize Firebase Admin once and return the app, or None when no
    credentials are configured (push is then skipped, the API keeps working).
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cfg = current_app.config
    log = current_app.logger

    # 1) service-account file
    sa_path = cfg.get("FIREBASE_SERVICE_ACCOUNT_KEY_PATH") or cfg.get("GOOGLE_APPLICATION_CREDENTIALS")
    # 2) inline JSON (cloud deployments)
    inline = cfg.get("FIREBASE_SERVICE_ACCOUNT_KEY")

    try:
        if sa_path:
            p = _resolve_key_path(sa_path)
            if not p.is_file():
                log.warning("[firebase] service account file missing (wanted: %s; cwd=%s)", p, os.getcwd())
                return None
            with open(p, "r", encoding="utf-8") as f:
                data = json.load(f)
            source = str(p)
        elif inline:
            data = load_service_account(inline)
            source = "FIREBASE_SERVICE_ACCOUNT_KEY"
        else:
            log.warning("[firebase] not configured; push notifications disabled")
            return None

        opts = {"projectId": data["project_id"]} if data.get("project_id") else None
        app = firebase_admin.initialize_app(credentials.Certificate(data), opts)
    except (ValueError, OSError):
        log.exception("[firebase] initialization failed")
        return None

    log.info("[firebase] Admin SDK initialized from %s", source)
    return app
