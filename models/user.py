from __future__ import annotations
from db import db
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash

ROLES = ("admin", "parent", "driver")


class User(db.Model):
    __tablename__ = "users"

    id                  = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name                = db.Column(db.String(255), nullable=False)
    email               = db.Column(db.String(254), nullable=False, unique=True, index=True)
    username            = db.Column(db.String(50), nullable=True, unique=True)
    password_hash       = db.Column(db.String(255), nullable=True)
    phone_number        = db.Column(db.String(20), nullable=True)
    role                = db.Column(db.String(32), nullable=False, default="parent", index=True)
    language_preference = db.Column(db.String(10), nullable=True, default="en")

    # Firebase Cloud Messaging registration token of the user's current device
    fcm_token           = db.Column(db.Text, nullable=True)

    created_at          = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at          = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # ── Relationships ────────────────────────────────────────────────────────
    students = db.relationship(
        "Student",
        back_populates="parent",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    driven_buses = db.relationship("Bus", back_populates="driver", foreign_keys="Bus.driver_id")
    notifications = db.relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="dynamic",
    )

    # ── Helpers ─────────────────────────────────────────────────────────────
    def set_password(self, raw: str) -> None:
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        try:
            return check_password_hash(self.password_hash or "", raw or "")
        except Exception:
            return False

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"

    @property
    def is_parent(self) -> bool:
        return (self.role or "").lower() == "parent"

    def to_profile(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role or "user",
            "phone_number": self.phone_number,
            "username": self.username,
            "language_preference": self.language_preference or "en",
        }
