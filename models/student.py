# models/student.py
from db import db
from sqlalchemy.sql import func


class Student(db.Model):
    __tablename__ = "students"

    id             = db.Column(db.Integer, primary_key=True)
    full_name      = db.Column(db.String(100), nullable=False)
    grade          = db.Column(db.String(20), nullable=True)
    parent_id      = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    home_latitude  = db.Column(db.Numeric(10, 8), nullable=True)
    home_longitude = db.Column(db.Numeric(11, 8), nullable=True)

    created_at     = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at     = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    parent = db.relationship("User", back_populates="students")

    assignments = db.relationship(
        "RouteAssignment", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )
    rfid_cards = db.relationship(
        "RFIDCard", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )
    attendances = db.relationship(
        "Attendance", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )
    geofences = db.relationship(
        "Geofence", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )

    def summary(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "grade": self.grade,
            "parent_id": self.parent_id,
        }
