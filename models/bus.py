from __future__ import annotations
from db import db


class School(db.Model):
    __tablename__ = "schools"

    id        = db.Column(db.Integer, primary_key=True)
    name      = db.Column(db.String(100), nullable=False)
    address   = db.Column(db.Text, nullable=True)
    latitude  = db.Column(db.Numeric(10, 8), nullable=True)
    longitude = db.Column(db.Numeric(11, 8), nullable=True)

    buses = db.relationship("Bus", back_populates="school")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "latitude": float(self.latitude) if self.latitude is not None else None,
            "longitude": float(self.longitude) if self.longitude is not None else None,
        }


class Bus(db.Model):
    __tablename__ = "buses"

    id         = db.Column(db.Integer, primary_key=True)
    bus_number = db.Column(db.String(20), nullable=False, unique=True)
    driver_id  = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    school_id  = db.Column(db.Integer, db.ForeignKey("schools.id", ondelete="SET NULL"), nullable=True, index=True)
    capacity   = db.Column(db.Integer, nullable=True, default=50)

    driver = db.relationship("User", back_populates="driven_buses", foreign_keys=[driver_id])
    school = db.relationship("School", back_populates="buses")

    routes = db.relationship("Route", back_populates="bus", cascade="all, delete-orphan", passive_deletes=True)
    geofences = db.relationship("Geofence", back_populates="bus", cascade="all, delete-orphan", passive_deletes=True)
    attendances = db.relationship("Attendance", back_populates="bus", cascade="all, delete-orphan", passive_deletes=True)

    def summary(self) -> dict:
        return {"id": self.id, "bus_number": self.bus_number, "capacity": self.capacity}
