# models/geofence.py
from db import db

GEOFENCE_TYPES = ("school", "home")


class Geofence(db.Model):
    __tablename__ = "geofences"

    id            = db.Column(db.Integer, primary_key=True)
    name          = db.Column(db.String(100), nullable=False)
    type          = db.Column(db.Enum(*GEOFENCE_TYPES, name="geofence_type"), nullable=False)
    latitude      = db.Column(db.Numeric(10, 8), nullable=False)
    longitude     = db.Column(db.Numeric(11, 8), nullable=False)
    radius_meters = db.Column(db.Integer, nullable=True, default=50)
    student_id    = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="CASCADE"), nullable=True, index=True)
    bus_id        = db.Column(db.Integer, db.ForeignKey("buses.id", ondelete="CASCADE"), nullable=True, index=True)

    student = db.relationship("Student", back_populates="geofences")
    bus     = db.relationship("Bus", back_populates="geofences")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "latitude": float(self.latitude),
            "longitude": float(self.longitude),
            "radius_meters": self.radius_meters,
            "student_id": self.student_id,
            "bus_id": self.bus_id,
        }
