# models/location.py
from db import db
from sqlalchemy.sql import func
from utils.clock import utcnow


class Location(db.Model):
    """GPS fix reported by a bus tracker."""
    __tablename__ = "locations"

    id         = db.Column(db.Integer, primary_key=True)
    bus_id     = db.Column(db.Integer, db.ForeignKey("buses.id", ondelete="CASCADE"), nullable=False)
    latitude   = db.Column(db.Numeric(10, 8), nullable=False)
    longitude  = db.Column(db.Numeric(11, 8), nullable=False)
    speed      = db.Column(db.Numeric(5, 2), nullable=True)  # km/h
    timestamp  = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        db.Index("locations_bus_id_timestamp_idx", "bus_id", "timestamp"),
    )

    bus = db.relationship("Bus")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bus_id": self.bus_id,
            "bus_number": self.bus.bus_number if self.bus else None,
            "latitude": float(self.latitude),
            "longitude": float(self.longitude),
            "speed": float(self.speed) if self.speed is not None else None,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
