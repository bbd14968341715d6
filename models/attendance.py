# models/attendance.py
from db import db
from utils.clock import utcnow

ATTENDANCE_TYPES = ("boarding", "exiting")


class Attendance(db.Model):
    __tablename__ = "attendance"

    id              = db.Column(db.Integer, primary_key=True)
    student_id      = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    bus_id          = db.Column(db.Integer, db.ForeignKey("buses.id", ondelete="CASCADE"), nullable=False, index=True)
    rfid_card_id    = db.Column(db.Integer, db.ForeignKey("rfid_cards.id", ondelete="SET NULL"), nullable=True)
    type            = db.Column(db.String(16), nullable=False)
    timestamp       = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    latitude        = db.Column(db.Numeric(10, 8), nullable=True)
    longitude       = db.Column(db.Numeric(11, 8), nullable=True)
    geofence_id     = db.Column(db.Integer, db.ForeignKey("geofences.id", ondelete="SET NULL"), nullable=True)
    manual_override = db.Column(db.Boolean, nullable=True, default=False)

    student  = db.relationship("Student", back_populates="attendances")
    bus      = db.relationship("Bus", back_populates="attendances")
    rfid_card = db.relationship("RFIDCard")
    geofence = db.relationship("Geofence")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "student_name": self.student.full_name if self.student else None,
            "bus_id": self.bus_id,
            "bus_number": self.bus.bus_number if self.bus else None,
            "rfid_card_id": self.rfid_card_id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "latitude": float(self.latitude) if self.latitude is not None else None,
            "longitude": float(self.longitude) if self.longitude is not None else None,
            "geofence_id": self.geofence_id,
            "manual_override": bool(self.manual_override),
        }
