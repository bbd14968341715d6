# models/rfid_card.py
from db import db
from utils.clock import utcnow


class RFIDCard(db.Model):
    __tablename__ = "rfid_cards"

    id         = db.Column(db.Integer, primary_key=True)
    rfid_tag   = db.Column(db.String(50), nullable=False, unique=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    issued_at  = db.Column(db.DateTime, nullable=False, default=utcnow)
    active     = db.Column(db.Boolean, nullable=False, default=True)

    student = db.relationship("Student", back_populates="rfid_cards")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rfid_tag": self.rfid_tag,
            "student_id": self.student_id,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
            "active": bool(self.active),
        }
