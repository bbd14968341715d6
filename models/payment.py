# models/payment.py
from db import db
from sqlalchemy.sql import func
from utils.clock import utcnow

PAYMENT_STATUSES = ("pending", "completed", "failed")


class Payment(db.Model):
    __tablename__ = "payments"

    id                   = db.Column(db.Integer, primary_key=True)
    parent_id            = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id           = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    amount               = db.Column(db.Numeric(10, 2), nullable=False)

    # gateway transaction reference (tx_ref); unique when present
    chapa_transaction_id = db.Column(db.String(50), nullable=True, unique=True)
    payment_method       = db.Column(db.String(20), nullable=True)
    status               = db.Column(db.Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default="pending")
    timestamp            = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at           = db.Column(db.DateTime, server_default=func.now(), nullable=False)

    parent  = db.relationship("User")
    student = db.relationship("Student")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "student_id": self.student_id,
            "amount": float(self.amount) if self.amount is not None else None,
            "chapa_transaction_id": self.chapa_transaction_id,
            "payment_method": self.payment_method,
            "status": self.status,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "student": self.student.summary() if self.student else None,
        }
