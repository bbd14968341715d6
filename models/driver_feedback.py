# models/driver_feedback.py
from db import db
from sqlalchemy.sql import func
from utils.clock import utcnow


class DriverFeedback(db.Model):
    __tablename__ = "driver_feedback"

    id        = db.Column(db.Integer, primary_key=True)
    driver_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating    = db.Column(db.Integer, nullable=True)  # 1..5 stars
    comment   = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="check_rating"),
    )

    driver = db.relationship("User", foreign_keys=[driver_id])
    parent = db.relationship("User", foreign_keys=[parent_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "parent_id": self.parent_id,
            "parent_name": self.parent.name if self.parent else None,
            "rating": self.rating,
            "comment": self.comment,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
