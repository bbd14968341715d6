# models/driver_rating.py
from db import db
from sqlalchemy.sql import func


class DriverRating(db.Model):
    """One row per driver per rating period (usually a calendar month)."""
    __tablename__ = "driver_ratings"

    id                            = db.Column(db.Integer, primary_key=True)
    driver_id                     = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    safety_compliance_score       = db.Column(db.Numeric(5, 2), nullable=True, default=0)
    parental_feedback_score       = db.Column(db.Numeric(5, 2), nullable=True, default=0)
    operational_performance_score = db.Column(db.Numeric(5, 2), nullable=True, default=0)
    overall_score                 = db.Column(db.Numeric(5, 2), nullable=True, default=0)
    missed_pickups                = db.Column(db.Integer, nullable=True, default=0)
    period_start                  = db.Column(db.Date, nullable=False)
    period_end                    = db.Column(db.Date, nullable=False)
    updated_at                    = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("driver_id", "period_start", "period_end", name="driver_ratings_driver_period_unique"),
    )

    driver = db.relationship("User")

    def to_dict(self) -> dict:
        def _f(v):
            return float(v) if v is not None else 0.0

        return {
            "id": self.id,
            "driver_id": self.driver_id,
            "driver": {"id": self.driver.id, "name": self.driver.name, "email": self.driver.email}
            if self.driver else None,
            "safety_compliance_score": _f(self.safety_compliance_score),
            "parental_feedback_score": _f(self.parental_feedback_score),
            "operational_performance_score": _f(self.operational_performance_score),
            "overall_score": _f(self.overall_score),
            "missed_pickups": self.missed_pickups or 0,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
        }
