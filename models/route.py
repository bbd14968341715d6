# models/route.py
from db import db
from sqlalchemy.sql import func


class Route(db.Model):
    __tablename__ = "routes"

    id         = db.Column(db.Integer, primary_key=True)
    bus_id     = db.Column(db.Integer, db.ForeignKey("buses.id", ondelete="CASCADE"), nullable=False, index=True)
    name       = db.Column(db.String(100), nullable=False)
    start_time = db.Column(db.Time, nullable=True)
    end_time   = db.Column(db.Time, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    bus = db.relationship("Bus", back_populates="routes")

    # DB cascade removes the rows; the ORM must not try to NULL route_id first
    assignments = db.relationship(
        "RouteAssignment",
        back_populates="route",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
