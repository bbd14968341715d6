# models/route_assignment.py
from db import db


class RouteAssignment(db.Model):
    __tablename__ = "route_assignments"

    id               = db.Column(db.Integer, primary_key=True, autoincrement=True)
    route_id         = db.Column(db.Integer, db.ForeignKey("routes.id", ondelete="CASCADE"), nullable=False)
    student_id       = db.Column(db.Integer, db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    pickup_latitude  = db.Column(db.Numeric(10, 8), nullable=True)
    pickup_longitude = db.Column(db.Numeric(11, 8), nullable=True)

    # 0-based stop position along the route; NULL until set or optimized
    pickup_order     = db.Column(db.Integer, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("route_id", "student_id", name="route_assignments_route_id_student_id_unique"),
        db.Index("route_assignments_route_id_pickup_order_idx", "route_id", "pickup_order"),
    )

    route   = db.relationship("Route", back_populates="assignments")
    student = db.relationship("Student", back_populates="assignments")

    @property
    def has_coordinates(self) -> bool:
        return self.pickup_latitude is not None and self.pickup_longitude is not None
