# services/driver_feedback.py
from __future__ import annotations

from typing import Optional

from flask import current_app

from db import db
from errors import ApiError
from models.bus import Bus
from models.driver_feedback import DriverFeedback
from models.route import Route
from models.route_assignment import RouteAssignment
from models.student import Student
from models.user import User


def _check_parent_rides_with_driver(parent_id: int, driver_id: int) -> None:
    """The parent must have a child assigned to a route of one of the driver's buses."""
    bus_ids = [bid for (bid,) in db.session.query(Bus.id).filter(Bus.driver_id == driver_id)]
    if not bus_ids:
        raise ApiError(400, "DRIVER_NO_BUS", "Driver is not assigned to any bus.")

    student_ids = [sid for (sid,) in db.session.query(Student.id).filter(Student.parent_id == parent_id)]
    if not student_ids:
        raise ApiError(400, "NO_STUDENTS", "You do not have any students.")

    hit = (
        db.session.query(RouteAssignment.id)
        .join(Route, Route.id == RouteAssignment.route_id)
        .filter(Route.bus_id.in_(bus_ids), RouteAssignment.student_id.in_(student_ids))
        .first()
    )
    if hit is None:
        raise ApiError(403, "NO_STUDENT_ASSIGNMENT", "You do not have any students assigned to this driver's bus.")


def submit_feedback(*, driver_id: int, parent_id: int, rating, comment: Optional[str] = None) -> dict:
    if rating is None:
        raise ApiError(400, "MISSING_RATING", "rating is required.")
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ApiError(400, "INVALID_RATING", "rating must be an integer between 1 and 5.")

    driver = db.session.get(User, driver_id)
    if driver is None or driver.role != "driver":
        raise ApiError(404, "DRIVER_NOT_FOUND", "Driver not found.")
    parent = db.session.get(User, parent_id)
    if parent is None or parent.role != "parent":
        raise ApiError(404, "PARENT_NOT_FOUND", "Parent not found.")

    _check_parent_rides_with_driver(parent_id, driver_id)

    fb = DriverFeedback(
        driver_id=driver_id,
        parent_id=parent_id,
        rating=rating,
        comment=(comment or "").strip() or None,
    )
    db.session.add(fb)
    db.session.commit()
    # ratings pick this up on the next `flask recompute-ratings` run
    current_app.logger.info("[feedback] id=%s driver=%s parent=%s rating=%s", fb.id, driver_id, parent_id, rating)
    return fb.to_dict()


def list_feedback(*, driver_id: Optional[int] = None, parent_id: Optional[int] = None, limit: int = 50) -> list[dict]:
    q = DriverFeedback.query
    if driver_id is not None:
        q = q.filter(DriverFeedback.driver_id == driver_id)
    if parent_id is not None:
        q = q.filter(DriverFeedback.parent_id == parent_id)
    rows = q.order_by(DriverFeedback.timestamp.desc(), DriverFeedback.id.desc()).limit(limit).all()
    return [r.to_dict() for r in rows]
