# services/route_assignment.py
"""
Student ↔ route assignments.

Invariant: a student is assigned to a given route at most once. The unique
index on (route_id, student_id) is the source of truth; the lookup before the
insert only saves a round-trip in the common case.

Public API:
  - create_route_assignment(route_id, student_id, pickup_latitude=None,
                            pickup_longitude=None, pickup_order=None) -> dict
  - get_assignments_by_route_id(route_id) -> list[dict]
  - delete_route_assignment(assignment_id) -> dict
"""

from __future__ import annotations

from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from db import db
from errors import ApiError
from models.route import Route
from models.route_assignment import RouteAssignment
from models.student import Student
from utils.geo import as_float
from utils.ids import parse_id


def assignment_to_dict(a: RouteAssignment) -> dict:
    return {
        "id": a.id,
        "route_id": a.route_id,
        "student_id": a.student_id,
        "pickup_latitude": as_float(a.pickup_latitude),
        "pickup_longitude": as_float(a.pickup_longitude),
        "pickup_order": a.pickup_order,
        "student": a.student.summary() if a.student else None,
    }


def ordered_assignments_query(route_id: int):
    """Assignments of one route: pickup_order ascending, NULLs last, then id."""
    return (
        RouteAssignment.query
        .filter(RouteAssignment.route_id == route_id)
        .order_by(
            RouteAssignment.pickup_order.is_(None),
            RouteAssignment.pickup_order.asc(),
            RouteAssignment.id.asc(),
        )
    )


def _find_existing(route_id: int, student_id: int) -> Optional[RouteAssignment]:
    return RouteAssignment.query.filter_by(route_id=route_id, student_id=student_id).first()


def _already_assigned() -> ApiError:
    return ApiError(409, "ALREADY_ASSIGNED", "Student is already assigned to this route.")


def create_route_assignment(
    route_id: int,
    student_id: int,
    pickup_latitude=None,
    pickup_longitude=None,
    pickup_order: Optional[int] = None,
) -> dict:
    if db.session.get(Route, route_id) is None:
        raise ApiError(404, "ROUTE_NOT_FOUND", "Route not found.")
    if db.session.get(Student, student_id) is None:
        raise ApiError(404, "STUDENT_NOT_FOUND", "Student not found.")

    if _find_existing(route_id, student_id) is not None:
        current_app.logger.info(
            "[route-assignments] duplicate route=%s student=%s (pre-check)", route_id, student_id
        )
        raise _already_assigned()

    a = RouteAssignment(
        route_id=route_id,
        student_id=student_id,
        pickup_latitude=pickup_latitude,
        pickup_longitude=pickup_longitude,
        pickup_order=pickup_order,
    )
    db.session.add(a)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # lost a race against a concurrent insert of the same pair
        if _find_existing(route_id, student_id) is not None:
            current_app.logger.info(
                "[route-assignments] duplicate route=%s student=%s (unique index)", route_id, student_id
            )
            raise _already_assigned()
        raise

    current_app.logger.info(
        "[route-assignments] created id=%s route=%s student=%s", a.id, route_id, student_id
    )
    return assignment_to_dict(a)


def get_assignments_by_route_id(route_id: int) -> list[dict]:
    if parse_id(route_id) is None or db.session.get(Route, route_id) is None:
        raise ApiError(404, "ROUTE_NOT_FOUND", "Route not found.")
    return [assignment_to_dict(a) for a in ordered_assignments_query(route_id).all()]


def delete_route_assignment(assignment_id: int) -> dict:
    a = db.session.get(RouteAssignment, assignment_id) if parse_id(assignment_id) is not None else None
    if a is None:
        raise ApiError(404, "ASSIGNMENT_NOT_FOUND", "Route assignment not found.")
    db.session.delete(a)
    db.session.commit()
    current_app.logger.info("[route-assignments] deleted id=%s", assignment_id)
    return {"deleted": True, "id": assignment_id}
