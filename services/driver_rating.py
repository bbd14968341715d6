# services/driver_rating.py
"""
Monthly driver scorecards.

    overall = 0.40 * safety + 0.35 * parental + 0.25 * operational

  safety       100 - 20 per failed alcohol test - 5 per GPS fix above the speed limit
  parental     average parent star rating * 20 (0 when nobody rated)
  operational  punctuality - 10 per missed pickup, where punctuality is
               100 - 0.5 per minute the first boarding of a day was late
               against the bus's earliest scheduled route start

Every score is clamped to 0..100. Drivers without a bus score 0 on safety and
operational. The functions take explicit periods; choosing the period is the
caller's job (the `recompute-ratings` CLI command).
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy import func

from db import db
from errors import ApiError
from models.alcohol_test import AlcoholTest
from models.attendance import Attendance
from models.bus import Bus
from models.driver_feedback import DriverFeedback
from models.driver_rating import DriverRating
from models.location import Location
from models.route import Route
from models.route_assignment import RouteAssignment
from models.user import User
from utils.clock import utcnow

WEIGHTS = {"safety": 0.40, "parental": 0.35, "operational": 0.25}

ALCOHOL_PENALTY = 20
SPEED_PENALTY = 5
MISSED_PICKUP_PENALTY = 10
DELAY_PENALTY_PER_MINUTE = 0.5
MAX_SCORE = 100.0

SORTABLE = (
    "overall_score",
    "safety_compliance_score",
    "parental_feedback_score",
    "operational_performance_score",
    "period_start",
)


def _clamp(v: float) -> float:
    return min(MAX_SCORE, max(0.0, v))


def month_period(day: date) -> tuple[date, date]:
    return day.replace(day=1), day.replace(day=monthrange(day.year, day.month)[1])


def previous_month_period(today: date) -> tuple[date, date]:
    return month_period(today.replace(day=1) - timedelta(days=1))


def _window(start: date, end: date) -> tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def _bus_ids(driver_id: int) -> list[int]:
    return [bid for (bid,) in db.session.query(Bus.id).filter(Bus.driver_id == driver_id)]


# ---------- component scores ----------

def safety_score(driver_id: int, bus_ids: list[int], since: datetime, until: datetime) -> float:
    if not bus_ids:
        return 0.0
    failed = AlcoholTest.query.filter(
        AlcoholTest.driver_id == driver_id,
        AlcoholTest.passed.is_(False),
        AlcoholTest.timestamp.between(since, until),
    ).count()
    speeding = Location.query.filter(
        Location.bus_id.in_(bus_ids),
        Location.speed > float(current_app.config.get("SPEED_LIMIT_KMH", 60.0)),
        Location.timestamp.between(since, until),
    ).count()
    return _clamp(MAX_SCORE - failed * ALCOHOL_PENALTY - speeding * SPEED_PENALTY)


def parental_score(driver_id: int, since: datetime, until: datetime) -> float:
    avg = (
        db.session.query(func.avg(DriverFeedback.rating))
        .filter(
            DriverFeedback.driver_id == driver_id,
            DriverFeedback.rating.isnot(None),
            DriverFeedback.timestamp.between(since, until),
        )
        .scalar()
    )
    return 0.0 if avg is None else _clamp(float(avg) * 20)


def _boardings(bus_ids: list[int], since: datetime, until: datetime) -> list[Attendance]:
    return (
        Attendance.query.filter(
            Attendance.bus_id.in_(bus_ids),
            Attendance.type == "boarding",
            Attendance.timestamp.between(since, until),
        )
        .order_by(Attendance.timestamp.asc())
        .all()
    )


def count_missed_pickups(bus_ids: list[int], start: date, end: date, boardings: list[Attendance]) -> int:
    """One miss per assigned student per day without a boarding on that route's bus."""
    if not bus_ids:
        return 0
    route_bus = dict(db.session.query(Route.id, Route.bus_id).filter(Route.bus_id.in_(bus_ids)).all())
    if not route_bus:
        return 0
    assignments = RouteAssignment.query.filter(RouteAssignment.route_id.in_(list(route_bus))).all()
    if not assignments:
        return 0

    # days that have not happened yet cannot be missed
    last = min(end, utcnow().date())
    days = [start + timedelta(days=n) for n in range((last - start).days + 1)]
    boarded = {(b.student_id, b.bus_id, b.timestamp.date()) for b in boardings}
    return sum(
        1
        for a in assignments
        for d in days
        if (a.student_id, route_bus[a.route_id], d) not in boarded
    )


def punctuality_score(bus_ids: list[int], boardings: list[Attendance]) -> float:
    starts: dict[int, time] = {}
    routes = Route.query.filter(Route.bus_id.in_(bus_ids)).all() if bus_ids else []
    if not routes:
        return MAX_SCORE
    if not boardings:
        return 0.0
    for r in routes:
        if r.start_time is not None and (r.bus_id not in starts or r.start_time < starts[r.bus_id]):
            starts[r.bus_id] = r.start_time

    first_of_day: dict[tuple[date, int], datetime] = {}
    for b in boardings:
        first_of_day.setdefault((b.timestamp.date(), b.bus_id), b.timestamp)

    delays = []
    for (day, bus_id), ts in first_of_day.items():
        scheduled = starts.get(bus_id)
        if scheduled is None:
            continue
        late = (ts - datetime.combine(day, scheduled)).total_seconds() / 60
        delays.append(max(0.0, late))

    if not delays:
        return MAX_SCORE
    return _clamp(MAX_SCORE - (sum(delays) / len(delays)) * DELAY_PENALTY_PER_MINUTE)


# ---------- rating rows ----------

def calculate_driver_rating(driver_id: int, period_start: date, period_end: date) -> DriverRating:
    since, until = _window(period_start, period_end)
    bus_ids = _bus_ids(driver_id)

    safety = safety_score(driver_id, bus_ids, since, until)
    parental = parental_score(driver_id, since, until)

    boardings = _boardings(bus_ids, since, until) if bus_ids else []
    missed = count_missed_pickups(bus_ids, period_start, period_end, boardings)
    if bus_ids:
        operational = _clamp(punctuality_score(bus_ids, boardings) - missed * MISSED_PICKUP_PENALTY)
    else:
        operational = 0.0

    overall = (
        safety * WEIGHTS["safety"]
        + parental * WEIGHTS["parental"]
        + operational * WEIGHTS["operational"]
    )

    rating = DriverRating.query.filter_by(
        driver_id=driver_id, period_start=period_start, period_end=period_end
    ).first()
    if rating is None:
        rating = DriverRating(driver_id=driver_id, period_start=period_start, period_end=period_end)
        db.session.add(rating)
    rating.safety_compliance_score = round(safety, 2)
    rating.parental_feedback_score = round(parental, 2)
    rating.operational_performance_score = round(operational, 2)
    rating.overall_score = round(overall, 2)
    rating.missed_pickups = missed
    db.session.commit()
    return rating


def recalculate_all(period_start: date, period_end: date) -> int:
    """Recompute every driver's rating for the period; one failure does not stop the rest."""
    log = current_app.logger
    done = 0
    for (driver_id,) in db.session.query(User.id).filter(User.role == "driver").order_by(User.id.asc()).all():
        try:
            calculate_driver_rating(driver_id, period_start, period_end)
            done += 1
        except Exception:
            db.session.rollback()
            log.exception("[ratings] driver=%s period=%s..%s failed", driver_id, period_start, period_end)
    log.info("[ratings] recalculated %d driver(s) for %s..%s", done, period_start, period_end)
    return done


def driver_ratings(driver_id: int, *, today: Optional[date] = None, limit: int = 12) -> dict:
    """Current-month rating (None until computed) plus earlier periods, newest first."""
    if db.session.get(User, driver_id) is None:
        raise ApiError(404, "DRIVER_NOT_FOUND", "Driver not found.")
    start, end = month_period(today or utcnow().date())
    current = DriverRating.query.filter_by(driver_id=driver_id, period_start=start, period_end=end).first()
    history = (
        DriverRating.query.filter(DriverRating.driver_id == driver_id, DriverRating.period_start < start)
        .order_by(DriverRating.period_start.desc())
        .limit(limit)
        .all()
    )
    return {
        "current": current.to_dict() if current else None,
        "history": [r.to_dict() for r in history],
    }


def list_ratings(*, start: Optional[date] = None, end: Optional[date] = None,
                 sort_by: str = "overall_score", descending: bool = True, limit: int = 100) -> list[dict]:
    q = DriverRating.query
    if start is not None:
        q = q.filter(DriverRating.period_start >= start)
    if end is not None:
        q = q.filter(DriverRating.period_end <= end)
    col = getattr(DriverRating, sort_by if sort_by in SORTABLE else "overall_score")
    q = q.order_by(col.desc() if descending else col.asc(), DriverRating.id.asc())
    return [r.to_dict() for r in q.limit(limit).all()]
