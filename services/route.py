# services/route.py
"""
Bus routes: CRUD plus pickup-order optimization.

optimize_route() is the only code path that writes pickup_order automatically.
Creating or deleting an assignment never renumbers the others.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from flask import current_app

from db import db
from errors import ApiError
from models.bus import Bus
from models.route import Route
from services.route_assignment import assignment_to_dict, ordered_assignments_query
from utils.geo import haversine_km
from utils.ids import parse_id

DEFAULT_ZONE_RADIUS_KM = 0.2


# ---------- helpers ----------

def parse_time(value, field: str) -> Optional[time]:
    """'HH:MM' or 'HH:MM:SS' → datetime.time; None/'' → None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    s = str(value).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(s, fmt).time()
        except ValueError:
            continue
    raise ApiError(400, "INVALID_TIME", f"{field} must be HH:MM or HH:MM:SS.")


def _fmt_time(t: Optional[time]) -> Optional[str]:
    return t.strftime("%H:%M:%S") if t else None


def route_to_dict(route: Route, *, with_assignments: bool = False) -> dict:
    out = {
        "id": route.id,
        "bus_id": route.bus_id,
        "name": route.name,
        "start_time": _fmt_time(route.start_time),
        "end_time": _fmt_time(route.end_time),
        "bus": route.bus.summary() if route.bus else None,
    }
    if with_assignments:
        out["assignments"] = [assignment_to_dict(a) for a in ordered_assignments_query(route.id).all()]
    return out


def _get_route_or_404(route_id: int) -> Route:
    route = db.session.get(Route, route_id)
    if route is None:
        raise ApiError(404, "ROUTE_NOT_FOUND", "Route not found.")
    return route


def _get_bus_or_400(bus_id) -> Bus:
    bid = parse_id(bus_id)
    if bid is None:
        raise ApiError(400, "MISSING_BUS_ID", "bus_id is required.")
    bus = db.session.get(Bus, bid)
    if bus is None:
        raise ApiError(400, "BUS_NOT_FOUND", "Bus not found.")
    return bus


# ---------- CRUD ----------

def create_route(bus_id, name, start_time=None, end_time=None) -> dict:
    if not isinstance(name, str) or not name.strip():
        raise ApiError(400, "MISSING_NAME", "Route name is required.")
    bus = _get_bus_or_400(bus_id)

    route = Route(
        bus_id=bus.id,
        name=name.strip(),
        start_time=parse_time(start_time, "start_time"),
        end_time=parse_time(end_time, "end_time"),
    )
    db.session.add(route)
    db.session.commit()
    current_app.logger.info("[routes] created id=%s bus=%s", route.id, bus.id)
    return route_to_dict(route)


def list_routes(bus_id: Optional[int] = None) -> list[dict]:
    q = Route.query
    if bus_id is not None:
        q = q.filter(Route.bus_id == bus_id)
    return [route_to_dict(r) for r in q.order_by(Route.name.asc(), Route.id.asc()).all()]


def get_route(route_id: int) -> dict:
    return route_to_dict(_get_route_or_404(route_id), with_assignments=True)


def update_route(route_id: int, data: dict) -> dict:
    route = _get_route_or_404(route_id)

    if "name" in data:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ApiError(400, "INVALID_NAME", "Route name cannot be empty.")
        route.name = name.strip()
    if "bus_id" in data:
        route.bus_id = _get_bus_or_400(data.get("bus_id")).id
    if "start_time" in data:
        route.start_time = parse_time(data.get("start_time"), "start_time")
    if "end_time" in data:
        route.end_time = parse_time(data.get("end_time"), "end_time")

    db.session.commit()
    return route_to_dict(route)


def delete_route(route_id: int) -> dict:
    route = _get_route_or_404(route_id)
    db.session.delete(route)  # assignments go with it (ON DELETE CASCADE)
    db.session.commit()
    current_app.logger.info("[routes] deleted id=%s", route_id)
    return {"deleted": True, "id": route_id}


# ---------- optimization ----------

def _cluster(points: list[tuple[float, float, object]], radius_km: float) -> list[dict]:
    """
    Group (lat, lon, item) points into pickup zones.
    A point joins the first zone whose running-mean centroid is within radius_km;
    a second pass merges zones whose centroids drifted into range of each other.
    """
    zones: list[dict] = []
    for lat, lon, item in points:
        for z in zones:
            if haversine_km(z["lat"], z["lon"], lat, lon) <= radius_km:
                z["items"].append(item)
                n = len(z["items"])
                z["lat"] = (z["lat"] * (n - 1) + lat) / n
                z["lon"] = (z["lon"] * (n - 1) + lon) / n
                break
        else:
            zones.append({"lat": lat, "lon": lon, "items": [item]})

    changed = True
    while changed:
        changed = False
        for i in range(len(zones) - 1, -1, -1):
            z = zones[i]
            for j in range(i):
                other = zones[j]
                if haversine_km(z["lat"], z["lon"], other["lat"], other["lon"]) <= radius_km:
                    n_o, n_z = len(other["items"]), len(z["items"])
                    other["lat"] = (other["lat"] * n_o + z["lat"] * n_z) / (n_o + n_z)
                    other["lon"] = (other["lon"] * n_o + z["lon"] * n_z) / (n_o + n_z)
                    other["items"].extend(z["items"])
                    del zones[i]
                    changed = True
                    break
    return zones


def _nearest_neighbour_order(zones: list[dict]) -> list[dict]:
    """Order zones greedily, starting from the point-weighted centroid of all zones."""
    total = sum(len(z["items"]) for z in zones)
    cur_lat = sum(z["lat"] * len(z["items"]) for z in zones) / total
    cur_lon = sum(z["lon"] * len(z["items"]) for z in zones) / total

    remaining = list(zones)
    ordered: list[dict] = []
    while remaining:
        best = min(
            range(len(remaining)),
            key=lambda i: haversine_km(cur_lat, cur_lon, remaining[i]["lat"], remaining[i]["lon"]),
        )
        nxt = remaining.pop(best)
        ordered.append(nxt)
        cur_lat, cur_lon = nxt["lat"], nxt["lon"]
    return ordered


def optimize_route(route_id: int, zone_radius_km: Optional[float] = None) -> dict:
    route = _get_route_or_404(route_id)
    radius = zone_radius_km if zone_radius_km is not None else current_app.config.get(
        "ROUTE_ZONE_RADIUS_KM", DEFAULT_ZONE_RADIUS_KM
    )

    assignments = ordered_assignments_query(route.id).all()
    with_coords = [a for a in assignments if a.has_coordinates]
    without = len(assignments) - len(with_coords)

    for a in assignments:
        if not a.has_coordinates:
            a.pickup_order = None

    waypoints: list[dict] = []
    if with_coords:
        points = [(float(a.pickup_latitude), float(a.pickup_longitude), a) for a in with_coords]
        ordered = _nearest_neighbour_order(_cluster(points, radius))
        for seq, zone in enumerate(ordered):
            for a in zone["items"]:
                a.pickup_order = seq
            waypoints.append({
                "sequence": seq,
                "latitude": zone["lat"],
                "longitude": zone["lon"],
                "students": [a.student.summary() for a in zone["items"] if a.student],
                "assignment_ids": [a.id for a in zone["items"]],
            })

    db.session.commit()
    current_app.logger.info(
        "[routes] optimized id=%s stops=%d students=%d without_coords=%d",
        route.id, len(waypoints), len(assignments), without,
    )

    return {
        "route": route_to_dict(route, with_assignments=True),
        "waypoints": waypoints,
        "summary": {
            "total_stops": len(waypoints),
            "total_students": len(assignments),
            "assignments_without_coords": without,
        },
    }
