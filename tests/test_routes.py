# tests/test_routes.py
from decimal import Decimal

import pytest

from db import db
from models.route import Route
from models.route_assignment import RouteAssignment
from services.route import _cluster, _nearest_neighbour_order


def test_create_route(client, admin_headers, bus):
    res = client.post("/api/routes", json={
        "bus_id": bus.id, "name": "  Morning Route ", "start_time": "07:30", "end_time": "08:30:00",
    }, headers=admin_headers)
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["name"] == "Morning Route"
    assert data["start_time"] == "07:30:00"
    assert data["end_time"] == "08:30:00"
    assert data["bus"]["bus_number"] == "BUS-001"


@pytest.mark.parametrize("body,code", [
    ({"bus_id": 1}, "MISSING_NAME"),
    ({"name": "R"}, "MISSING_BUS_ID"),
    ({"name": "R", "bus_id": 999}, "BUS_NOT_FOUND"),
    ({"name": "R", "bus_id": "BUS", "start_time": "7am"}, "MISSING_BUS_ID"),
])
def test_create_route_validation(client, admin_headers, bus, body, code):
    res = client.post("/api/routes", json=body, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == code


def test_create_route_bad_time(client, admin_headers, bus):
    res = client.post("/api/routes", json={"bus_id": bus.id, "name": "R", "start_time": "7am"},
                      headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_TIME"


def test_list_and_filter_routes(client, admin_headers, bus, route):
    res = client.get("/api/routes", headers=admin_headers)
    assert [r["id"] for r in res.get_json()["data"]] == [route.id]

    res = client.get(f"/api/routes?bus_id={bus.id + 100}", headers=admin_headers)
    assert res.get_json()["data"] == []


def test_get_route_includes_ordered_assignments(client, admin_headers, route, make_student):
    for i, order in enumerate([None, 0]):
        s = make_student(full_name=f"Kid {i}")
        db.session.add(RouteAssignment(route_id=route.id, student_id=s.id, pickup_order=order))
    db.session.commit()

    data = client.get(f"/api/routes/{route.id}", headers=admin_headers).get_json()["data"]
    assert [a["pickup_order"] for a in data["assignments"]] == [0, None]


def test_get_missing_route(client, admin_headers):
    res = client.get("/api/routes/777", headers=admin_headers)
    assert res.status_code == 404
    assert res.get_json()["code"] == "ROUTE_NOT_FOUND"


def test_update_route(client, admin_headers, route):
    res = client.put(f"/api/routes/{route.id}", json={"name": "Renamed", "end_time": None},
                     headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json()["data"]["name"] == "Renamed"

    res = client.put(f"/api/routes/{route.id}", json={"name": "  "}, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_NAME"
    assert db.session.get(Route, route.id).name == "Renamed"


def test_delete_missing_route(client, admin_headers):
    assert client.delete("/api/routes/31337", headers=admin_headers).status_code == 404


# ---------- optimization ----------

# ~30 m apart: one zone
NEAR_A = (Decimal("40.71450000"), Decimal("-74.00210000"))
NEAR_B = (Decimal("40.71470000"), Decimal("-74.00230000"))
# ~2 km north-east
FAR = (Decimal("40.73000000"), Decimal("-73.99000000"))


def _assign(route, student, coords=None, order=None):
    a = RouteAssignment(
        route_id=route.id, student_id=student.id, pickup_order=order,
        pickup_latitude=coords[0] if coords else None,
        pickup_longitude=coords[1] if coords else None,
    )
    db.session.add(a)
    db.session.commit()
    return a


def test_optimize_groups_nearby_pickups_and_orders_stops(client, admin_headers, route, make_student):
    a1 = _assign(route, make_student("A"), NEAR_A, order=7)
    a2 = _assign(route, make_student("B"), FAR)
    a3 = _assign(route, make_student("C"), NEAR_B)
    a4 = _assign(route, make_student("D"), None, order=4)

    res = client.post(f"/api/routes/{route.id}/optimize", headers=admin_headers)
    assert res.status_code == 200
    data = res.get_json()["data"]

    assert data["summary"] == {"total_stops": 2, "total_students": 4, "assignments_without_coords": 1}
    first, second = data["waypoints"]
    assert first["sequence"] == 0 and second["sequence"] == 1
    assert sorted(first["assignment_ids"]) == sorted([a1.id, a3.id])
    assert second["assignment_ids"] == [a2.id]
    assert {s["full_name"] for s in first["students"]} == {"A", "C"}

    db.session.expire_all()
    orders = {a.id: a.pickup_order for a in RouteAssignment.query.all()}
    assert orders == {a1.id: 0, a3.id: 0, a2.id: 1, a4.id: None}


def test_optimize_smaller_radius_splits_zones(client, admin_headers, route, make_student):
    _assign(route, make_student("A"), NEAR_A)
    _assign(route, make_student("B"), NEAR_B)

    res = client.post(f"/api/routes/{route.id}/optimize", json={"zone_radius_km": 0.005},
                      headers=admin_headers)
    assert res.get_json()["data"]["summary"]["total_stops"] == 2


def test_optimize_empty_route(client, admin_headers, route):
    data = client.post(f"/api/routes/{route.id}/optimize", headers=admin_headers).get_json()["data"]
    assert data["waypoints"] == []
    assert data["summary"] == {"total_stops": 0, "total_students": 0, "assignments_without_coords": 0}


@pytest.mark.parametrize("radius", [0, -1, "far", True])
def test_optimize_rejects_bad_radius(client, admin_headers, route, radius):
    res = client.post(f"/api/routes/{route.id}/optimize", json={"zone_radius_km": radius},
                      headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_RADIUS"


def test_optimize_missing_route(client, admin_headers):
    assert client.post("/api/routes/999/optimize", headers=admin_headers).status_code == 404


def test_cluster_merges_zones_whose_centroids_drift_together():
    # b starts its own zone (~278 m from a); c joins a (~167 m), which moves
    # that centroid to lon 0.00075, ~195 m from b, so the second pass merges them
    pts = [(0.0, 0.0, "a"), (0.0, 0.0025, "b"), (0.0, 0.0015, "c")]
    zones = _cluster(pts, 0.2)
    assert len(zones) == 1
    assert sorted(zones[0]["items"]) == ["a", "b", "c"]


def test_nearest_neighbour_starts_from_weighted_centroid():
    heavy = {"lat": 0.0, "lon": 0.0, "items": [1, 2, 3]}
    light = {"lat": 0.0, "lon": 0.01, "items": [4]}
    assert _nearest_neighbour_order([light, heavy]) == [heavy, light]
