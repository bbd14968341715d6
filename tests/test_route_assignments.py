# tests/test_route_assignments.py
import pytest

from db import db
from errors import ApiError
from models.route import Route
from models.route_assignment import RouteAssignment
from services import route_assignment as svc
from utils.ids import MAX_ID, parse_id

URL = "/api/route-assignments"


def _create(client, headers, **body):
    return client.post(URL, json=body, headers=headers)


def test_create_returns_201_with_coordinates_and_null_order(client, admin_headers, route, student):
    res = _create(client, admin_headers, route_id=route.id, student_id=student.id,
                  pickup_latitude=40.71, pickup_longitude=-74.00)
    assert res.status_code == 201
    body = res.get_json()
    assert body["success"] is True
    assert body["message"] == "Student assigned to route successfully."
    data = body["data"]
    assert data["route_id"] == route.id
    assert data["student_id"] == student.id
    assert data["pickup_latitude"] == pytest.approx(40.71)
    assert data["pickup_longitude"] == pytest.approx(-74.00)
    assert data["pickup_order"] is None
    assert data["student"]["full_name"] == "Timmy Johnson"


def test_create_accepts_digit_string_ids_and_explicit_order(client, admin_headers, route, student):
    res = _create(client, admin_headers, route_id=str(route.id), student_id=str(student.id), pickup_order=3)
    assert res.status_code == 201
    assert res.get_json()["data"]["pickup_order"] == 3
    assert res.get_json()["data"]["pickup_latitude"] is None


def test_duplicate_create_is_conflict_and_does_not_mutate(client, admin_headers, route, student):
    first = _create(client, admin_headers, route_id=route.id, student_id=student.id,
                    pickup_latitude=40.71, pickup_longitude=-74.00)
    assert first.status_code == 201

    again = _create(client, admin_headers, route_id=route.id, student_id=student.id,
                    pickup_latitude=1.0, pickup_longitude=1.0)
    assert again.status_code == 409
    assert again.get_json() == {
        "success": False,
        "code": "ALREADY_ASSIGNED",
        "message": "Student is already assigned to this route.",
    }

    rows = RouteAssignment.query.filter_by(route_id=route.id, student_id=student.id).all()
    assert len(rows) == 1
    assert float(rows[0].pickup_latitude) == pytest.approx(40.71)


def test_store_level_duplicate_maps_to_conflict(client, admin_headers, route, student, monkeypatch):
    db.session.add(RouteAssignment(route_id=route.id, student_id=student.id))
    db.session.commit()

    real = svc._find_existing
    calls = {"n": 0}

    def racing_lookup(route_id, student_id):
        # the pre-check misses the row a concurrent request just wrote
        calls["n"] += 1
        return None if calls["n"] == 1 else real(route_id, student_id)

    monkeypatch.setattr(svc, "_find_existing", racing_lookup)

    res = _create(client, admin_headers, route_id=route.id, student_id=student.id)
    assert res.status_code == 409
    assert res.get_json()["code"] == "ALREADY_ASSIGNED"
    assert calls["n"] == 2
    assert RouteAssignment.query.filter_by(route_id=route.id, student_id=student.id).count() == 1


def test_same_student_on_two_routes_is_allowed(client, admin_headers, route, student, bus):
    other = Route(bus_id=bus.id, name="Afternoon Route - Central High")
    db.session.add(other)
    db.session.commit()

    assert _create(client, admin_headers, route_id=route.id, student_id=student.id).status_code == 201
    assert _create(client, admin_headers, route_id=other.id, student_id=student.id).status_code == 201


@pytest.mark.parametrize("body", [
    {},
    {"route_id": 1},
    {"route_id": "abc", "student_id": 1},
    {"route_id": 0, "student_id": 1},
    {"route_id": -2, "student_id": 1},
    {"route_id": True, "student_id": 1},
    {"route_id": 1.5, "student_id": 1},
    {"route_id": "\u00b2", "student_id": 1},
    {"route_id": "+7", "student_id": 1},
    {"route_id": 1, "student_id": 2**31},
    {"route_id": 10**30, "student_id": 1},
    {"route_id": "99999999999999999999", "student_id": 1},
])
def test_create_rejects_invalid_ids(client, admin_headers, body):
    res = _create(client, admin_headers, **body)
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_IDS"


@pytest.mark.parametrize("value,expected", [
    (7, 7),
    (" 42 ", 42),
    (str(MAX_ID), MAX_ID),
    (MAX_ID + 1, None),
    ("1_000", None),
    ("\u0663", None),
    (None, None),
    ([1], None),
])
def test_parse_id(value, expected):
    assert parse_id(value) == expected


@pytest.mark.parametrize("lat,lng", [("north", -74.0), (91, 0), (0, 181), (True, 0)])
def test_create_rejects_invalid_coordinates(client, admin_headers, route, student, lat, lng):
    res = _create(client, admin_headers, route_id=route.id, student_id=student.id,
                  pickup_latitude=lat, pickup_longitude=lng)
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_COORDINATES"


@pytest.mark.parametrize("order", [-1, "2", 1.5, True, 2**31])
def test_create_rejects_invalid_pickup_order(client, admin_headers, route, student, order):
    res = _create(client, admin_headers, route_id=route.id, student_id=student.id, pickup_order=order)
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_PICKUP_ORDER"


def test_create_unknown_route_or_student_is_404(client, admin_headers, route, student):
    res = _create(client, admin_headers, route_id=9999, student_id=student.id)
    assert res.status_code == 404
    assert res.get_json()["code"] == "ROUTE_NOT_FOUND"

    res = _create(client, admin_headers, route_id=route.id, student_id=9999)
    assert res.status_code == 404
    assert res.get_json()["code"] == "STUDENT_NOT_FOUND"


def test_unexpected_error_returns_generic_500(client, admin_headers, route, student, monkeypatch):
    def boom(*a, **kw):
        raise RuntimeError("db exploded")

    monkeypatch.setattr(svc, "create_route_assignment", boom)
    res = _create(client, admin_headers, route_id=route.id, student_id=student.id)
    assert res.status_code == 500
    body = res.get_json()
    assert body["code"] == "INTERNAL_ERROR"
    assert "exploded" not in body["message"]


def test_list_orders_by_pickup_order_with_nulls_last(client, admin_headers, route, make_student):
    orders = [2, None, 0, 1, None]
    ids = []
    for i, order in enumerate(orders):
        s = make_student(full_name=f"Kid {i}")
        a = RouteAssignment(route_id=route.id, student_id=s.id, pickup_order=order)
        db.session.add(a)
        db.session.commit()
        ids.append(a.id)

    res = client.get(f"{URL}/route/{route.id}", headers=admin_headers)
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert [d["pickup_order"] for d in data] == [0, 1, 2, None, None]
    # ties (the two NULLs) fall back to insertion order
    assert [d["id"] for d in data[-2:]] == [ids[1], ids[4]]


def test_list_only_returns_rows_of_that_route(client, admin_headers, route, bus, student, make_student):
    other = Route(bus_id=bus.id, name="Other")
    db.session.add(other)
    db.session.commit()
    db.session.add(RouteAssignment(route_id=route.id, student_id=student.id))
    db.session.add(RouteAssignment(route_id=other.id, student_id=make_student("Other Kid").id))
    db.session.commit()

    data = client.get(f"{URL}/route/{route.id}", headers=admin_headers).get_json()["data"]
    assert len(data) == 1
    assert data[0]["student_id"] == student.id


def test_list_empty_route(client, admin_headers, route):
    res = client.get(f"{URL}/route/{route.id}", headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json() == {"success": True, "data": []}


def test_list_unknown_route_is_404(client, admin_headers):
    res = client.get(f"{URL}/route/424242", headers=admin_headers)
    assert res.status_code == 404
    assert res.get_json()["code"] == "ROUTE_NOT_FOUND"


@pytest.mark.parametrize("path_id", [2**31, 10**30])
def test_out_of_range_path_ids_are_404(client, admin_headers, path_id):
    res = client.get(f"{URL}/route/{path_id}", headers=admin_headers)
    assert res.status_code == 404
    assert res.get_json()["code"] == "NOT_FOUND"

    res = client.delete(f"{URL}/{path_id}", headers=admin_headers)
    assert res.status_code == 404


def test_service_treats_out_of_range_ids_as_missing(app):
    with pytest.raises(ApiError) as exc:
        svc.get_assignments_by_route_id(10**30)
    assert exc.value.code == "ROUTE_NOT_FOUND"

    with pytest.raises(ApiError) as exc:
        svc.delete_route_assignment(10**30)
    assert exc.value.code == "ASSIGNMENT_NOT_FOUND"


def test_delete_then_delete_again(client, admin_headers, route, student):
    created = _create(client, admin_headers, route_id=route.id, student_id=student.id).get_json()["data"]

    res = client.delete(f"{URL}/{created['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json() == {"success": True, "message": "Student removed from route successfully."}

    res = client.delete(f"{URL}/{created['id']}", headers=admin_headers)
    assert res.status_code == 404
    assert res.get_json()["code"] == "ASSIGNMENT_NOT_FOUND"


def test_delete_does_not_renumber_remaining(client, admin_headers, route, make_student):
    a_ids = []
    for i in range(3):
        s = make_student(full_name=f"Kid {i}")
        a = RouteAssignment(route_id=route.id, student_id=s.id, pickup_order=i)
        db.session.add(a)
        db.session.commit()
        a_ids.append(a.id)

    assert client.delete(f"{URL}/{a_ids[0]}", headers=admin_headers).status_code == 200
    data = client.get(f"{URL}/route/{route.id}", headers=admin_headers).get_json()["data"]
    assert [d["pickup_order"] for d in data] == [1, 2]


def test_reassign_after_delete(client, admin_headers, route, student):
    created = _create(client, admin_headers, route_id=route.id, student_id=student.id).get_json()["data"]
    client.delete(f"{URL}/{created['id']}", headers=admin_headers)
    assert _create(client, admin_headers, route_id=route.id, student_id=student.id).status_code == 201


def test_deleting_route_cascades_to_assignments(client, admin_headers, route, student):
    _create(client, admin_headers, route_id=route.id, student_id=student.id)
    res = client.delete(f"/api/routes/{route.id}", headers=admin_headers)
    assert res.status_code == 200
    db.session.expire_all()
    assert RouteAssignment.query.count() == 0


def test_deleting_student_cascades_to_assignments(client, admin_headers, route, student):
    _create(client, admin_headers, route_id=route.id, student_id=student.id)
    res = client.delete(f"/api/students/{student.id}", headers=admin_headers)
    assert res.status_code == 200
    db.session.expire_all()
    assert RouteAssignment.query.count() == 0
    assert client.get(f"{URL}/route/{route.id}", headers=admin_headers).get_json()["data"] == []


def test_requires_token(client, route):
    res = client.get(f"{URL}/route/{route.id}")
    assert res.status_code == 401
    assert res.get_json()["code"] == "UNAUTHORIZED"


def test_requires_admin(client, parent_headers, driver_headers, route, student):
    for headers in (parent_headers, driver_headers):
        res = _create(client, headers, route_id=route.id, student_id=student.id)
        assert res.status_code == 403
        assert res.get_json()["code"] == "FORBIDDEN"
    assert RouteAssignment.query.count() == 0
