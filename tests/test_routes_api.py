from datetime import date

import pytest

from app.domain.routing.assignment import RouteAssignmentWriter, sorted_stops
from app.models_route import Route, RouteStop

DAY = date(2024, 1, 2)


@pytest.fixture
def day_jobs(factory, org):
    """Three jobs in mixed ZIP/address order: 91730 200 Elm, 91710 5 Oak, 91730 100 Elm"""
    specs = [("91730", "200 Elm"), ("91710", "5 Oak"), ("91730", "100 Elm")]
    jobs = []
    for zip_code, address in specs:
        location = factory.location(factory.client(org), address=address, zip_code=zip_code)
        jobs.append(factory.job(org, scheduled_date=DAY, location=location))
    return jobs


def stop_job_ids(payload):
    return [s["jobId"] for s in sorted(payload["stops"], key=lambda s: s["stopOrder"])]


def test_create_optimized_route(client, owner, day_jobs, db):
    response = client.post(
        "/api/admin/routes/optimize",
        json={"date": DAY.isoformat(), "jobIds": [j.id for j in day_jobs], "name": "Tuesday"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Created optimized route with 3 stops"
    route = body["route"]
    assert route["name"] == "Tuesday"
    assert route["status"] == "PLANNED"
    assert stop_job_ids(route) == [day_jobs[1].id, day_jobs[2].id, day_jobs[0].id]
    assert [s["stopOrder"] for s in route["stops"]] == [1, 2, 3]
    assert db.query(RouteStop).count() == 3


def test_optimize_existing_route(client, owner, day_jobs, factory, org, db):
    route = factory.route(org, route_date=DAY)
    RouteAssignmentWriter(db).populate(route, day_jobs)

    response = client.post("/api/admin/routes/optimize", json={"routeId": route.id})

    assert response.status_code == 200
    assert response.json()["message"] == "Optimized 3 stops by ZIP code"
    db.refresh(route)
    assert [s.job_id for s in sorted_stops(route)] == [
        day_jobs[1].id,
        day_jobs[2].id,
        day_jobs[0].id,
    ]


def test_optimize_completed_route_is_rejected(client, owner, day_jobs, factory, org, db):
    route = factory.route(org, route_date=DAY)
    RouteAssignmentWriter(db).populate(route, day_jobs)
    route.status = "COMPLETED"
    db.commit()

    response = client.post("/api/admin/routes/optimize", json={"routeId": route.id})

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot optimize a completed route"}
    db.refresh(route)
    assert [s.job_id for s in sorted_stops(route)] == [j.id for j in day_jobs]


def test_optimize_empty_route(client, owner, factory, org):
    route = factory.route(org, route_date=DAY)
    response = client.post("/api/admin/routes/optimize", json={"routeId": route.id})
    assert response.status_code == 200
    assert response.json()["message"] == "No stops to optimize"


def test_optimize_unknown_route(client, owner):
    response = client.post("/api/admin/routes/optimize", json={"routeId": "missing"})
    assert response.status_code == 404
    assert response.json() == {"error": "Route not found"}


def test_optimize_validation(client, owner):
    assert client.post("/api/admin/routes/optimize", json={}).status_code == 400
    response = client.post(
        "/api/admin/routes/optimize", json={"date": DAY.isoformat(), "jobIds": []}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "At least one job ID is required"}


def test_optimize_with_no_matching_jobs(client, owner):
    response = client.post(
        "/api/admin/routes/optimize", json={"date": DAY.isoformat(), "jobIds": ["nope"]}
    )
    assert response.status_code == 404


def test_jobs_from_another_org_are_ignored(client, owner, factory):
    other_org = factory.org()
    foreign = factory.job(other_org, scheduled_date=DAY)
    response = client.post(
        "/api/admin/routes/optimize", json={"date": DAY.isoformat(), "jobIds": [foreign.id]}
    )
    assert response.status_code == 404


def test_optimize_rejects_job_on_other_date(client, owner, factory, org):
    job = factory.job(org, scheduled_date=date(2024, 1, 3))
    response = client.post(
        "/api/admin/routes/optimize", json={"date": DAY.isoformat(), "jobIds": [job.id]}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Job date does not match route date"}


def test_preview_writes_nothing(client, owner, day_jobs, db):
    ids = ",".join(j.id for j in day_jobs)
    response = client.get(f"/api/admin/routes/optimize/preview?jobIds={ids}")

    assert response.status_code == 200
    stops = response.json()["stops"]
    assert [s["jobId"] for s in stops] == [day_jobs[1].id, day_jobs[2].id, day_jobs[0].id]
    assert [s["order"] for s in stops] == [1, 2, 3]
    assert db.query(Route).count() == 0
    assert db.query(RouteStop).count() == 0


def test_field_tech_cannot_optimize(client, auth, factory, org):
    auth.user = factory.user(org, role="FIELD_TECH")
    response = client.post("/api/admin/routes/optimize", json={"routeId": "x"})
    assert response.status_code == 403


def test_anonymous_request_is_unauthorized(client):
    response = client.get("/api/admin/routes")
    assert response.status_code == 401
    assert "error" in response.json()


def test_route_crud(client, owner, org):
    created = client.post(
        "/api/admin/routes", json={"date": DAY.isoformat(), "name": "North loop"}
    )
    assert created.status_code == 201
    route_id = created.json()["id"]

    listed = client.get(f"/api/admin/routes?date={DAY.isoformat()}")
    assert [r["id"] for r in listed.json()] == [route_id]

    updated = client.put(f"/api/admin/routes/{route_id}", json={"status": "IN_PROGRESS"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "IN_PROGRESS"
    assert updated.json()["startTime"] is not None

    backwards = client.put(f"/api/admin/routes/{route_id}", json={"status": "PLANNED"})
    assert backwards.status_code == 400

    blocked = client.delete(f"/api/admin/routes/{route_id}")
    assert blocked.status_code == 400

    client.put(f"/api/admin/routes/{route_id}", json={"status": "COMPLETED"})
    assert client.delete(f"/api/admin/routes/{route_id}").status_code == 200
    assert client.get(f"/api/admin/routes/{route_id}").status_code == 404


def test_invalid_route_status(client, owner, factory, org):
    route = factory.route(org)
    response = client.put(f"/api/admin/routes/{route.id}", json={"status": "DONE"})
    assert response.status_code == 400


def test_delete_route_unassigns_jobs(client, owner, day_jobs, factory, org, db):
    route = factory.route(org, route_date=DAY)
    RouteAssignmentWriter(db).populate(route, day_jobs)

    assert client.delete(f"/api/admin/routes/{route.id}").status_code == 200

    for job in day_jobs:
        db.refresh(job)
        assert job.route_id is None
    assert db.query(RouteStop).count() == 0


def test_add_and_remove_stops(client, owner, day_jobs, factory, org, db):
    route = factory.route(org, route_date=DAY)
    RouteAssignmentWriter(db).populate(route, day_jobs[:2])

    added = client.post(
        f"/api/admin/routes/{route.id}/stops", json={"jobId": day_jobs[2].id, "stopOrder": 1}
    )
    assert added.status_code == 201
    assert added.json()["stopOrder"] == 1

    stops = client.get(f"/api/admin/routes/{route.id}/stops").json()
    assert [s["jobId"] for s in stops] == [day_jobs[2].id, day_jobs[0].id, day_jobs[1].id]

    removed = client.delete(f"/api/admin/routes/{route.id}/stops?jobId={day_jobs[0].id}")
    assert removed.status_code == 200

    stops = client.get(f"/api/admin/routes/{route.id}/stops").json()
    assert [(s["jobId"], s["stopOrder"]) for s in stops] == [
        (day_jobs[2].id, 1),
        (day_jobs[1].id, 2),
    ]


def test_add_stop_rejects_job_already_routed(client, owner, day_jobs, factory, org, db):
    first = factory.route(org, route_date=DAY)
    second = factory.route(org, route_date=DAY)
    RouteAssignmentWriter(db).populate(first, day_jobs[:1])

    response = client.post(
        f"/api/admin/routes/{second.id}/stops", json={"jobId": day_jobs[0].id}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Job is already assigned to another route"}


def test_add_stop_rejects_date_mismatch(client, owner, factory, org):
    route = factory.route(org, route_date=DAY)
    job = factory.job(org, scheduled_date=date(2024, 1, 5))
    response = client.post(f"/api/admin/routes/{route.id}/stops", json={"jobId": job.id})
    assert response.status_code == 400


def test_remove_stop_requires_identifier(client, owner, factory, org):
    route = factory.route(org)
    response = client.delete(f"/api/admin/routes/{route.id}/stops")
    assert response.status_code == 400
    assert response.json() == {"error": "stopId or jobId is required"}


def test_stop_changes_on_completed_route_are_rejected(client, owner, day_jobs, factory, org, db):
    route = factory.route(org, route_date=DAY)
    RouteAssignmentWriter(db).populate(route, day_jobs[:2])
    route.status = "COMPLETED"
    db.commit()

    response = client.post(f"/api/admin/routes/{route.id}/stops", json={"jobId": day_jobs[2].id})
    assert response.status_code == 400
    response = client.delete(f"/api/admin/routes/{route.id}/stops?jobId={day_jobs[0].id}")
    assert response.status_code == 400

    db.refresh(route)
    assert [s.stop_order for s in sorted_stops(route)] == [1, 2]


def test_reorder_stops(client, owner, day_jobs, factory, org, db):
    route = factory.route(org, route_date=DAY)
    stops = RouteAssignmentWriter(db).populate(route, day_jobs)
    stop_ids = [s.id for s in reversed(stops)]

    response = client.put(f"/api/admin/routes/{route.id}/stops", json={"stopIds": stop_ids})

    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == stop_ids
    assert [s["stopOrder"] for s in response.json()] == [1, 2, 3]
