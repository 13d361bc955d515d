from datetime import timedelta

from conftest import API, book_session, completed_session, future


def test_book_session(client, tenant):
    start = future(days=3, hour=9)
    response = book_session(client, tenant, start, duration=90, agenda_items=[{"title": "Pitch deck"}])
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "scheduled"
    assert body["end_time"].startswith((start + timedelta(minutes=90)).isoformat()[:16])
    assert body["manager_id"] == tenant.manager.id
    assert body["agenda_items"][0]["title"] == "Pitch deck"


def test_overlapping_booking_conflicts(client, tenant):
    start = future(days=3, hour=9)
    assert book_session(client, tenant, start, 60).status_code == 201

    overlap = book_session(client, tenant, start + timedelta(minutes=30), 60)
    assert overlap.status_code == 409

    touching = book_session(client, tenant, start + timedelta(minutes=60), 30)
    assert touching.status_code == 201


def test_contained_and_enclosing_bookings_conflict(client, tenant):
    start = future(days=6, hour=10)
    assert book_session(client, tenant, start, 120).status_code == 201

    inside = book_session(client, tenant, start + timedelta(minutes=30), 30)
    assert inside.status_code == 409

    enclosing = book_session(client, tenant, start - timedelta(minutes=30), 180)
    assert enclosing.status_code == 409

    before = book_session(client, tenant, start - timedelta(minutes=30), 30)
    assert before.status_code == 201


def test_cancelled_sessions_do_not_block(client, tenant):
    start = future(days=4, hour=14)
    first = book_session(client, tenant, start).json()
    client.patch(f"{API}/sessions/{first['id']}", json={"status": "cancelled"}, headers=tenant.manager.headers)
    assert book_session(client, tenant, start).status_code == 201


def test_check_conflict_endpoint(client, tenant):
    start = future(days=5, hour=11)
    booked = book_session(client, tenant, start).json()

    payload = {"coach_id": tenant.coach.id, "scheduled_at": (start + timedelta(minutes=15)).isoformat(), "duration": 30}
    result = client.post(f"{API}/sessions/check-conflict", json=payload, headers=tenant.coach.headers).json()
    assert result["has_conflict"] is True
    assert result["conflicting_session"]["id"] == booked["id"]

    payload["exclude_session_id"] = booked["id"]
    result = client.post(f"{API}/sessions/check-conflict", json=payload, headers=tenant.coach.headers).json()
    assert result == {"has_conflict": False, "conflicting_session": None}


def test_participants_must_belong_to_organization(client, tenant, other_tenant):
    response = client.post(f"{API}/sessions", json={
        "coach_id": other_tenant.coach.id,
        "entrepreneur_id": tenant.entrepreneur.id,
        "scheduled_at": future().isoformat(),
    }, headers=tenant.manager.headers)
    assert response.status_code == 400


def test_coach_books_only_self(client, tenant):
    response = client.post(f"{API}/sessions", json={
        "coach_id": tenant.coach.id,
        "entrepreneur_id": tenant.entrepreneur.id,
        "scheduled_at": future().isoformat(),
    }, headers=tenant.coach.headers)
    assert response.status_code == 201

    response = client.post(f"{API}/sessions", json={
        "coach_id": tenant.manager.id,
        "entrepreneur_id": tenant.entrepreneur.id,
        "scheduled_at": future(days=8).isoformat(),
    }, headers=tenant.coach.headers)
    assert response.status_code == 403


def test_entrepreneur_cannot_book(client, tenant):
    response = client.post(f"{API}/sessions", json={
        "coach_id": tenant.coach.id,
        "entrepreneur_id": tenant.entrepreneur.id,
        "scheduled_at": future().isoformat(),
    }, headers=tenant.entrepreneur.headers)
    assert response.status_code == 403


def test_duration_bounds(client, tenant):
    assert book_session(client, tenant, future(), duration=10).status_code == 400
    assert book_session(client, tenant, future(), duration=481).status_code == 400


def test_list_scoping_and_upcoming(client, tenant, other_tenant):
    book_session(client, tenant, future(days=2))
    past = completed_session(client, tenant, future(days=-2))
    book_session(client, other_tenant, future(days=2))

    mine = client.get(f"{API}/sessions", headers=tenant.entrepreneur.headers).json()
    assert mine["total"] == 2

    upcoming = client.get(f"{API}/sessions", params={"upcoming": True}, headers=tenant.coach.headers).json()
    assert upcoming["total"] == 1
    assert past["id"] not in {s["id"] for s in upcoming["items"]}

    cross = client.get(f"{API}/sessions/{past['id']}", headers=other_tenant.manager.headers)
    assert cross.status_code == 404


def test_reschedule_sets_status_and_rechecks_conflicts(client, tenant):
    a = book_session(client, tenant, future(days=6, hour=9)).json()
    b = book_session(client, tenant, future(days=6, hour=11)).json()

    moved = client.patch(
        f"{API}/sessions/{a['id']}",
        json={"scheduled_at": future(days=6, hour=13).isoformat()},
        headers=tenant.coach.headers,
    )
    assert moved.status_code == 200
    assert moved.json()["status"] == "rescheduled"

    clash = client.patch(
        f"{API}/sessions/{a['id']}",
        json={"scheduled_at": future(days=6, hour=11, minute=30).isoformat()},
        headers=tenant.coach.headers,
    )
    assert clash.status_code == 409

    # Moving within its own window never conflicts with itself
    nudged = client.patch(f"{API}/sessions/{b['id']}", json={"duration": 90}, headers=tenant.manager.headers)
    assert nudged.status_code == 200


def test_status_changes_are_logged(client, tenant):
    session = completed_session(client, tenant, future(days=-1))
    other = book_session(client, tenant, future(days=1)).json()
    client.patch(f"{API}/sessions/{other['id']}", json={"status": "cancelled"}, headers=tenant.manager.headers)

    feed = client.get(f"{API}/admin/activity", headers=tenant.manager.headers).json()
    types = [a["activity_type"] for a in feed["items"]]
    assert "SESSION_COMPLETED" in types
    assert "SESSION_CANCELLED" in types
    completed = next(a for a in feed["items"] if a["activity_type"] == "SESSION_COMPLETED")
    assert completed["session_id"] == session["id"]


def test_entrepreneur_cannot_edit(client, tenant):
    session = book_session(client, tenant, future()).json()
    response = client.patch(
        f"{API}/sessions/{session['id']}", json={"location": "Cafe"}, headers=tenant.entrepreneur.headers
    )
    assert response.status_code == 403


def test_rate_completed_session(client, tenant):
    session = completed_session(client, tenant, future(days=-3))
    response = client.post(
        f"{API}/sessions/{session['id']}/rate",
        json={"score": 5, "comment": "Great"},
        headers=tenant.entrepreneur.headers,
    )
    assert response.status_code == 200
    assert response.json()["rating"]["score"] == 5

    again = client.post(
        f"{API}/sessions/{session['id']}/rate", json={"score": 3}, headers=tenant.entrepreneur.headers
    )
    assert again.json()["rating"]["score"] == 3
    assert again.json()["rating"]["comment"] is None


def test_rating_rules(client, tenant):
    scheduled = book_session(client, tenant, future()).json()
    not_done = client.post(
        f"{API}/sessions/{scheduled['id']}/rate", json={"score": 4}, headers=tenant.entrepreneur.headers
    )
    assert not_done.status_code == 400

    done = completed_session(client, tenant, future(days=-4))
    by_coach = client.post(f"{API}/sessions/{done['id']}/rate", json={"score": 4}, headers=tenant.coach.headers)
    assert by_coach.status_code == 403
    out_of_range = client.post(
        f"{API}/sessions/{done['id']}/rate", json={"score": 6}, headers=tenant.entrepreneur.headers
    )
    assert out_of_range.status_code == 400


def test_calendar_groups_by_day(client, tenant):
    start = future(days=10, hour=8)
    book_session(client, tenant, start)
    book_session(client, tenant, start + timedelta(hours=2))

    response = client.get(
        f"{API}/sessions/calendar",
        params={"month": start.month, "year": start.year},
        headers=tenant.coach.headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert len(body["days"][start.strftime("%Y-%m-%d")]) == 2


def test_calendar_rejects_bad_month(client, tenant):
    response = client.get(f"{API}/sessions/calendar", params={"month": 13}, headers=tenant.coach.headers)
    assert response.status_code == 400


def test_delete_session(client, tenant):
    session = book_session(client, tenant, future()).json()
    assert client.delete(f"{API}/sessions/{session['id']}", headers=tenant.coach.headers).status_code == 403
    assert client.delete(f"{API}/sessions/{session['id']}", headers=tenant.manager.headers).status_code == 204
    assert client.get(f"{API}/sessions/{session['id']}", headers=tenant.manager.headers).status_code == 404
