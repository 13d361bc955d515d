from conftest import API, PASSWORD


def _new_user(**fields):
    payload = {
        "email": "fresh@acme-coaching.io",
        "password": PASSWORD,
        "first_name": "Fresh",
        "last_name": "Face",
        "role": "entrepreneur",
        "startup_name": "Fresh Co",
    }
    payload.update(fields)
    return payload


def test_staff_list_users_with_filters(client, tenant):
    response = client.get(f"{API}/users", params={"role": "coach"}, headers=tenant.manager.headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == tenant.coach.id

    everyone = client.get(f"{API}/users", params={"sort": "email", "limit": 2}, headers=tenant.admin.headers).json()
    assert everyone["total"] == 4
    assert everyone["pages"] == 2
    assert [u["email"] for u in everyone["items"]] == sorted(u["email"] for u in everyone["items"])


def test_non_staff_cannot_list_users(client, tenant):
    assert client.get(f"{API}/users", headers=tenant.coach.headers).status_code == 403


def test_users_are_tenant_scoped(client, tenant, other_tenant):
    listed = client.get(f"{API}/users", headers=tenant.admin.headers).json()
    assert other_tenant.coach.id not in {u["id"] for u in listed["items"]}

    response = client.get(f"{API}/users/{other_tenant.coach.id}", headers=tenant.admin.headers)
    assert response.status_code == 404


def test_create_user(client, tenant):
    response = client.post(f"{API}/users", json=_new_user(), headers=tenant.manager.headers)
    assert response.status_code == 201
    assert response.json()["organization_id"] == tenant.org["id"]

    login = client.post(f"{API}/auth/login", json={"email": "fresh@acme-coaching.io", "password": PASSWORD})
    assert login.status_code == 200


def test_manager_cannot_create_admin(client, tenant):
    response = client.post(f"{API}/users", json=_new_user(role="admin"), headers=tenant.manager.headers)
    assert response.status_code == 403


def test_coach_requires_hourly_rate(client, tenant):
    response = client.post(f"{API}/users", json=_new_user(role="coach", startup_name=None), headers=tenant.admin.headers)
    assert response.status_code == 400


def test_create_user_respects_quota(client, tenant, platform_admin):
    client.patch(
        f"{API}/organization/admin/{tenant.org['id']}",
        json={"max_entrepreneurs": 1},
        headers=platform_admin.headers,
    )
    response = client.post(f"{API}/users", json=_new_user(), headers=tenant.admin.headers)
    assert response.status_code == 409


def test_users_quota_counts_only_the_new_role(client, tenant, platform_admin):
    client.patch(
        f"{API}/organization/admin/{tenant.org['id']}",
        json={"max_users": 2},
        headers=platform_admin.headers,
    )
    manager = _new_user(email="second.manager@acme-coaching.io", role="manager", startup_name=None)
    assert client.post(f"{API}/users", json=manager, headers=tenant.admin.headers).status_code == 201

    third = _new_user(email="third.manager@acme-coaching.io", role="manager", startup_name=None)
    response = client.post(f"{API}/users", json=third, headers=tenant.admin.headers)
    assert response.status_code == 409
    assert "users limit (2)" in response.json()["detail"]

    coach = _new_user(email="new.coach@acme-coaching.io", role="coach", startup_name=None, hourly_rate=90)
    assert client.post(f"{API}/users", json=coach, headers=tenant.admin.headers).status_code == 201

    stats = client.get(f"{API}/organization/stats", headers=tenant.admin.headers).json()
    assert stats["quota_usage"]["users"] == {"used": 5, "limit": 2, "percentage": 250.0}


def test_user_reads_self_but_not_others(client, tenant):
    assert client.get(f"{API}/users/{tenant.coach.id}", headers=tenant.coach.headers).status_code == 200
    assert client.get(f"{API}/users/{tenant.manager.id}", headers=tenant.coach.headers).status_code == 403


def test_self_update_limited_to_profile_fields(client, tenant):
    ok = client.patch(
        f"{API}/users/{tenant.coach.id}",
        json={"phone": "+1 555 0100", "timezone": "Europe/Berlin"},
        headers=tenant.coach.headers,
    )
    assert ok.status_code == 200
    assert ok.json()["timezone"] == "Europe/Berlin"

    denied = client.patch(f"{API}/users/{tenant.coach.id}", json={"hourly_rate": 999}, headers=tenant.coach.headers)
    assert denied.status_code == 403


def test_update_email_conflict(client, tenant):
    response = client.patch(
        f"{API}/users/{tenant.coach.id}",
        json={"email": tenant.manager.email},
        headers=tenant.admin.headers,
    )
    assert response.status_code == 409


def test_password_change_revokes_tokens(client, tenant):
    response = client.patch(
        f"{API}/users/{tenant.coach.id}",
        json={"password": "another-long-password"},
        headers=tenant.coach.headers,
    )
    assert response.status_code == 200
    assert client.get(f"{API}/auth/me", headers=tenant.coach.headers).status_code == 401


def test_toggle_active_logs_activity(client, tenant):
    client.patch(f"{API}/users/{tenant.coach.id}", json={"is_active": False}, headers=tenant.admin.headers)
    client.patch(f"{API}/users/{tenant.coach.id}", json={"is_active": True}, headers=tenant.admin.headers)

    feed = client.get(f"{API}/admin/activity", headers=tenant.admin.headers).json()
    types = [a["activity_type"] for a in feed["items"]]
    assert types[:2] == ["USER_ACTIVATED", "USER_DEACTIVATED"]


def test_delete_user_is_soft(client, tenant):
    response = client.delete(f"{API}/users/{tenant.entrepreneur.id}", headers=tenant.manager.headers)
    assert response.status_code == 204

    user = client.get(f"{API}/users/{tenant.entrepreneur.id}", headers=tenant.manager.headers).json()
    assert user["is_active"] is False


def test_cannot_delete_self(client, tenant):
    response = client.delete(f"{API}/users/{tenant.admin.id}", headers=tenant.admin.headers)
    assert response.status_code == 400


def test_platform_admin_is_not_an_org_member(client, platform_admin):
    assert client.get(f"{API}/users", headers=platform_admin.headers).status_code == 403
