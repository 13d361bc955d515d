import os

from conftest import API


def test_get_own_organization(client, tenant):
    response = client.get(f"{API}/organization", headers=tenant.manager.headers)
    assert response.status_code == 200
    assert response.json()["slug"] == "acme-coaching"
    assert response.json()["subscription_status"] == "active"


def test_coach_cannot_read_organization(client, tenant):
    assert client.get(f"{API}/organization", headers=tenant.coach.headers).status_code == 403


def test_organization_stats_and_quota_usage(client, tenant, platform_admin):
    client.patch(
        f"{API}/organization/admin/{tenant.org['id']}",
        json={"max_coaches": 4},
        headers=platform_admin.headers,
    )
    stats = client.get(f"{API}/organization/stats", headers=tenant.admin.headers).json()
    assert stats["total_users"] == 3  # admins excluded
    assert stats["total_coaches"] == 1
    assert stats["total_entrepreneurs"] == 1
    assert stats["total_sessions"] == 0
    assert stats["quota_usage"]["coaches"] == {"used": 1, "limit": 4, "percentage": 25.0}
    assert stats["quota_usage"]["users"]["percentage"] is None


def test_admin_updates_organization(client, tenant):
    response = client.patch(
        f"{API}/organization",
        json={"name": "Acme Coaching Group", "slug": "Acme-Group", "contact": {"phone": "+1 555 0199"}},
        headers=tenant.admin.headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["slug"] == "acme-group"
    assert body["contact"] == {"phone": "+1 555 0199"}

    feed = client.get(f"{API}/admin/activity", headers=tenant.admin.headers).json()
    assert feed["items"][0]["activity_type"] == "ORGANIZATION_UPDATED"


def test_manager_cannot_update_organization(client, tenant):
    response = client.patch(f"{API}/organization", json={"name": "Mine now"}, headers=tenant.manager.headers)
    assert response.status_code == 403


def test_slug_must_be_unique(client, tenant, other_tenant):
    response = client.patch(
        f"{API}/organization",
        json={"slug": other_tenant.org["slug"]},
        headers=tenant.admin.headers,
    )
    assert response.status_code == 409


def test_manager_settings_are_merged(client, tenant):
    first = client.patch(
        f"{API}/organization/settings/manager",
        json={"notification_preferences": {"email": True}},
        headers=tenant.manager.headers,
    )
    assert first.status_code == 200
    second = client.patch(
        f"{API}/organization/settings/manager",
        json={"notification_preferences": {"sms": False}, "dashboard_layout": {"columns": 3}},
        headers=tenant.manager.headers,
    )
    settings = second.json()["settings"]
    assert settings["notification_preferences"] == {"email": True, "sms": False}
    assert settings["dashboard_layout"] == {"columns": 3}


def test_logo_upload(client, tenant, tmp_path, monkeypatch):
    from coaching_api.config import settings
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))

    response = client.post(
        f"{API}/organization/logo",
        files={"logo": ("logo.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
        headers=tenant.manager.headers,
    )
    assert response.status_code == 200
    path = response.json()["logo_path"]
    assert path.endswith(".png")
    assert os.path.isfile(path)


def test_logo_rejects_other_content_types(client, tenant, tmp_path, monkeypatch):
    from coaching_api.config import settings
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))

    response = client.post(
        f"{API}/organization/logo",
        files={"logo": ("logo.gif", b"GIF89a", "image/gif")},
        headers=tenant.manager.headers,
    )
    assert response.status_code == 400


class TestPlatformAdmin:
    def test_create_derives_slug_and_status(self, client, platform_admin):
        response = client.post(
            f"{API}/organization/admin/create",
            json={"name": "Initech Advisors", "subscription_plan": "premium"},
            headers=platform_admin.headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["slug"] == "initech-advisors"
        assert body["subscription_status"] == "trialing"

    def test_duplicate_slug(self, client, tenant, platform_admin):
        response = client.post(
            f"{API}/organization/admin/create",
            json={"name": "Acme Coaching"},
            headers=platform_admin.headers,
        )
        assert response.status_code == 409

    def test_list_search_and_filters(self, client, tenant, other_tenant, platform_admin):
        response = client.get(
            f"{API}/organization/admin/list",
            params={"search": "globex"},
            headers=platform_admin.headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == other_tenant.org["id"]

        client.delete(f"{API}/organization/admin/{tenant.org['id']}", headers=platform_admin.headers)
        active = client.get(
            f"{API}/organization/admin/list",
            params={"is_active": True},
            headers=platform_admin.headers,
        ).json()
        assert [o["id"] for o in active["items"]] == [other_tenant.org["id"]]

    def test_soft_delete(self, client, tenant, platform_admin):
        response = client.delete(f"{API}/organization/admin/{tenant.org['id']}", headers=platform_admin.headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        fetched = client.get(f"{API}/organization/admin/{tenant.org['id']}", headers=platform_admin.headers)
        assert fetched.status_code == 200

    def test_quota(self, client, tenant, platform_admin):
        response = client.get(f"{API}/organization/admin/{tenant.org['id']}/quota", headers=platform_admin.headers)
        assert response.status_code == 200
        assert response.json()["coaches"]["used"] == 1

    def test_unknown_organization(self, client, platform_admin):
        response = client.get(
            f"{API}/organization/admin/00000000-0000-0000-0000-000000000000",
            headers=platform_admin.headers,
        )
        assert response.status_code == 404

    def test_org_admin_is_not_platform_admin(self, client, tenant):
        response = client.get(f"{API}/organization/admin/list", headers=tenant.admin.headers)
        assert response.status_code == 403
