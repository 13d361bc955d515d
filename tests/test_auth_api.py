from datetime import datetime, timedelta

from conftest import API, PASSWORD, auth_header, register


def test_register_returns_tokens_and_user(client, tenant):
    tokens = register(
        client,
        email="New.Coach@Acme-Coaching.io",
        role="coach",
        organization_id=tenant.org["id"],
        hourly_rate=90,
    )
    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in"] == 15 * 60
    assert tokens["user"]["email"] == "new.coach@acme-coaching.io"
    assert tokens["user"]["role"] == "coach"
    assert "password_hash" not in tokens["user"]


def test_register_duplicate_email_conflicts(client, tenant):
    response = client.post(f"{API}/auth/register", json={
        "email": tenant.coach.email,
        "password": PASSWORD,
        "first_name": "Dup",
        "last_name": "Licate",
        "role": "coach",
        "organization_id": tenant.org["id"],
        "hourly_rate": 50,
    })
    assert response.status_code == 409


def test_register_requires_role_fields(client, tenant):
    response = client.post(f"{API}/auth/register", json={
        "email": "nostartup@acme-coaching.io",
        "password": PASSWORD,
        "first_name": "No",
        "last_name": "Startup",
        "role": "entrepreneur",
        "organization_id": tenant.org["id"],
    })
    assert response.status_code == 400
    assert "startup_name" in response.json()["detail"]


def test_register_non_admin_needs_organization(client):
    response = client.post(f"{API}/auth/register", json={
        "email": "loner@example.com",
        "password": PASSWORD,
        "first_name": "Lone",
        "last_name": "Wolf",
        "role": "manager",
    })
    assert response.status_code == 400


def test_register_short_password_is_validation_error(client):
    response = client.post(f"{API}/auth/register", json={
        "email": "short@example.com",
        "password": "short",
        "first_name": "Short",
        "last_name": "Pass",
    })
    assert response.status_code == 400
    assert response.json()["errors"]


def test_register_into_inactive_organization(client, tenant, platform_admin):
    client.delete(f"{API}/organization/admin/{tenant.org['id']}", headers=platform_admin.headers)
    response = client.post(f"{API}/auth/register", json={
        "email": "late@acme-coaching.io",
        "password": PASSWORD,
        "first_name": "Late",
        "last_name": "Comer",
        "role": "manager",
        "organization_id": tenant.org["id"],
    })
    assert response.status_code == 400


def test_login_and_me(client, tenant):
    response = client.post(f"{API}/auth/login", json={"email": tenant.coach.email, "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get(f"{API}/auth/me", headers=auth_header(token))
    assert me.status_code == 200
    assert me.json()["id"] == tenant.coach.id
    assert me.json()["last_login_at"] is not None


def test_login_form_endpoint(client, tenant):
    response = client.post(
        f"{API}/auth/token",
        data={"username": tenant.manager.email, "password": PASSWORD},
    )
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "manager"


def test_login_wrong_password(client, tenant):
    response = client.post(f"{API}/auth/login", json={"email": tenant.coach.email, "password": "nope-nope-nope"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_deactivated_user_cannot_login(client, tenant):
    client.delete(f"{API}/users/{tenant.coach.id}", headers=tenant.admin.headers)
    response = client.post(f"{API}/auth/login", json={"email": tenant.coach.email, "password": PASSWORD})
    assert response.status_code == 401


def test_missing_or_bad_token(client):
    assert client.get(f"{API}/auth/me").status_code == 401
    assert client.get(f"{API}/auth/me", headers=auth_header("garbage")).status_code == 401


def test_refresh_rotates_tokens(client, tenant):
    first = client.post(f"{API}/auth/refresh", json={"refresh_token": tenant.coach.refresh_token})
    assert first.status_code == 200
    rotated = first.json()["refresh_token"]
    assert rotated != tenant.coach.refresh_token

    # The presented token is spent
    replay = client.post(f"{API}/auth/refresh", json={"refresh_token": tenant.coach.refresh_token})
    assert replay.status_code == 401

    again = client.post(f"{API}/auth/refresh", json={"refresh_token": rotated})
    assert again.status_code == 200


def test_access_token_cannot_refresh(client, tenant):
    response = client.post(f"{API}/auth/refresh", json={"refresh_token": tenant.coach.token})
    assert response.status_code == 401


def test_logout_revokes_all_tokens(client, tenant):
    response = client.post(f"{API}/auth/logout", headers=tenant.coach.headers)
    assert response.status_code == 200

    assert client.get(f"{API}/auth/me", headers=tenant.coach.headers).status_code == 401
    refresh = client.post(f"{API}/auth/refresh", json={"refresh_token": tenant.coach.refresh_token})
    assert refresh.status_code == 401


def test_password_reset_flow(client, tenant, mail):
    response = client.post(f"{API}/auth/forgot-password", json={"email": tenant.entrepreneur.email})
    assert response.status_code == 200
    token = response.json()["_dev_reset_token"]
    assert mail.get_last_email()["to"] == tenant.entrepreneur.email

    check = client.post(f"{API}/auth/verify-reset-token", json={"email": tenant.entrepreneur.email, "token": token})
    assert check.status_code == 200

    reset = client.post(f"{API}/auth/reset-password", json={
        "email": tenant.entrepreneur.email,
        "token": token,
        "new_password": "a-brand-new-password",
    })
    assert reset.status_code == 200

    # Old tokens and the old password stop working; the reset token is single use
    assert client.get(f"{API}/auth/me", headers=tenant.entrepreneur.headers).status_code == 401
    old_login = client.post(f"{API}/auth/login", json={"email": tenant.entrepreneur.email, "password": PASSWORD})
    assert old_login.status_code == 401
    new_login = client.post(f"{API}/auth/login", json={
        "email": tenant.entrepreneur.email, "password": "a-brand-new-password"
    })
    assert new_login.status_code == 200
    reuse = client.post(f"{API}/auth/verify-reset-token", json={"email": tenant.entrepreneur.email, "token": token})
    assert reuse.status_code == 400


def test_forgot_password_does_not_reveal_unknown_email(client, mail):
    response = client.post(f"{API}/auth/forgot-password", json={"email": "ghost@example.com"})
    assert response.status_code == 200
    assert "_dev_reset_token" not in response.json()
    assert mail.sent_emails == []


def test_dev_mode_is_off_unless_configured(monkeypatch):
    from coaching_api.config import Settings
    monkeypatch.delenv("DEV_MODE", raising=False)
    assert Settings(_env_file=None).DEV_MODE is False


def test_production_mode_hides_dev_shortcuts(client, tenant, mail, monkeypatch):
    from coaching_api.config import settings
    monkeypatch.setattr(settings, "DEV_MODE", False)

    admin = client.post(f"{API}/auth/register", json={
        "email": "would-be-root@example.com",
        "password": PASSWORD,
        "first_name": "Would",
        "last_name": "Be",
        "role": "admin",
    })
    assert admin.status_code == 403

    response = client.post(f"{API}/auth/forgot-password", json={"email": tenant.coach.email})
    assert response.status_code == 200
    assert "_dev_reset_token" not in response.json()
    assert mail.get_last_email()["to"] == tenant.coach.email


def test_expired_reset_token(client, tenant, monkeypatch):
    response = client.post(f"{API}/auth/forgot-password", json={"email": tenant.manager.email})
    token = response.json()["_dev_reset_token"]

    from coaching_api.services import auth_service

    class _Later(datetime):
        @classmethod
        def utcnow(cls):
            return datetime.utcnow() + timedelta(minutes=16)

    monkeypatch.setattr(auth_service, "datetime", _Later)
    check = client.post(f"{API}/auth/verify-reset-token", json={"email": tenant.manager.email, "token": token})
    assert check.status_code == 400
