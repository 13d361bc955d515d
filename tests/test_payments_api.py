import uuid
from datetime import datetime

import pytest

from coaching_api.repositories.payment_repo import PaymentRepository
from coaching_api.services.payment_service import PaymentService

from conftest import API, PASSWORD, book_session, completed_session, future


def generate(client, tenant, session_ids, coach_id=None):
    return client.post(f"{API}/payments/generate", json={
        "coach_id": coach_id or tenant.coach.id,
        "session_ids": session_ids,
    }, headers=tenant.manager.headers)


@pytest.fixture
def invoice(client, tenant):
    first = completed_session(client, tenant, future(days=-3), duration=90)
    second = completed_session(client, tenant, future(days=-2), duration=60)
    response = generate(client, tenant, [first["id"], second["id"]])
    assert response.status_code == 201, response.text
    return response.json()


def test_generate_prices_sessions_with_tax(client, tenant, invoice):
    year = datetime.utcnow().year
    assert invoice["invoice_number"] == f"INV-{year}-00001"
    assert [item["amount"] for item in invoice["line_items"]] == [180.0, 120.0]
    assert invoice["amount"] == 300.0
    assert invoice["tax_amount"] == 24.0
    assert invoice["total_amount"] == 324.0
    assert invoice["status"] == "pending"
    assert invoice["currency"] == "USD"
    assert invoice["due_date"] is not None

    sessions = client.get(f"{API}/sessions/{invoice['session_ids'][0]}", headers=tenant.manager.headers).json()
    assert sessions["payment_id"] == invoice["id"]


def test_invoice_numbers_increase(client, tenant, invoice):
    third = completed_session(client, tenant, future(days=-1))
    response = generate(client, tenant, [third["id"]])
    assert response.json()["invoice_number"].endswith("-00002")


def test_invoice_numbers_are_global(client, tenant, other_tenant, invoice):
    session = completed_session(client, other_tenant, future(days=-1))
    response = generate(client, other_tenant, [session["id"]])
    assert response.json()["invoice_number"].endswith("-00002")


def test_generate_requires_completed_sessions(client, tenant):
    scheduled = book_session(client, tenant, future()).json()
    assert generate(client, tenant, [scheduled["id"]]).status_code == 400


def test_generate_rejects_other_coaches_sessions(client, tenant):
    second_coach = client.post(f"{API}/users", json={
        "email": "coach2@acme-coaching.io",
        "password": PASSWORD,
        "first_name": "Second",
        "last_name": "Coach",
        "role": "coach",
        "hourly_rate": 80,
    }, headers=tenant.admin.headers).json()
    session = completed_session(client, tenant, future(days=-1))
    assert generate(client, tenant, [session["id"]], coach_id=second_coach["id"]).status_code == 400


def test_session_billed_once(client, tenant, invoice):
    response = generate(client, tenant, [invoice["session_ids"][0]])
    assert response.status_code == 409


def test_session_claimed_concurrently_rolls_back(client, tenant, monkeypatch):
    first = completed_session(client, tenant, future(days=-3))
    second = completed_session(client, tenant, future(days=-2))
    validate = PaymentService._billable_sessions

    async def billed_in_between(self, org_id, coach, session_ids):
        sessions = await validate(self, org_id, coach, session_ids)
        # Another request bills the first session after validation
        await self.session_repo.mark_billed([sessions[0].id], uuid.uuid4())
        return sessions

    monkeypatch.setattr(PaymentService, "_billable_sessions", billed_in_between)
    response = generate(client, tenant, [first["id"], second["id"]])
    assert response.status_code == 409

    assert client.get(f"{API}/payments", headers=tenant.manager.headers).json()["total"] == 0
    for session_id in (first["id"], second["id"]):
        session = client.get(f"{API}/sessions/{session_id}", headers=tenant.manager.headers).json()
        assert session["payment_id"] is None


def test_taken_invoice_number_is_retried(client, tenant, invoice, monkeypatch):
    next_number = PaymentRepository.next_invoice_number
    calls = []

    async def stale_then_fresh(self, now=None):
        calls.append(now)
        if len(calls) == 1:
            return invoice["invoice_number"]
        return await next_number(self, now)

    monkeypatch.setattr(PaymentRepository, "next_invoice_number", stale_then_fresh)
    session = completed_session(client, tenant, future(days=-1))
    response = generate(client, tenant, [session["id"]])

    assert response.status_code == 201, response.text
    assert response.json()["invoice_number"].endswith("-00002")
    assert len(calls) == 2
    billed = client.get(f"{API}/sessions/{session['id']}", headers=tenant.manager.headers).json()
    assert billed["payment_id"] == response.json()["id"]


def test_generate_unknown_session(client, tenant):
    response = generate(client, tenant, ["00000000-0000-0000-0000-000000000000"])
    assert response.status_code == 404


def test_generate_staff_only(client, tenant):
    session = completed_session(client, tenant, future(days=-1))
    response = client.post(f"{API}/payments/generate", json={
        "coach_id": tenant.coach.id,
        "session_ids": [session["id"]],
    }, headers=tenant.coach.headers)
    assert response.status_code == 403


def test_manual_payment(client, tenant):
    session = completed_session(client, tenant, future(days=-1))
    response = client.post(f"{API}/payments", json={
        "coach_id": tenant.coach.id,
        "session_ids": [session["id"]],
        "amount": 100,
        "tax_amount": 5.5,
        "currency": "eur",
    }, headers=tenant.admin.headers)
    assert response.status_code == 201
    body = response.json()
    assert body["total_amount"] == 105.5
    assert body["currency"] == "EUR"


def test_payment_visibility(client, tenant, other_tenant, invoice):
    listed = client.get(f"{API}/payments", headers=tenant.coach.headers).json()
    assert [p["id"] for p in listed["items"]] == [invoice["id"]]

    assert client.get(f"{API}/payments/{invoice['id']}", headers=tenant.coach.headers).status_code == 200
    assert client.get(f"{API}/payments/{invoice['id']}", headers=tenant.entrepreneur.headers).status_code == 403
    assert client.get(f"{API}/payments", headers=tenant.entrepreneur.headers).status_code == 403
    assert client.get(f"{API}/payments/{invoice['id']}", headers=other_tenant.admin.headers).status_code == 404


def test_mark_paid(client, tenant, invoice):
    response = client.patch(f"{API}/payments/{invoice['id']}/mark-paid", headers=tenant.manager.headers)
    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert response.json()["paid_at"] is not None

    feed = client.get(f"{API}/admin/activity", headers=tenant.manager.headers).json()
    paid = next(a for a in feed["items"] if a["activity_type"] == "PAYMENT_COMPLETED")
    assert paid["payment_id"] == invoice["id"]
    assert paid["amount"] == 324.0


def test_void_releases_sessions(client, tenant, invoice):
    response = client.patch(f"{API}/payments/{invoice['id']}", json={"status": "void"}, headers=tenant.admin.headers)
    assert response.status_code == 200

    again = generate(client, tenant, invoice["session_ids"])
    assert again.status_code == 201

    reopen = client.patch(f"{API}/payments/{invoice['id']}", json={"status": "pending"}, headers=tenant.admin.headers)
    assert reopen.status_code == 409


def test_billed_session_is_locked(client, tenant, invoice):
    session_id = invoice["session_ids"][0]
    moved = client.patch(
        f"{API}/sessions/{session_id}",
        json={"scheduled_at": future(days=-10).isoformat()},
        headers=tenant.manager.headers,
    )
    assert moved.status_code == 409
    notes = client.patch(
        f"{API}/sessions/{session_id}",
        json={"notes": {"follow_up": "Send deck"}},
        headers=tenant.manager.headers,
    )
    assert notes.status_code == 200
    assert client.delete(f"{API}/sessions/{session_id}", headers=tenant.manager.headers).status_code == 409


def test_download_invoice_pdf(client, tenant, invoice):
    response = client.get(f"{API}/payments/{invoice['id']}/invoice", headers=tenant.coach.headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert invoice["invoice_number"] in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_send_invoice(client, tenant, invoice, mail):
    response = client.post(f"{API}/payments/{invoice['id']}/send-invoice", headers=tenant.manager.headers)
    assert response.status_code == 200
    assert response.json()["reminders_sent"][0]["type"] == "email"

    sent = mail.get_last_email()
    assert sent["to"] == tenant.coach.email
    assert sent["attachments"] == [f"invoice-{invoice['invoice_number']}.pdf"]


def test_payment_stats(client, tenant, invoice):
    client.patch(f"{API}/payments/{invoice['id']}/mark-paid", headers=tenant.manager.headers)
    pending = completed_session(client, tenant, future(days=-1))
    generate(client, tenant, [pending["id"]])

    stats = client.get(f"{API}/payments/stats", headers=tenant.manager.headers).json()
    assert stats["total"] == 2
    assert stats["by_status"]["paid"]["count"] == 1
    assert stats["by_status"]["pending"]["total"] == 129.6
    assert stats["revenue"]["total_revenue"] == 324.0
    assert stats["revenue"]["average_payment"] == 324.0


def test_payment_stats_date_only_end_includes_today(client, tenant, invoice):
    today = datetime.utcnow().strftime("%Y-%m-%d")
    stats = client.get(
        f"{API}/payments/stats",
        params={"start_date": today, "end_date": today},
        headers=tenant.manager.headers,
    ).json()
    assert stats["total"] == 1
    assert stats["by_status"]["pending"]["total"] == 324.0
