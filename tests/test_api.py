import httpx

from backend.errors import GenerativeServiceError
from backend.services import assistant_service
from backend.settings import reset_settings

from conftest import HEADERS, run


def _create(client, **overrides):
    payload = {"name": "Rent", "amount": 1500, "due_date": "2024-03-12", "notify_days_before": 3}
    payload.update(overrides)
    response = client.post("/v1/bills", json=payload, headers=HEADERS)
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_auth_required(client):
    assert client.get("/v1/bills").status_code == 401
    bad = {"X-User-Email": "jordan@example.com", "X-Backend-Token": "nope"}
    assert client.get("/v1/bills", headers=bad).status_code == 401


def test_allowed_emails_enforced(client, monkeypatch):
    from backend.settings import reset_settings

    monkeypatch.setenv("ALLOWED_EMAILS", "someone@example.com")
    reset_settings()
    assert client.get("/v1/bills", headers=HEADERS).status_code == 403


def test_create_bill_returns_due_status(client):
    bill = _create(client)
    assert bill["due_status"] == "due_soon"
    assert bill["days_until"] == 2
    assert bill["status"] == "pending"


def test_create_bill_validation(client):
    response = client.post("/v1/bills", json={"name": "  ", "amount": 5, "due_date": "2024-03-12"}, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["field"] == "name"
    response = client.post("/v1/bills", json={"name": "Water", "due_date": "2024-03-12"}, headers=HEADERS)
    assert response.status_code == 422
    assert client.get("/v1/bills", headers=HEADERS).json()["items"] == []


def test_summary_and_status_filters(client):
    _create(client, name="Rent", amount=1500, due_date="2024-03-12")
    _create(client, name="Water", amount=40, due_date="2024-03-01")
    _create(client, name="Tax", amount=900, due_date="2024-04-15")
    paid = _create(client, name="Phone", amount=55, due_date="2024-02-01", status="paid")

    summary = client.get("/v1/bills/summary", headers=HEADERS).json()
    assert summary["due_soon"] == {"count": 1, "total": 1500.0}
    assert summary["overdue"] == {"count": 1, "total": 40.0}
    assert summary["upcoming"] == {"count": 1, "total": 900.0}
    assert summary["paid"] == {"count": 1, "total": 55.0}

    overdue = client.get("/v1/bills", params={"status": "overdue"}, headers=HEADERS).json()["items"]
    assert [item["name"] for item in overdue] == ["Water"]
    pending = client.get("/v1/bills", params={"status": "pending"}, headers=HEADERS).json()["items"]
    assert [item["name"] for item in pending] == ["Tax", "Rent", "Water"]
    assert client.get("/v1/bills", params={"status": "late"}, headers=HEADERS).status_code == 422

    grouped = client.get("/v1/bills/grouped", params={"include_paid": False}, headers=HEADERS).json()
    assert [item["name"] for item in grouped["due_soon"]] == ["Rent"]
    assert grouped["paid"] == []
    assert client.get(f"/v1/bills/{paid['id']}", headers=HEADERS).json()["due_status"] == "paid"


def test_pay_recurring_bill(client):
    bill = _create(client, due_date="2024-03-31", recurring=True, frequency="monthly")
    response = client.post(f"/v1/bills/{bill['id']}/pay", headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["bill"]["status"] == "paid"
    assert body["next_bill"]["due_date"] == "2024-04-30"
    assert body["next_bill"]["due_status"] == "upcoming"
    assert len(client.get("/v1/bills", headers=HEADERS).json()["items"]) == 2


def test_patch_and_delete_bill(client):
    bill = _create(client)
    response = client.patch(f"/v1/bills/{bill['id']}", json={"amount": 1600}, headers=HEADERS)
    assert response.json()["amount"] == 1600
    assert client.delete(f"/v1/bills/{bill['id']}", headers=HEADERS).json() == {"ok": True}
    assert client.delete(f"/v1/bills/{bill['id']}", headers=HEADERS).status_code == 404
    assert client.get(f"/v1/bills/{bill['id']}", headers=HEADERS).status_code == 404


def test_bill_calendar(client):
    _create(client, due_date="2024-03-12", amount=10)
    _create(client, due_date="2024-03-12", amount=15)
    body = client.get("/v1/bills/calendar", params={"year": 2024, "month": 3}, headers=HEADERS).json()
    assert len(body["days"]) == 31
    assert body["days"][11]["total"] == 25.0
    assert len(body["days"][11]["bills"]) == 2
    assert client.get("/v1/bills/calendar", params={"month": 13}, headers=HEADERS).status_code == 422


def test_subscription_endpoints(client):
    for vendor, amount, interval in [("Stream", 15, "monthly"), ("Cloud", 120, "yearly"), ("Gym", 10, "weekly")]:
        response = client.post(
            "/v1/subscriptions",
            json={"vendor": vendor, "amount": amount, "interval": interval, "next_renewal": "2024-03-20"},
            headers=HEADERS,
        )
        assert response.status_code == 200
    summary = client.get("/v1/subscriptions/summary", headers=HEADERS).json()
    assert summary["monthly_equivalent"] == 25.0
    assert summary["annual_equivalent"] == 300.0
    assert summary["excluded_intervals"]["weekly"] == {"count": 1, "total": 10.0}
    assert summary["next_renewal"] == "2024-03-20"

    items = client.get("/v1/subscriptions", headers=HEADERS).json()["items"]
    gym = next(item for item in items if item["vendor"] == "Gym")
    assert client.patch(f"/v1/subscriptions/{gym['id']}", json={"status": "cancelled"}, headers=HEADERS).json()["status"] == "cancelled"
    assert client.delete(f"/v1/subscriptions/{gym['id']}", headers=HEADERS).json() == {"ok": True}
    assert client.post("/v1/subscriptions", json={"vendor": "", "amount": 1}, headers=HEADERS).status_code == 422


def test_page_view_reconciles_notifications(client, store, identity):
    from backend import repositories

    run(repositories.create_notification(store, identity.id, "bill_due", title="Rent due"))
    run(repositories.create_notification(store, identity.id, "bill_due", title="Water due"))
    run(repositories.create_notification(store, identity.id, "event_reminder", title="Dentist"))

    counts = client.get("/v1/notifications/counts", headers=HEADERS).json()
    assert counts["bills"] == 2
    assert counts["calendar"] == 1

    marked = client.post("/v1/pages/bills/viewed", headers=HEADERS).json()["marked"]
    assert len(marked) == 2
    unread = client.get("/v1/notifications", params={"unread": True}, headers=HEADERS).json()["items"]
    assert [item["type"] for item in unread] == ["event_reminder"]
    assert client.post("/v1/pages/nowhere/viewed", headers=HEADERS).status_code == 422

    one = client.post(f"/v1/notifications/{unread[0]['id']}/read", headers=HEADERS).json()
    assert one["read"] is True
    assert "created_by" not in one and "updated_date" not in one
    assert set(unread[0]) == set(one)
    assert client.post("/v1/notifications/read-all", headers=HEADERS).json() == {"marked": []}


def test_bootstrap(client):
    _create(client)
    body = client.get("/v1/bootstrap", headers=HEADERS).json()
    assert body["user_email"] == "jordan@example.com"
    assert body["user_name"] == "Jordan"
    assert body["today"] == "2024-03-10"
    assert body["bill_summary"]["due_soon"]["count"] == 1
    assert body["unread_counts"]["total"] == 0


def test_assistant_fallback_on_error(client, monkeypatch):
    async def failing(prompt, transport=None):
        raise GenerativeServiceError("offline")

    monkeypatch.setattr(assistant_service, "complete", failing)
    body = client.post("/v1/assistant/complete", json={"prompt": "advice"}, headers=HEADERS).json()
    assert body == {"text": assistant_service.FALLBACK_MESSAGE, "ok": False}


def test_assistant_success(client, monkeypatch):
    async def answer(prompt, transport=None):
        return f"echo: {prompt}"

    monkeypatch.setattr(assistant_service, "complete", answer)
    body = client.post("/v1/assistant/complete", json={"prompt": "advice"}, headers=HEADERS).json()
    assert body == {"text": "echo: advice", "ok": True}


def test_upload_roundtrip(client):
    response = client.post("/v1/uploads", files={"file": ("avatar.png", b"\x89PNG data", "image/png")}, headers=HEADERS)
    assert response.status_code == 200
    url = response.json()["file_url"]
    download = client.get(httpx.URL(url).path)
    assert download.status_code == 200
    assert download.content == b"\x89PNG data"


def test_upload_over_limit_is_rejected(client, monkeypatch, tmp_path):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "1024")
    reset_settings()
    response = client.post("/v1/uploads", files={"file": ("big.bin", b"x" * 200_000, "application/octet-stream")}, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["field"] == "file"
    assert not list((tmp_path / "uploads").glob("*"))


def test_patch_null_status_rejected(client):
    bill = _create(client)
    client.post(f"/v1/bills/{bill['id']}/pay", headers=HEADERS)
    response = client.patch(f"/v1/bills/{bill['id']}", json={"status": None}, headers=HEADERS)
    assert response.status_code == 422
    assert client.get(f"/v1/bills/{bill['id']}", headers=HEADERS).json()["status"] == "paid"
