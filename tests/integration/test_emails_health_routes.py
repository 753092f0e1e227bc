import resend


def test_manual_confirmation_email(staff_client, sent_emails):
    r = staff_client.post(
        "/api/v1/emails/order-confirmation",
        json={
            "orderId": "ord-12345678",
            "userEmail": "jane@example.com",
            "userName": "Jane",
            "items": [{"name": "Tote", "qty": 1, "price": 20}],
            "totalAmount": 25,
            "currency": "GBP",
        },
    )
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": {"status": "sent", "id": "email_1", "reason": None}}
    assert sent_emails[0]["subject"] == "Order Confirmed! #ORD-1234"


def test_status_email_invalid_address(staff_client, sent_emails):
    r = staff_client.post(
        "/api/v1/emails/order-status",
        json={"orderId": "ord-1", "userEmail": "not-an-email", "status": "shipped"},
    )
    assert r.status_code == 400
    assert sent_emails == []


def test_status_email_provider_failure_is_502(staff_client, monkeypatch):
    def _fail(payload):
        raise RuntimeError("resend 503")

    monkeypatch.setattr(resend.Emails, "send", _fail)
    r = staff_client.post(
        "/api/v1/emails/order-status",
        json={"orderId": "ord-1", "userEmail": "jane@example.com", "status": "shipped", "trackingNumber": "RM1"},
    )
    assert r.status_code == 502
    assert r.json() == {"error": "Email delivery failed"}


def test_email_endpoints_require_staff(client):
    r = client.post("/api/v1/emails/order-status", json={"orderId": "o", "userEmail": "a@b.co", "status": "shipped"})
    assert r.status_code == 401


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r.headers["x-content-type-options"] == "nosniff"


def test_health_config_reports_booleans_only(client, settings):
    body = client.get("/health/config").json()
    assert body["integrations"] == {
        "stripe": True,
        "stripe_webhook": True,
        "database": True,
        "email": True,
        "mailerlite": False,
    }
    assert settings.stripe_secret_key not in str(body)


def test_health_supabase(client, fake_db):
    assert client.get("/health/supabase").json() == {"configured": True, "connect_ok": True}
    fake_db.fail = True
    r = client.get("/health/supabase")
    assert r.status_code == 503
    assert r.json()["error"] == "RuntimeError"


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/api/v1/nothing-here")
    assert r.status_code == 404
    assert r.json() == {"error": "Not Found"}


def test_send_test_email(staff_client, sent_emails):
    r = staff_client.post("/api/v1/emails/send", json={"to": "owner@example.com", "action": "test"})
    assert r.status_code == 200
    assert r.json() == {
        "success": True,
        "message": "Test email sent!",
        "data": {"status": "sent", "id": "email_1", "reason": None},
    }
    assert sent_emails[0]["to"] == ["owner@example.com"]
    assert sent_emails[0]["subject"] == "Test Email from Moenviron"
    assert "Email Connection Successful!" in sent_emails[0]["html"]


def test_send_custom_email(staff_client, sent_emails):
    r = staff_client.post(
        "/api/v1/emails/send",
        json={"to": "jane@example.com", "subject": "Spring sale", "html": "<p>Hello</p>"},
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Email sent"
    assert sent_emails[0]["subject"] == "Spring sale"
    assert sent_emails[0]["html"] == "<p>Hello</p>"


def test_send_email_requires_subject_and_html(staff_client, sent_emails):
    r = staff_client.post("/api/v1/emails/send", json={"to": "jane@example.com", "subject": "Hi"})
    assert r.status_code == 400
    assert r.json() == {"error": "subject and html required"}
    assert sent_emails == []


def test_send_email_provider_failure_is_502(staff_client, monkeypatch):
    def _fail(payload):
        raise RuntimeError("resend 503")

    monkeypatch.setattr(resend.Emails, "send", _fail)
    r = staff_client.post("/api/v1/emails/send", json={"to": "jane@example.com", "action": "test"})
    assert r.status_code == 502
    assert r.json() == {"error": "Email delivery failed"}


def test_send_email_requires_staff(client, sent_emails):
    r = client.post("/api/v1/emails/send", json={"to": "jane@example.com", "action": "test"})
    assert r.status_code == 401
    assert sent_emails == []


def test_unknown_host_is_rejected_even_with_open_cors(client):
    r = client.get("/health", headers={"host": "evil.example"})
    assert r.status_code == 400
    assert r.text == "Invalid host header"
