import os

# Avant l'import de l'app: pas de Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

import hashlib
import hmac
import json
import time
import uuid
from dataclasses import replace
from typing import Any, Dict, Generator, List, Optional

import pytest
import resend
import stripe
from fastapi.testclient import TestClient

from backend.app import app as fastapi_app
from backend.config import Settings, get_settings
from backend.utils.security import get_current_user


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


TEST_SETTINGS = Settings(
    supabase_url="https://project.supabase.test",
    supabase_anon_key="anon-key",
    supabase_service_key="service-key",
    stripe_secret_key="sk_test_123",
    stripe_webhook_secret="whsec_test_secret",
    resend_api_key="re_test_123",
    public_site_url="https://shop.moenviron.test",
    admin_emails=["admin@moenviron.com"],
    allowed_hosts=["testserver"],
)


# --- Supabase en mémoire --------------------------------------------------

class FakeResult:
    def __init__(self, data: List[dict], count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    """Sous-ensemble du query builder postgrest utilisé par les repositories."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.filters: List[tuple] = []
        self.payload: Dict[str, Any] = {}
        self.on_conflict = ""
        self.ignore_duplicates = False
        self.count_mode: Optional[str] = None
        self._limit: Optional[int] = None
        self._order: Optional[tuple] = None

    def select(self, *columns, count=None):
        self.op = "select"
        self.count_mode = count
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def limit(self, n):
        self._limit = n
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def upsert(self, row, on_conflict="", ignore_duplicates=False):
        self.op = "upsert"
        self.payload = dict(row)
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def update(self, data):
        self.op = "update"
        self.payload = dict(data)
        return self

    def execute(self):
        self.db.queries.append((self.table_name, self.op))
        if self.db.fail:
            raise RuntimeError("database unavailable")
        rows = self.db.tables.setdefault(self.table_name, [])
        if self.op == "upsert":
            key = self.on_conflict
            existing = [r for r in rows if key and r.get(key) == self.payload.get(key)]
            if existing:
                if self.ignore_duplicates:
                    return FakeResult([])
                existing[0].update(self.payload)
                return FakeResult([dict(existing[0])])
            new = {"id": str(uuid.uuid4()), "created_at": "2026-01-01T00:00:00+00:00"}
            new.update(self.payload)
            rows.append(new)
            return FakeResult([dict(new)])

        matched = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResult([dict(r) for r in matched])
        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        count = len(matched) if self.count_mode else None
        return FakeResult([dict(r) for r in matched], count=count)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.queries: List[tuple] = []
        self.fail = False

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


# --- Fixtures ---------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def settings() -> Settings:
    return TEST_SETTINGS


@pytest.fixture(autouse=True)
def _override_settings(app, settings):
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture()
def use_settings(app):
    """Remplace la configuration injectée, ex: use_settings(stripe_webhook_secret="")."""
    def _apply(**changes) -> Settings:
        custom = replace(TEST_SETTINGS, **changes)
        app.dependency_overrides[get_settings] = lambda: custom
        return custom
    return _apply


@pytest.fixture(autouse=True)
def fake_db(monkeypatch) -> FakeSupabase:
    # Aucun test ne parle à un vrai Supabase
    db = FakeSupabase()
    monkeypatch.setattr("backend.infra.supabase_client.get_service_supabase", lambda settings=None: db)
    return db


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch) -> List[dict]:
    """Capture les envois Resend au lieu d'appeler l'API."""
    sent: List[dict] = []

    def _fake_send(payload):
        sent.append(payload)
        return {"id": f"email_{len(sent)}"}

    monkeypatch.setattr(resend.Emails, "send", _fake_send)
    return sent


@pytest.fixture()
def stripe_sessions(monkeypatch) -> List[dict]:
    """Capture les paramètres de stripe.checkout.Session.create."""
    calls: List[dict] = []

    def _fake_create(**params):
        calls.append(params)
        n = len(calls)
        return {"id": f"cs_test_{n}", "url": f"https://checkout.stripe.test/c/pay/cs_test_{n}"}

    monkeypatch.setattr(stripe.checkout.Session, "create", _fake_create)
    return calls


def _user_override(app, role: str):
    user = {"id": f"{role}-id", "email": f"{role}@moenviron.com", "role": role, "metadata": {}}
    app.dependency_overrides[get_current_user] = lambda: user
    return user


@pytest.fixture()
def staff_client(app, client):
    _user_override(app, "staff")
    yield client
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def admin_client(app, client):
    _user_override(app, "admin")
    yield client
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def user_client(app, client):
    _user_override(app, "user")
    yield client
    app.dependency_overrides.pop(get_current_user, None)


# --- Webhooks signés --------------------------------------------------------

def sign_payload(payload: str, secret: str = TEST_SETTINGS.stripe_webhook_secret, timestamp: Optional[int] = None) -> str:
    """En-tête stripe-signature (schéma v1: HMAC-SHA256 de "{t}.{payload}")."""
    ts = int(timestamp if timestamp is not None else time.time())
    signature = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


@pytest.fixture()
def post_webhook(client):
    def _post(event: Dict[str, Any], *, secret: str = TEST_SETTINGS.stripe_webhook_secret, tamper: bool = False):
        payload = json.dumps(event)
        header = sign_payload(payload, secret)
        if tamper:
            payload = payload.replace('"amount_received": 9000', '"amount_received": 1')
        return client.post(
            "/api/v1/payments/webhook",
            content=payload,
            headers={"stripe-signature": header, "content-type": "application/json"},
        )
    return _post


def payment_intent_event(pi_id: str = "pi_test_123", *, amount: int = 9000, currency: str = "gbp", items=None) -> Dict[str, Any]:
    items = items if items is not None else [{"id": "p1", "name": "Organic Tee", "qty": 2, "price": 42.5}]
    return {
        "id": f"evt_{pi_id}",
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": pi_id,
                "object": "payment_intent",
                "amount": amount,
                "amount_received": amount,
                "currency": currency,
                "status": "succeeded",
                "receipt_email": "jane@example.com",
                "metadata": {
                    "customer_email": "jane@example.com",
                    "customer_name": "Jane Doe",
                    "currency": currency,
                    "is_donation": "false",
                    "items": json.dumps(items),
                },
            }
        },
    }


def checkout_session_event(session_id: str = "cs_test_1", *, pi_id: str = "pi_test_123", payment_status: str = "paid") -> Dict[str, Any]:
    intent = payment_intent_event(pi_id)["data"]["object"]
    return {
        "id": f"evt_{session_id}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_intent": pi_id,
                "payment_status": payment_status,
                "amount_total": 9000,
                "currency": "gbp",
                "customer_details": {"email": "jane@example.com", "name": "Jane Doe"},
                "metadata": intent["metadata"],
            }
        },
    }


@pytest.fixture()
def pi_event():
    return payment_intent_event


@pytest.fixture()
def session_event():
    return checkout_session_event


@pytest.fixture()
def sign():
    return sign_payload
