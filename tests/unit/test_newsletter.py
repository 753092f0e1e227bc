import json
from dataclasses import replace

import httpx
import pytest

from backend.newsletter import service as newsletter_service
from backend.newsletter.mailerlite import MAILERLITE_API_URL, MailerLiteClient, MailerLiteError
from backend.utils.errors import ClientInputError, ConfigurationError


def _mailerlite(groups=None, fail_emails=()):
    """Client MailerLite branché sur un transport httpx simulé."""
    state = {"groups": list(groups or []), "subscribers": [], "requests": []}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append((request.method, request.url.path, request.headers.get("authorization")))
        if request.url.path.endswith("/groups") and request.method == "GET":
            return httpx.Response(200, json={"data": state["groups"]})
        if request.url.path.endswith("/groups") and request.method == "POST":
            group = {"id": "g-new", "name": json.loads(request.content)["name"]}
            state["groups"].append(group)
            return httpx.Response(201, json={"data": group})
        if request.url.path.endswith("/subscribers"):
            body = json.loads(request.content)
            if body["email"] in fail_emails:
                return httpx.Response(422, json={"message": "The email must be a valid email address."})
            state["subscribers"].append(body)
            return httpx.Response(200, json={"data": {"id": f"s{len(state['subscribers'])}", "email": body["email"]}})
        return httpx.Response(404, json={"message": "not found"})

    http = httpx.Client(base_url=MAILERLITE_API_URL, transport=httpx.MockTransport(handler))
    return MailerLiteClient("ml-key", http=http), state


def test_find_or_create_group_reuses_existing():
    client, state = _mailerlite(groups=[{"id": "g1", "name": "Moenviron Newsletter"}])
    assert client.find_or_create_group("Moenviron Newsletter")["id"] == "g1"
    assert [r[0] for r in state["requests"]] == ["GET"]
    assert state["requests"][0][2] == "Bearer ml-key"


def test_find_or_create_group_creates_missing():
    client, state = _mailerlite()
    assert client.find_or_create_group("Moenviron Newsletter")["id"] == "g-new"


def test_http_error_becomes_mailerlite_error():
    client, _ = _mailerlite(fail_emails=("bad",))
    with pytest.raises(MailerLiteError) as exc:
        client.upsert_subscriber("bad", group_id="g1")
    assert exc.value.status_code == 502


def test_sync_counts_synced_and_failed(settings, fake_db):
    fake_db.tables["newsletter_subscribers"] = [
        {"id": 1, "email": "ann@example.com", "name": "Ann Lee Smith", "is_active": True},
        {"id": 2, "email": "bad", "name": "", "is_active": True},
        {"id": 3, "email": "old@example.com", "name": "Old", "is_active": False},
    ]
    client, state = _mailerlite(groups=[{"id": "g1", "name": "Moenviron Newsletter"}], fail_emails=("bad",))
    out = newsletter_service.sync_subscribers(
        "sync", replace(settings, mailerlite_api_key="ml-key"), client=client, delay=0
    )
    assert out["synced_count"] == 1
    assert out["failed_count"] == 1
    assert out["total"] == 2
    assert state["subscribers"][0]["fields"] == {"name": "Ann", "last_name": "Lee Smith"}
    assert state["subscribers"][0]["groups"] == ["g1"]


def test_sync_test_action(settings):
    client, _ = _mailerlite(groups=[{"id": "g1", "name": "Moenviron Newsletter"}])
    out = newsletter_service.sync_subscribers("test", replace(settings, mailerlite_api_key="ml-key"), client=client)
    assert out == {"success": True, "message": "Connection successful", "group_id": "g1", "group_name": "Moenviron Newsletter"}


def test_sync_requires_key_and_valid_action(settings):
    with pytest.raises(ClientInputError):
        newsletter_service.sync_subscribers("purge", settings)
    with pytest.raises(ConfigurationError) as exc:
        newsletter_service.sync_subscribers("test", settings)
    assert exc.value.public_message == "MailerLite API key not configured"


def test_cms_key_takes_precedence(settings, fake_db):
    fake_db.tables["site_content"] = [{"section_key": "mailerlite", "content": {"api_key": "from-cms"}}]
    assert newsletter_service.resolve_api_key(replace(settings, mailerlite_api_key="from-env")) == "from-cms"
