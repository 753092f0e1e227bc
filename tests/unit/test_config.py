import pytest

from backend.config import Settings
from backend.utils.errors import ConfigurationError


def test_from_env_aliases_and_normalisation(monkeypatch):
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_KEY", "PUBLIC_SITE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "project.supabase.co/")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "'service-role'")
    monkeypatch.setenv("BASE_URL", "https://moenviron.com/")
    monkeypatch.setenv("ADMIN_EMAILS", "Boss@Moenviron.com, ops@moenviron.com")
    monkeypatch.setenv("SHIPPING_FLAT_FEE", "abc")

    s = Settings.from_env()
    assert s.supabase_url == "https://project.supabase.co"
    assert s.supabase_service_key == "service-role"
    assert s.public_site_url == "https://moenviron.com"
    assert s.admin_emails == ["boss@moenviron.com", "ops@moenviron.com"]
    assert s.shipping_flat_fee == 5.0
    assert s.database_configured is True


def test_require_reports_missing_names_only_internally():
    s = Settings(stripe_secret_key="")
    with pytest.raises(ConfigurationError) as exc:
        s.require("stripe_secret_key", operation="checkout")
    assert "stripe_secret_key" in exc.value.message
    assert exc.value.public_message == "Service not configured"
    assert s.missing("stripe_secret_key", "email_from") == ["stripe_secret_key"]
