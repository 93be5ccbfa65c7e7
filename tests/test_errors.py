import logging

import httpx
import pytest

from ecotrack.config import PLACEHOLDER_URL, Settings
from ecotrack.core.errors import (
    AccessDenied,
    MediaValidationError,
    NotFound,
    PlatformError,
    PlatformNotConfigured,
    PlatformUnavailable,
    classify,
    friendly_message,
)
from ecotrack.core.platform import PlatformClient, get_platform
from ecotrack.main import app


def test_friendly_messages():
    assert friendly_message("new row violates row-level security policy").startswith(
        "You don't have permission")
    assert friendly_message("Bucket not found") == (
        "Media storage is not set up yet. Please contact an administrator.")
    assert friendly_message("Payload too large") == "The file is too large to upload."
    assert friendly_message("TypeError: Failed to fetch").startswith("Network error")
    assert friendly_message("") == "Something went wrong. Please try again."
    assert friendly_message("Something specific") == "Something specific"


def test_classify():
    assert isinstance(classify(400, "new row violates row-level security policy"), AccessDenied)
    assert isinstance(classify(400, "Bucket not found"), NotFound)
    assert isinstance(classify(401, "invalid JWT"), AccessDenied)
    assert isinstance(classify(413, "Payload too large"), MediaValidationError)
    err = classify(422, "weak password")
    assert type(err) is PlatformError and err.status_code == 422


def test_placeholder_url_means_not_configured():
    assert not Settings(DATABASE_URL="sqlite://", SUPABASE_URL=PLACEHOLDER_URL).platform_configured
    assert Settings(DATABASE_URL="sqlite://", SUPABASE_URL="https://abc.supabase.co",
                    SUPABASE_ANON_KEY="key").platform_configured


def test_unconfigured_client_refuses_calls():
    client = PlatformClient(PLACEHOLDER_URL, "anon", configured=False)
    with pytest.raises(PlatformNotConfigured):
        client.sign_in_with_password("a@example.com", "secret123")


def test_admin_calls_need_service_key():
    client = PlatformClient("https://test.supabase.co", "anon",
                            transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    with pytest.raises(PlatformNotConfigured):
        client.admin_delete_user("user-1")


def test_network_failure_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = PlatformClient("https://test.supabase.co", "anon", transport=httpx.MockTransport(handler))
    with pytest.raises(PlatformUnavailable):
        client.get_user("token")
    assert client.probe("https://test.supabase.co/storage/v1/object/public/posts/x.png") is False


def test_unconfigured_backend_returns_503(client):
    app.dependency_overrides[get_platform] = lambda: PlatformClient(PLACEHOLDER_URL, "anon",
                                                                    configured=False)
    response = client.post("/auth/login", json={"email": "a@example.com", "password": "secret123"})
    assert response.status_code == 503
    assert response.json()["detail"] == "Backend is not configured"


def test_root_reports_platform_state(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["platform_configured"] is True


def test_rejected_token_is_logged_by_security_module(caplog, token_for):
    from ecotrack.core.security import decode_access_token

    caplog.set_level(logging.DEBUG, logger="ecotrack.core.security")

    assert decode_access_token("not-a-jwt") is None
    assert decode_access_token(token_for("user-1", "a@example.com"))["sub"] == "user-1"
    rejected = [r for r in caplog.records if r.name == "ecotrack.core.security"]
    assert len(rejected) == 1
    assert rejected[0].getMessage().startswith("Rejected access token")
