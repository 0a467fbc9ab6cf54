from __future__ import annotations

import pytest

from authshops.config import Settings
from authshops.errors import ConfigurationError
from authshops.main import build_origin_guard, create_app
from authshops.security.origin import OriginGuard


@pytest.fixture
def guard() -> OriginGuard:
    return OriginGuard("example.com", "https")


@pytest.mark.parametrize(
    "origin, allowed",
    [
        (None, True),
        ("https://example.com", True),
        ("https://shop1.example.com", True),
        ("https://my-shop-2.example.com", True),
        ("https://evil.com", False),
        ("https://a.b.example.com", False),
        ("http://example.com", False),
        ("http://shop1.example.com", False),
        ("https://example.com.evil.com", False),
        ("https://evilexample.com", False),
        ("https://exampleXcom", False),
        ("https://-shop.example.com", False),
        ("https://Shop1.example.com", False),
        ("https://example.com:8443", False),
        ("https://example.com/", False),
        ("null", False),
        ("", False),
    ],
)
def test_origin_table(guard, origin, allowed):
    assert guard.allows(origin) is allowed


def test_base_domain_with_port_is_matched_literally():
    guard = OriginGuard("localhost:5173", "http")

    assert guard.allows("http://localhost:5173")
    assert guard.allows("http://beautyhub.localhost:5173")
    assert not guard.allows("http://localhost:5174")
    assert not guard.allows("https://localhost:5173")


def test_missing_base_domain_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        OriginGuard("   ", "https")
    with pytest.raises(ConfigurationError):
        create_app(Settings(cors_domain=""))


def test_invalid_samesite_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        build_origin_guard(Settings(cors_domain="example.com", cookie_samesite="sometimes"))


def test_rejected_origin_gets_generic_403(api_client, caplog):
    with caplog.at_level("WARNING", logger="authshops.security.origin"):
        response = api_client.get("/healthz", headers={"Origin": "https://evil.com"})

    assert response.status_code == 403
    assert response.json() == {"detail": "cross-origin request denied"}
    assert "evil.com" not in response.text
    assert "access-control-allow-origin" not in response.headers
    assert "https://evil.com" in caplog.text


def test_allowed_subdomain_gets_credentialed_cors_headers(api_client):
    response = api_client.get("/healthz", headers={"Origin": "https://shop1.example.com"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://shop1.example.com"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_preflight_from_allowed_and_rejected_origins(api_client):
    preflight_headers = {
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "content-type",
    }

    allowed = api_client.options(
        "/auth/signin", headers={**preflight_headers, "Origin": "https://example.com"}
    )
    rejected = api_client.options(
        "/auth/signin", headers={**preflight_headers, "Origin": "https://a.b.example.com"}
    )

    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "https://example.com"
    assert rejected.status_code == 403
