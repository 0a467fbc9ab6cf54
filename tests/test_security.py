"""Tests for password hashing and session token issuance."""

from __future__ import annotations

import jwt
import pytest

from authshops.config import Settings
from authshops.security.passwords import hash_password, verify_password
from authshops.security.tokens import (
    cookie_attributes,
    decode_session_token,
    issue_session_token,
    session_ttl_seconds,
)


@pytest.mark.parametrize("password", ["s3cret!pass", "p@ssw0rd-with-ünïcode", "12345678!"])
def test_hash_then_verify_round_trip(password):
    digest = hash_password(password)

    assert digest.startswith("$argon2id$")
    assert password not in digest
    assert verify_password(password, digest)
    assert not verify_password(password + "x", digest)
    assert not verify_password(password.upper() + "?", digest)


def test_hash_is_salted():
    assert hash_password("s3cret!pass") != hash_password("s3cret!pass")


@pytest.mark.parametrize(
    "digest",
    [
        "",
        "not-a-hash",
        "$argon2id$v=19$m=8192,t=1,p=1$broken",
        "$2b$10$abc",
        "\u00fc",
        "$argon2id$v=19$m=8192,t=1,p=1$s\u00e4lt$h\u00e4sh",
    ],
)
def test_verify_with_malformed_digest_is_false(digest):
    assert verify_password("s3cret!pass", digest) is False


def test_hash_rejects_empty_password():
    with pytest.raises(ValueError):
        hash_password("")


def test_session_token_claims():
    session = issue_session_token(account_id="user-1", user_name="alice")
    claims = decode_session_token(session.token)

    assert claims["sub"] == "user-1"
    assert claims["username"] == "alice"
    assert session.max_age == 1800
    assert int(session.expires_at.timestamp()) == claims["exp"]


def test_session_token_expiry_classes():
    assert session_ttl_seconds(False) == 30 * 60
    assert session_ttl_seconds(True) == 7 * 24 * 60 * 60
    assert issue_session_token(account_id="u", user_name="a", remember_me=True).max_age == 604800


def test_session_token_signed_by_other_secret_is_rejected():
    token = jwt.encode(
        {"sub": "user-1", "iat": 0, "exp": 2**31},
        "some-other-secret-that-is-long-enough",
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidSignatureError):
        decode_session_token(token)


def test_cookie_attributes_follow_settings():
    settings = Settings(cors_domain="localhost:5173", cookie_samesite="none")

    attrs = cookie_attributes(settings)

    assert attrs == {
        "path": "/",
        "domain": "localhost",
        "secure": True,
        "httponly": True,
        "samesite": "none",
    }


def test_empty_cookie_domain_means_host_only():
    assert Settings(cors_domain="example.com", cookie_domain_override="").cookie_domain is None
    assert Settings(cors_domain="example.com", cookie_domain_override="api.example.com").cookie_domain == "api.example.com"


@pytest.mark.parametrize("same_site", ["strict", "lax", "none"])
def test_session_cookie_is_always_secure(same_site):
    settings = Settings(cors_domain="example.com", cookie_samesite=same_site)

    assert cookie_attributes(settings)["secure"] is True
    assert not hasattr(settings, "cookie_secure")
