"""Tests for the HTTP surface in totpserver.main."""

import pyotp
import pytest
from fastapi.testclient import TestClient

from totpserver import main
from totpserver.base32 import decode
from totpserver.errors import MissingSecretError
from totpserver.main import app, extract_secret
from totpserver.totp_utils import hotp_value

NO_CACHE = "no-store, no-cache, must-revalidate, proxy-revalidate"


@pytest.fixture
def client(monkeypatch) -> TestClient:
    # Pin the server clock to t=59 (counter 1, one second left)
    monkeypatch.setattr(main, "_now", lambda: 59)
    return TestClient(app)


def _assert_no_cache(resp) -> None:
    assert resp.headers["cache-control"] == NO_CACHE
    assert resp.headers["pragma"] == "no-cache"
    assert resp.headers["expires"] == "0"


# ── Health ────────────────────────────────────────────────────────────────────

def test_health(client: TestClient) -> None:
    resp = client.get("/_health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_health_word_is_treated_as_secret(client: TestClient) -> None:
    resp = client.get("/health?format=json")
    assert resp.status_code == 200
    assert resp.json()["token"] == hotp_value(decode("HEALTH"), 1)
    assert resp.headers["access-control-allow-origin"] == "*"
    _assert_no_cache(resp)


# ── JSON ──────────────────────────────────────────────────────────────────────

def test_json_success(client: TestClient) -> None:
    resp = client.get("/JBSWY3DPEHPK3PXP", params={"format": "json"})
    assert resp.status_code == 200
    assert resp.json() == {
        "token": pyotp.TOTP("JBSWY3DPEHPK3PXP").at(59),
        "remaining": 1,
        "serverTime": 59,
    }
    assert resp.headers["content-type"] == "application/json; charset=utf-8"
    assert resp.headers["access-control-allow-origin"] == "*"
    _assert_no_cache(resp)


def test_json_rfc_secret(client: TestClient) -> None:
    resp = client.get("/GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ?format=json")
    assert resp.json()["token"] == "287082"


def test_json_secret_whitespace_and_case(client: TestClient) -> None:
    resp = client.get("/jbsw%20y3dp%09ehpk%203pxp?format=json")
    assert resp.status_code == 200
    assert resp.json()["token"] == pyotp.TOTP("JBSWY3DPEHPK3PXP").at(59)


def test_json_missing_secret(client: TestClient) -> None:
    resp = client.get("/?format=json")
    assert resp.status_code == 400
    assert resp.json() == {
        "error": "Missing secret parameter",
        "usage": "http://testserver/YOUR_SECRET_KEY?format=json",
        "example": "http://testserver/JBSWY3DPEHPK3PXP?format=json",
    }
    assert resp.headers["access-control-allow-origin"] == "*"


def test_json_whitespace_only_secret_is_missing(client: TestClient) -> None:
    resp = client.get("/%20%20?format=json")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing secret parameter"


def test_json_invalid_secret(client: TestClient) -> None:
    resp = client.get("/ABC018?format=json")
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid secret key format"
    assert "'0'" in body["message"]
    _assert_no_cache(resp)


@pytest.mark.parametrize("secret", ["A", "AB", "7"])
def test_json_secret_without_key_bytes(client: TestClient, secret: str) -> None:
    resp = client.get(f"/{secret}?format=json")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid secret key format"
    assert "zero bytes" in resp.json()["message"]


def test_json_secret_with_byte_order_mark(client: TestClient) -> None:
    resp = client.get("/%EF%BB%BFJBSWY3DPEHPK3PXP?format=json")
    assert resp.status_code == 200
    assert resp.json()["token"] == pyotp.TOTP("JBSWY3DPEHPK3PXP").at(59)


def test_json_code_generation_failure(client: TestClient, monkeypatch) -> None:
    def boom(key, message):
        raise ValueError("key rejected")

    monkeypatch.setattr("totpserver.totp_utils._hmac_sha1", boom)
    resp = client.get("/JBSWY3DPEHPK3PXP?format=json")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid secret key format"
    assert "key rejected" in resp.json()["message"]


def test_repeated_calls_are_idempotent(client: TestClient) -> None:
    first = client.get("/JBSWY3DPEHPK3PXP?format=json").json()
    second = client.get("/JBSWY3DPEHPK3PXP?format=json").json()
    assert first == second


# ── HTML ──────────────────────────────────────────────────────────────────────

def test_html_with_code(client: TestClient) -> None:
    resp = client.get("/JBSWY3DPEHPK3PXP")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "text/html; charset=utf-8"
    assert "access-control-allow-origin" not in resp.headers
    _assert_no_cache(resp)
    assert pyotp.TOTP("JBSWY3DPEHPK3PXP").at(59) in resp.text
    assert 'value="JBSWY3DPEHPK3PXP"' in resp.text


def test_html_without_secret(client: TestClient) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert "<!DOCTYPE html>" in resp.text
    assert 'value=""' in resp.text


def test_html_invalid_secret_shows_error(client: TestClient) -> None:
    resp = client.get("/ABC018")
    assert resp.status_code == 200
    assert "Invalid Base32 character" in resp.text


def test_html_escapes_secret(client: TestClient) -> None:
    resp = client.get('/"><script>alert(1)</script>')
    assert resp.status_code == 200
    assert "<script>alert(1)</script>" not in resp.text


def test_unknown_format_falls_back_to_html(client: TestClient) -> None:
    resp = client.get("/JBSWY3DPEHPK3PXP?format=xml")
    assert resp.headers["content-type"].startswith("text/html")


# ── extract_secret ────────────────────────────────────────────────────────────

def test_extract_secret_strips_all_whitespace() -> None:
    assert extract_secret(" JBSW Y3DP\tEHPK\n3PXP ") == "JBSWY3DPEHPK3PXP"
    assert extract_secret("\ufeffJBSWY3DP\u00a0EHPK3PXP") == "JBSWY3DPEHPK3PXP"


@pytest.mark.parametrize("raw", ["", "   ", "\t\n", "\ufeff"])
def test_extract_secret_missing(raw: str) -> None:
    with pytest.raises(MissingSecretError):
        extract_secret(raw)
