"""End-to-end session cookie handling through the app middleware."""

import json
from http.cookies import SimpleCookie

from factories import TEST_SECRET

from portal.security.session import SessionCodec


def _bearer(login: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {login}"}


def _set_cookie_headers(response, name: str) -> list[str]:
    return [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{name}=")]


def _is_deletion(header: str) -> bool:
    return "Max-Age=0" in header


def test_anonymous_public_request_sets_nothing(client, portal_data):
    response = client.get("/api/associations")
    assert response.status_code == 200
    assert response.headers.get_list("set-cookie") == []


def test_first_authenticated_request_issues_cookies(client, portal_data):
    response = client.get("/api/users/me", headers=_bearer("amartin"))
    assert response.status_code == 200

    [session_header] = _set_cookie_headers(response, "user_session")
    assert "HttpOnly" in session_header
    assert "Max-Age=604800" in session_header
    assert "SameSite=lax" in session_header

    [display_header] = _set_cookie_headers(response, "user_display")
    assert "HttpOnly" not in display_header

    user = SessionCodec(TEST_SECRET).read_session(response.cookies["user_session"])
    assert user.login == "amartin"


def test_valid_cookie_is_reused(client, portal_data):
    client.get("/api/users/me", headers=_bearer("amartin"))
    response = client.get("/api/users/me", headers=_bearer("amartin"))

    assert response.status_code == 200
    assert response.json()["login"] == "amartin"
    assert response.headers.get_list("set-cookie") == []


def test_cookie_for_other_identity_is_replaced(client, portal_data):
    client.get("/api/users/me", headers=_bearer("amartin"))
    response = client.get("/api/users/me", headers=_bearer("bdurand"))

    assert response.status_code == 200
    assert response.json()["login"] == "bdurand"
    user = SessionCodec(TEST_SECRET).read_session(response.cookies["user_session"])
    assert user.login == "bdurand"


def test_stale_cookie_for_unknown_identity_is_deleted(client, portal_data):
    client.get("/api/users/me", headers=_bearer("amartin"))
    response = client.get("/api/users/me", headers=_bearer("ghost"))

    assert response.status_code == 401
    [header] = _set_cookie_headers(response, "user_session")
    assert _is_deletion(header)


def test_tampered_cookie_is_deleted_then_rebuilt(client, portal_data):
    client.cookies.set("user_session", "00" * 16 + ":" + "00" * 16 + "." + "0" * 64)
    response = client.get("/api/users/me", headers=_bearer("cpetit"))

    assert response.status_code == 200
    assert response.json()["login"] == "cpetit"
    user = SessionCodec(TEST_SECRET).read_session(response.cookies["user_session"])
    assert user.login == "cpetit"


def test_cookie_without_assertion_is_ignored_and_kept(client, portal_data):
    client.get("/api/users/me", headers=_bearer("amartin"))
    response = client.get("/api/users/me")

    assert response.status_code == 401
    assert response.headers.get_list("set-cookie") == []
    assert "user_session" in client.cookies


def test_display_cookie_content(client, portal_data):
    response = client.get("/api/users/me", headers=_bearer("amartin"))
    assert response.status_code == 200

    [header] = _set_cookie_headers(response, "user_display")
    display = json.loads(SimpleCookie(header)["user_display"].value)
    assert display["login"] == "amartin"
    assert "permissions" not in display


def test_legacy_cookie_is_deleted(client, portal_data):
    client.cookies.set("PHPSESSID", "abc123")
    response = client.get("/health")

    [header] = _set_cookie_headers(response, "PHPSESSID")
    assert _is_deletion(header)


def test_malformed_authorization_header_is_400(client, portal_data):
    response = client.get("/api/associations", headers={"Authorization": "Token amartin"})
    assert response.status_code == 400


def test_logout_clears_cookies(client, portal_data):
    client.get("/api/users/me", headers=_bearer("amartin"))
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert _is_deletion(_set_cookie_headers(response, "user_session")[0])
    assert _is_deletion(_set_cookie_headers(response, "user_display")[0])


def test_refresh_requires_a_principal(client, portal_data):
    response = client.post("/api/auth/refresh")
    assert response.status_code == 401


def test_refresh_drops_cached_session(client, portal_data):
    client.get("/api/users/me", headers=_bearer("amartin"))
    response = client.post("/api/auth/refresh", headers=_bearer("amartin"))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert _is_deletion(_set_cookie_headers(response, "user_session")[0])
