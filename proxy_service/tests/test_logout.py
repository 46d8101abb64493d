from __future__ import annotations

from conftest import (
    FRONTEND_ORIGIN,
    SESSION_COOKIE,
    ProxyHarness,
    is_cookie_cleared,
    parse_session_cookie,
    session_cookie_header,
)


LOGOUT_URL = "/proxy/api/logout"
SESSION_ID = "c9f0f895-fb98-4b9b-99cf-3ea1a9c1b2de"
LOGOUT_BODY = {"message": "Logged out successfully."}


def _logout(harness: ProxyHarness, session_id: str | None = SESSION_ID):
    headers = {"Origin": FRONTEND_ORIGIN}
    if session_id is not None:
        headers.update(session_cookie_header(session_id))
    return harness.client.post(LOGOUT_URL, headers=headers)


def test_logout_deletes_session_and_clears_cookie(harness: ProxyHarness) -> None:
    harness.repo.seed(SESSION_ID, "newsblur_sessionid=abc")

    response = _logout(harness)

    assert response.status_code == 200
    assert response.json() == LOGOUT_BODY
    assert is_cookie_cleared(response)
    assert harness.repo.deleted == [SESSION_ID]
    assert SESSION_ID not in harness.repo.sessions
    assert harness.upstream.call_count == 0


def test_logout_twice_still_succeeds(harness: ProxyHarness) -> None:
    harness.repo.seed(SESSION_ID, "newsblur_sessionid=abc")

    first = _logout(harness)
    second = _logout(harness)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json() == LOGOUT_BODY


def test_logout_without_cookie_clears_cookie_anyway(harness: ProxyHarness) -> None:
    response = _logout(harness, session_id=None)

    assert response.status_code == 200
    assert response.json() == LOGOUT_BODY
    assert is_cookie_cleared(response)
    assert harness.repo.deleted == []


def test_logout_with_unavailable_store_still_succeeds(harness: ProxyHarness) -> None:
    harness.break_store()

    response = _logout(harness)

    assert response.status_code == 200
    assert response.json() == LOGOUT_BODY
    assert is_cookie_cleared(response)


def test_logout_delete_failure_is_not_reported(harness: ProxyHarness) -> None:
    harness.repo.seed(SESSION_ID, "newsblur_sessionid=abc")
    harness.repo.fail_deletes = True

    response = _logout(harness)

    assert response.status_code == 200
    assert is_cookie_cleared(response)


def test_logout_clears_cookie_with_lax_same_site(harness: ProxyHarness) -> None:
    response = _logout(harness)

    morsel = parse_session_cookie(response)[SESSION_COOKIE]
    assert morsel["samesite"].lower() == "lax"
    assert morsel["secure"]
    assert morsel["httponly"]
    assert morsel["path"] == "/"


def test_logout_store_access_runs_off_the_event_loop(harness: ProxyHarness) -> None:
    _logout(harness)

    assert harness.store_calls_on_loop == [False]
