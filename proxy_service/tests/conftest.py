from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from http.cookies import SimpleCookie

import httpx
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from proxy_service.app.config import ProxyConfig
from proxy_service.app.main import create_app
from proxy_service.app.models.proxy_session import ProxySession
from proxy_service.app.services.session_store import SessionStore, get_session_store


FRONTEND_ORIGIN = "http://localhost:8080"
UPSTREAM_BASE_URL = "https://upstream.test"
PROXY_BASE_URL = "https://testserver"
SESSION_COOKIE = "proxy_session_id"


def _on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class FakeProxySessionRepository:
    def __init__(self) -> None:
        self.sessions: dict[str, ProxySession] = {}
        self.created: list[ProxySession] = []
        self.deleted: list[str] = []
        self.fail_reads = False
        self.fail_writes = False
        self.fail_deletes = False
        self.corrupt_reads = False

    def create(self, session: ProxySession) -> ProxySession:
        if self.fail_writes:
            raise PyMongoError("write failed")
        self.created.append(session)
        self.sessions[session.session_id] = session
        return session

    def find_by_session_id(self, session_id: str) -> ProxySession | None:
        if self.fail_reads:
            raise PyMongoError("read failed")
        if self.corrupt_reads:
            ProxySession.model_validate({"session_id": session_id})
        session = self.sessions.get(session_id)
        if session is None or session.is_expired():
            return None
        return session

    def delete_by_session_id(self, session_id: str) -> bool:
        if self.fail_deletes:
            raise PyMongoError("delete failed")
        self.deleted.append(session_id)
        return self.sessions.pop(session_id, None) is not None

    def seed(self, session_id: str, upstream_credential: str) -> ProxySession:
        session = ProxySession.issue(
            session_id=session_id,
            upstream_credential=upstream_credential,
            ttl_seconds=3600,
        )
        self.sessions[session_id] = session
        return session


class FakeUpstream:
    """httpx.MockTransport 핸들러. 받은 요청을 기록하고 responder 결과를 돌려준다."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"ok": True}
        )
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.responder(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@dataclass
class ProxyHarness:
    client: TestClient
    repo: FakeProxySessionRepository
    upstream: FakeUpstream
    config: ProxyConfig
    store_available: list[bool] = field(default_factory=lambda: [True])
    # 저장소 팩토리가 호출될 때마다 이벤트 루프 스레드였는지 기록한다.
    store_calls_on_loop: list[bool] = field(default_factory=list)

    def break_store(self) -> None:
        self.store_available[0] = False


def build_harness(config: ProxyConfig | None = None) -> ProxyHarness:
    config = config or ProxyConfig(
        frontend_url=FRONTEND_ORIGIN,
        upstream_base_url=UPSTREAM_BASE_URL,
    )
    repo = FakeProxySessionRepository()
    upstream = FakeUpstream()
    upstream_http = httpx.AsyncClient(
        transport=httpx.MockTransport(upstream),
        base_url=config.upstream_base_url,
        follow_redirects=False,
        headers={"User-Agent": config.user_agent},
    )
    app = create_app(config=config, upstream_http=upstream_http)

    store_available = [True]
    store_calls_on_loop: list[bool] = []

    def repository_factory() -> FakeProxySessionRepository:
        store_calls_on_loop.append(_on_event_loop())
        if not store_available[0]:
            raise RuntimeError("MONGO_URI environment variable is required for the session store")
        return repo

    app.dependency_overrides[get_session_store] = lambda: SessionStore(repository_factory)

    client = TestClient(app, base_url=PROXY_BASE_URL)
    return ProxyHarness(
        client=client,
        repo=repo,
        upstream=upstream,
        config=config,
        store_available=store_available,
        store_calls_on_loop=store_calls_on_loop,
    )


@pytest.fixture
def harness() -> ProxyHarness:
    return build_harness()


def session_cookie_header(session_id: str) -> dict[str, str]:
    return {"Cookie": f"{SESSION_COOKIE}={session_id}"}


def set_cookie_headers(response: httpx.Response) -> list[str]:
    return response.headers.get_list("set-cookie")


def parse_session_cookie(response: httpx.Response) -> SimpleCookie:
    cookie: SimpleCookie = SimpleCookie()
    for header in set_cookie_headers(response):
        cookie.load(header)
    return cookie


def is_cookie_cleared(response: httpx.Response) -> bool:
    cookie = parse_session_cookie(response)
    if SESSION_COOKIE not in cookie:
        return False
    morsel = cookie[SESSION_COOKIE]
    return morsel.value == "" and morsel["max-age"] == "0"
