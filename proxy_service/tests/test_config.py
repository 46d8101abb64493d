from __future__ import annotations

import pytest

from proxy_service.app.config import (
    DEFAULT_FRONTEND_URL,
    DEFAULT_SESSION_TTL_SECONDS,
    ProxyConfig,
    load_config,
)


CONFIG_ENV_VARS = (
    "PROXY_FRONTEND_URL",
    "PROXY_ROUTE_PREFIX",
    "PROXY_SESSION_COOKIE_NAME",
    "PROXY_SESSION_TTL_SECONDS",
    "PROXY_USER_AGENT",
    "UPSTREAM_BASE_URL",
    "UPSTREAM_SESSION_COOKIE_NAME",
    "UPSTREAM_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # 로컬 .env 파일이 테스트 값에 섞이지 않게 한다.
    monkeypatch.setattr("proxy_service.app.config.load_dotenv", lambda: False)
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = load_config()

    assert config == ProxyConfig()
    assert config.frontend_url == DEFAULT_FRONTEND_URL
    assert config.route_prefix == "/proxy"
    assert config.session_cookie_name == "proxy_session_id"
    assert config.session_ttl_seconds == DEFAULT_SESSION_TTL_SECONDS
    assert config.upstream_base_url == "https://newsblur.com"
    assert config.upstream_session_cookie_name == "newsblur_sessionid"
    assert config.upstream_timeout_seconds == 30.0


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROXY_FRONTEND_URL", "https://reader.example.org/")
    monkeypatch.setenv("PROXY_ROUTE_PREFIX", "bridge/")
    monkeypatch.setenv("PROXY_SESSION_TTL_SECONDS", "3600")
    monkeypatch.setenv("UPSTREAM_BASE_URL", "https://upstream.example.org/")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "2.5")

    config = load_config()

    assert config.frontend_url == "https://reader.example.org"
    assert config.route_prefix == "/bridge"
    assert config.session_ttl_seconds == 3600
    assert config.upstream_base_url == "https://upstream.example.org"
    assert config.upstream_timeout_seconds == 2.5


def test_empty_frontend_url_disables_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROXY_FRONTEND_URL", "")

    assert load_config().frontend_url is None


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("PROXY_SESSION_TTL_SECONDS", "abc"),
        ("PROXY_SESSION_TTL_SECONDS", "0"),
        ("UPSTREAM_TIMEOUT_SECONDS", "-1"),
        ("PROXY_ROUTE_PREFIX", "/"),
    ],
)
def test_invalid_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError):
        load_config()
