from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


PROXY_FRONTEND_URL = "PROXY_FRONTEND_URL"
PROXY_ROUTE_PREFIX = "PROXY_ROUTE_PREFIX"
PROXY_SESSION_COOKIE_NAME = "PROXY_SESSION_COOKIE_NAME"
PROXY_SESSION_TTL_SECONDS = "PROXY_SESSION_TTL_SECONDS"
PROXY_USER_AGENT = "PROXY_USER_AGENT"
UPSTREAM_BASE_URL = "UPSTREAM_BASE_URL"
UPSTREAM_SESSION_COOKIE_NAME = "UPSTREAM_SESSION_COOKIE_NAME"
UPSTREAM_TIMEOUT_SECONDS = "UPSTREAM_TIMEOUT_SECONDS"

DEFAULT_FRONTEND_URL = "http://localhost:8080"
DEFAULT_ROUTE_PREFIX = "/proxy"
DEFAULT_SESSION_COOKIE_NAME = "proxy_session_id"
DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60
DEFAULT_USER_AGENT = "Session-Bridge-Proxy/1.0"
DEFAULT_UPSTREAM_BASE_URL = "https://newsblur.com"
DEFAULT_UPSTREAM_SESSION_COOKIE_NAME = "newsblur_sessionid"
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 30.0


@dataclass(slots=True, frozen=True)
class ProxyConfig:
    """session-proxy 전체 설정.

    frontend_url 이 None 이면 Origin 헤더가 없는 요청은 CORS 설정 오류(500)가 된다.
    """

    frontend_url: str | None = DEFAULT_FRONTEND_URL
    route_prefix: str = DEFAULT_ROUTE_PREFIX
    session_cookie_name: str = DEFAULT_SESSION_COOKIE_NAME
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    upstream_base_url: str = DEFAULT_UPSTREAM_BASE_URL
    upstream_session_cookie_name: str = DEFAULT_UPSTREAM_SESSION_COOKIE_NAME
    upstream_timeout_seconds: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS


def _load_frontend_url() -> str | None:
    # 변수 자체가 없으면 기본값, 빈 문자열로 명시하면 fallback 을 끈다.
    raw = os.getenv(PROXY_FRONTEND_URL)
    if raw is None:
        return DEFAULT_FRONTEND_URL
    value = raw.strip().rstrip("/")
    return value or None


def _load_route_prefix() -> str:
    raw = (os.getenv(PROXY_ROUTE_PREFIX) or DEFAULT_ROUTE_PREFIX).strip()
    prefix = "/" + raw.strip("/")
    if prefix == "/":
        raise RuntimeError(f"{PROXY_ROUTE_PREFIX} must not be empty or '/'")
    return prefix


def _load_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(
            f"{name} must be an integer if set, got: {raw!r}"
        ) from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got: {value}")
    return value


def _load_positive_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(
            f"{name} must be a number if set, got: {raw!r}"
        ) from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got: {value}")
    return value


def load_config() -> ProxyConfig:
    """환경 변수(.env 포함)에서 session-proxy 설정을 로드한다."""

    load_dotenv()

    upstream_base_url = (
        os.getenv(UPSTREAM_BASE_URL) or DEFAULT_UPSTREAM_BASE_URL
    ).strip().rstrip("/")

    return ProxyConfig(
        frontend_url=_load_frontend_url(),
        route_prefix=_load_route_prefix(),
        session_cookie_name=(
            os.getenv(PROXY_SESSION_COOKIE_NAME) or DEFAULT_SESSION_COOKIE_NAME
        ).strip(),
        session_ttl_seconds=_load_positive_int(
            PROXY_SESSION_TTL_SECONDS, DEFAULT_SESSION_TTL_SECONDS
        ),
        user_agent=(os.getenv(PROXY_USER_AGENT) or DEFAULT_USER_AGENT).strip(),
        upstream_base_url=upstream_base_url,
        upstream_session_cookie_name=(
            os.getenv(UPSTREAM_SESSION_COOKIE_NAME)
            or DEFAULT_UPSTREAM_SESSION_COOKIE_NAME
        ).strip(),
        upstream_timeout_seconds=_load_positive_float(
            UPSTREAM_TIMEOUT_SECONDS, DEFAULT_UPSTREAM_TIMEOUT_SECONDS
        ),
    )
