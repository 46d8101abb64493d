"""요청마다 CORS origin / Secure / SameSite 값을 계산하는 순수 함수 모음.

결과는 요청 메타데이터(Origin 헤더, scheme, host)에만 의존하며 캐시하지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from starlette.requests import HTTPConnection
from starlette.responses import Response

from .exceptions import ProxyConfigurationError


SameSitePolicy = Literal["lax", "none"]

SAME_SITE_LAX: SameSitePolicy = "lax"
SAME_SITE_NONE: SameSitePolicy = "none"

LOCAL_DEVELOPMENT_HOSTS: frozenset[str] = frozenset({"localhost", "127.0.0.1", "::1"})

ORIGIN_HEADER = "origin"


@dataclass(slots=True, frozen=True)
class CookiePolicy:
    secure: bool
    same_site: SameSitePolicy


def resolve_allowed_origin(request: HTTPConnection, default_origin: str | None) -> str:
    """CORS 허용 origin 을 결정한다.

    Origin 헤더가 있으면 그대로 신뢰하고(allow-list 없음), 없으면 설정된 기본 프론트엔드
    origin 을 쓴다. 둘 다 없으면 CORS 를 안전하게 구성할 수 없으므로 설정 오류다.
    """

    origin = request.headers.get(ORIGIN_HEADER)
    if origin:
        return origin
    if default_origin:
        return default_origin
    raise ProxyConfigurationError(
        "CORS origin cannot be resolved: no Origin header and no default frontend URL configured"
    )


def resolve_secure_flag(request: HTTPConnection) -> bool:
    """암호화된 연결이면 True, 평문이면 로컬 개발 호스트일 때만 False."""

    if request.url.scheme in ("https", "wss"):
        return True
    hostname = (request.url.hostname or "").lower()
    return hostname not in LOCAL_DEVELOPMENT_HOSTS


def proxy_origin(request: HTTPConnection) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def resolve_same_site(request: HTTPConnection) -> SameSitePolicy:
    """Origin 헤더가 프록시 자신의 origin 과 정확히 같을 때만 lax, 그 외에는 none.

    Origin 헤더가 없는 요청은 브라우저가 same-origin 으로 보낸 것으로 보고 lax 를 쓴다.
    """

    origin = request.headers.get(ORIGIN_HEADER)
    if not origin or origin == proxy_origin(request):
        return SAME_SITE_LAX
    return SAME_SITE_NONE


def resolve_cookie_policy(request: HTTPConnection) -> CookiePolicy:
    same_site = resolve_same_site(request)
    # SameSite=None 쿠키는 Secure 없이는 브라우저가 거부한다.
    secure = True if same_site == SAME_SITE_NONE else resolve_secure_flag(request)
    return CookiePolicy(secure=secure, same_site=same_site)


def set_session_cookie(
    response: Response,
    cookie_name: str,
    session_id: str,
    policy: CookiePolicy,
    max_age: int,
) -> None:
    response.set_cookie(
        key=cookie_name,
        value=session_id,
        max_age=max_age,
        path="/",
        secure=policy.secure,
        httponly=True,
        samesite=policy.same_site,
    )


def clear_session_cookie(
    response: Response,
    cookie_name: str,
    policy: CookiePolicy,
) -> None:
    """세션 쿠키를 발급할 때와 같은 path/Secure/HttpOnly 속성으로 지운다."""

    response.delete_cookie(
        key=cookie_name,
        path="/",
        secure=policy.secure,
        httponly=True,
        samesite=policy.same_site,
    )
