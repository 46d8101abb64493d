from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote


# 업스트림으로 넘기지 않는 hop-by-hop / 엣지 인프라 헤더.
STRIPPED_REQUEST_HEADERS: frozenset[str] = frozenset(
    {
        "host",
        "connection",
        "keep-alive",
        "transfer-encoding",
        "te",
        "upgrade",
        "cf-connecting-ip",
        "cf-ipcountry",
        "cf-visitor",
        "cf-ray",
        "cf-worker",
        "x-forwarded-for",
        "x-forwarded-proto",
        "x-forwarded-host",
        "x-real-ip",
        "forwarded",
    }
)

# 클라이언트에게 돌려주는 업스트림 응답 헤더 allow-list.
FORWARDED_RESPONSE_HEADERS: frozenset[str] = frozenset(
    {"content-type", "content-length", "date", "etag"}
)

UPSTREAM_REJECTION_STATUSES: frozenset[int] = frozenset({401, 403})

BODYLESS_METHODS: frozenset[str] = frozenset({"GET", "HEAD"})

NOISE_PATH_SUFFIX = "favicon.ico"


def raw_request_path(scope: Mapping[str, Any]) -> str:
    """퍼센트 인코딩을 그대로 유지한 요청 경로.

    Starlette 의 request.url.path 는 디코딩된 값이라 %3F, %2F 같은 문자가 업스트림 경로를
    바꿔 버린다. ASGI 서버가 raw_path 를 주지 않으면 path 를 다시 인코딩해서 쓴다.
    """

    raw = scope.get("raw_path")
    if not raw:
        return quote(scope["path"])
    return raw.decode("latin-1").split("?", 1)[0]


def strip_route_prefix(path: str, prefix: str) -> str:
    if path == prefix:
        return "/"
    if path.startswith(prefix + "/"):
        return path[len(prefix):]
    return path


def is_noise_request(method: str, path: str) -> bool:
    """브라우저가 자동으로 보내는 favicon 요청인지."""
    return method == "GET" and path.endswith(NOISE_PATH_SUFFIX)


def is_upstream_rejection(status_code: int) -> bool:
    return status_code in UPSTREAM_REJECTION_STATUSES


def build_upstream_headers(
    inbound: Iterable[tuple[str, str]],
    upstream_credential: str,
    user_agent: str,
    with_body: bool = True,
) -> list[tuple[str, str]]:
    """인바운드 헤더를 복사하되 Cookie 는 업스트림 자격증명으로 바꿔 넣는다.

    브라우저 Cookie 헤더(프록시 세션 쿠키 포함)는 업스트림으로 나가지 않는다.
    바디를 보내지 않는 요청에서는 content-length 도 버린다.
    """

    headers: list[tuple[str, str]] = []
    for name, value in inbound:
        lower = name.lower()
        if lower in STRIPPED_REQUEST_HEADERS:
            continue
        if lower in ("cookie", "user-agent"):
            continue
        if lower == "content-length" and not with_body:
            continue
        headers.append((name, value))

    headers.append(("cookie", upstream_credential))
    headers.append(("user-agent", user_agent))
    return headers


def filter_response_headers(upstream: Iterable[tuple[str, str]]) -> dict[str, str]:
    """allow-list 에 있는 응답 헤더만 남긴다.

    본문은 디코딩된 상태로 스트리밍되므로 content-encoding 이 있던 응답의
    content-length 는 실제 길이와 맞지 않아 버린다.
    """

    items = [(name.lower(), value) for name, value in upstream]
    encoded = any(name == "content-encoding" for name, _ in items)

    filtered: dict[str, str] = {}
    for name, value in items:
        if name not in FORWARDED_RESPONSE_HEADERS:
            continue
        if name == "content-length" and encoded:
            continue
        filtered[name] = value
    return filtered
