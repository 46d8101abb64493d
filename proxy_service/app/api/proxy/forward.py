from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from common.logger import session_prefix

from ...config import ProxyConfig
from ...cookie_policy import clear_session_cookie, resolve_cookie_policy
from ...dependencies import get_proxy_config, get_upstream_client
from ...services.detached_tasks import DetachedTasks, get_detached_tasks
from ...services.forwarding import (
    BODYLESS_METHODS,
    build_upstream_headers,
    filter_response_headers,
    is_noise_request,
    is_upstream_rejection,
    raw_request_path,
    strip_route_prefix,
)
from ...services.session_store import SessionStore, get_session_store
from ...services.upstream_client import UpstreamClient


logger = logging.getLogger(__name__)

router = APIRouter()

FORWARDED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


def _unauthenticated(
    request: Request,
    detail: str,
    config: ProxyConfig,
    clear_cookie: bool,
) -> JSONResponse:
    response = JSONResponse({"detail": detail}, status_code=401)
    if clear_cookie:
        clear_session_cookie(
            response,
            config.session_cookie_name,
            resolve_cookie_policy(request),
        )
    return response


@router.api_route(
    "/{path:path}",
    methods=FORWARDED_METHODS,
    summary="세션 자격증명을 붙여 업스트림으로 전달",
)
async def forward(
    request: Request,
    path: str,
    store: SessionStore = Depends(get_session_store),
    upstream: UpstreamClient = Depends(get_upstream_client),
    tasks: DetachedTasks = Depends(get_detached_tasks),
    config: ProxyConfig = Depends(get_proxy_config),
) -> Response:
    session_id = request.cookies.get(config.session_cookie_name)

    if not session_id:
        if is_noise_request(request.method, request.url.path):
            return Response(status_code=404)
        logger.info("proxy access denied: no session cookie")
        return _unauthenticated(
            request,
            "Not authenticated via proxy. Please log in.",
            config,
            clear_cookie=False,
        )

    request.state.session_prefix = session_prefix(session_id)

    # 저장소 장애는 SessionStoreUnavailableError(500) 로 올라가며 쿠키는 건드리지 않는다.
    # pymongo 호출은 동기라 이벤트 루프 밖에서 실행한다.
    upstream_credential = await run_in_threadpool(store.get, session_id)
    if upstream_credential is None:
        logger.info(
            "proxy session invalid or expired",
            extra={"session_prefix": request.state.session_prefix},
        )
        return _unauthenticated(
            request,
            "Proxy session expired or invalid. Please log in again.",
            config,
            clear_cookie=True,
        )

    target_path = strip_route_prefix(raw_request_path(request.scope), config.route_prefix)
    with_body = request.method not in BODYLESS_METHODS and (
        "content-length" in request.headers or "transfer-encoding" in request.headers
    )
    headers = build_upstream_headers(
        request.headers.items(),
        upstream_credential,
        config.user_agent,
        with_body=with_body,
    )
    content = request.stream() if with_body else None

    upstream_response = await upstream.open_stream(
        request.method,
        target_path,
        request.url.query,
        headers,
        content,
    )
    request.state.upstream_status = upstream_response.status_code

    if is_upstream_rejection(upstream_response.status_code):
        await upstream_response.aclose()
        logger.info(
            "upstream rejected bridged session, invalidating",
            extra={
                "session_prefix": request.state.session_prefix,
                "upstream_status": upstream_response.status_code,
            },
        )
        await run_in_threadpool(store.delete, session_id, tasks)
        return _unauthenticated(
            request,
            "Upstream session expired or invalid. Please log in again via proxy.",
            config,
            clear_cookie=True,
        )

    return StreamingResponse(
        upstream_response.aiter_bytes(),
        status_code=upstream_response.status_code,
        headers=filter_response_headers(upstream_response.headers.multi_items()),
        background=BackgroundTask(upstream_response.aclose),
    )
