from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from common.logger import session_prefix

from ...config import ProxyConfig
from ...cookie_policy import SAME_SITE_LAX, CookiePolicy, clear_session_cookie, resolve_secure_flag
from ...dependencies import get_proxy_config
from ...services.detached_tasks import DetachedTasks, get_detached_tasks
from ...services.session_store import SessionStore, get_session_store
from ..schemas.auth import LogoutResponse


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/logout",
    response_model=LogoutResponse,
    summary="프록시 세션 삭제 및 쿠키 제거",
)
async def logout(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    tasks: DetachedTasks = Depends(get_detached_tasks),
    config: ProxyConfig = Depends(get_proxy_config),
) -> JSONResponse:
    session_id = request.cookies.get(config.session_cookie_name)
    logger.info(
        "logout requested",
        extra={"session_prefix": session_prefix(session_id)},
    )

    if session_id:
        await run_in_threadpool(store.delete, session_id, tasks)

    response = JSONResponse({"message": "Logged out successfully."})
    # 로그아웃은 앱 자체에서 호출되므로 항상 lax 로 지운다.
    policy = CookiePolicy(secure=resolve_secure_flag(request), same_site=SAME_SITE_LAX)
    clear_session_cookie(response, config.session_cookie_name, policy)
    return response
