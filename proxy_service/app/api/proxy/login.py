from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.status import HTTP_304_NOT_MODIFIED, HTTP_204_NO_CONTENT

from ...config import ProxyConfig
from ...cookie_policy import clear_session_cookie, resolve_cookie_policy, set_session_cookie
from ...dependencies import get_proxy_config
from ...models.credentials import LoginCredentials
from ...services.detached_tasks import DetachedTasks, get_detached_tasks
from ...services.login_service import LoginService, get_login_service
from ..schemas.auth import ErrorResponse, LoginResponse


logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_credentials(request: Request) -> LoginCredentials:
    try:
        form = await request.form()
    except Exception as exc:  # noqa: BLE001
        logger.warning("failed to parse login body: %s", exc)
        raise HTTPException(status_code=400, detail="Invalid request body.") from exc

    try:
        return LoginCredentials(
            username=form.get("username"),
            password=form.get("password"),
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail="Username and password are required strings.",
        ) from exc


@router.post(
    "/api/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="업스트림 로그인 후 프록시 세션 쿠키 발급",
)
async def login(
    request: Request,
    service: LoginService = Depends(get_login_service),
    tasks: DetachedTasks = Depends(get_detached_tasks),
    config: ProxyConfig = Depends(get_proxy_config),
) -> Response:
    credentials = await _read_credentials(request)
    result = await service.login(credentials, tasks)
    policy = resolve_cookie_policy(request)

    if result.session_id is not None:
        response: Response = JSONResponse(result.body, status_code=result.status_code)
        set_session_cookie(
            response,
            config.session_cookie_name,
            result.session_id,
            policy,
            max_age=config.session_ttl_seconds,
        )
        return response

    if result.status_code in (HTTP_204_NO_CONTENT, HTTP_304_NOT_MODIFIED):
        response = Response(status_code=result.status_code)
    else:
        response = JSONResponse(result.body, status_code=result.status_code)
    clear_session_cookie(response, config.session_cookie_name, policy)
    return response
