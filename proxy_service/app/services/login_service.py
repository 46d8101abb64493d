from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import httpx
from fastapi import Depends
from starlette.concurrency import run_in_threadpool

from common.logger import session_prefix

from ..config import ProxyConfig
from ..dependencies import get_proxy_config, get_upstream_client
from ..models.credentials import LoginCredentials, extract_upstream_credential
from .detached_tasks import DetachedTasks
from .session_store import SessionStore, get_session_store
from .upstream_client import UpstreamClient


logger = logging.getLogger(__name__)

LOGIN_SUCCESS_MESSAGE = "Login successful (proxy)"
DEFAULT_LOGIN_FAILURE_BODY: dict[str, Any] = {
    "authenticated": False,
    "message": "Login failed on upstream.",
}


@dataclass(slots=True)
class LoginResult:
    """로그인 시도 결과.

    성공이면 session_id 가 채워지고, 실패면 업스트림 상태 코드와 바디를 그대로 전달한다.
    """

    status_code: int
    body: Any
    session_id: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.session_id is not None


class LoginService:
    """사용자 자격증명을 업스트림 세션 쿠키로 교환하고 프록시 세션을 발급한다."""

    def __init__(
        self,
        upstream: UpstreamClient,
        store: SessionStore,
        config: ProxyConfig,
    ) -> None:
        self._upstream = upstream
        self._store = store
        self._config = config

    async def login(
        self,
        credentials: LoginCredentials,
        tasks: DetachedTasks,
    ) -> LoginResult:
        logger.info("attempting upstream login for user %s", credentials.username)

        response = await self._upstream.login(credentials)

        credential = None
        if 200 <= response.status_code < 400:
            credential = extract_upstream_credential(
                response.headers.get_list("set-cookie"),
                self._config.upstream_session_cookie_name,
            )

        if credential is None:
            logger.warning(
                "upstream login failed for user %s",
                credentials.username,
                extra={"upstream_status": response.status_code},
            )
            return LoginResult(
                status_code=response.status_code,
                body=_failure_body(response),
            )

        session_id = str(uuid4())
        await run_in_threadpool(
            self._store.put,
            session_id,
            credential.header_value,
            self._config.session_ttl_seconds,
            tasks,
        )
        logger.info(
            "proxy session issued",
            extra={"session_prefix": session_prefix(session_id)},
        )
        return LoginResult(
            status_code=200,
            body={"authenticated": True, "message": LOGIN_SUCCESS_MESSAGE},
            session_id=session_id,
        )


def _failure_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return dict(DEFAULT_LOGIN_FAILURE_BODY)


def get_login_service(
    upstream: UpstreamClient = Depends(get_upstream_client),
    store: SessionStore = Depends(get_session_store),
    config: ProxyConfig = Depends(get_proxy_config),
) -> LoginService:
    return LoginService(upstream=upstream, store=store, config=config)
