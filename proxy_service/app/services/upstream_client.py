from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from ..config import ProxyConfig
from ..exceptions import UpstreamUnavailableError
from ..models.credentials import LoginCredentials


logger = logging.getLogger(__name__)

UPSTREAM_LOGIN_PATH = "/api/login"


def build_upstream_http_client(config: ProxyConfig) -> httpx.AsyncClient:
    """업스트림 호출용 공유 AsyncClient 를 만든다.

    리다이렉트는 따라가지 않는다. 로그인 응답의 3xx 자체에 세션 쿠키가 실려 올 수 있다.
    """

    return httpx.AsyncClient(
        base_url=config.upstream_base_url,
        timeout=config.upstream_timeout_seconds,
        follow_redirects=False,
        headers={"User-Agent": config.user_agent},
    )


class UpstreamClient:
    """업스트림 서비스에 대한 단일 시도 HTTP 호출. 재시도하지 않는다."""

    def __init__(self, http: httpx.AsyncClient, config: ProxyConfig) -> None:
        self._http = http
        self._config = config

    async def login(self, credentials: LoginCredentials) -> httpx.Response:
        try:
            response = await self._http.post(
                UPSTREAM_LOGIN_PATH,
                data={
                    "username": credentials.username,
                    "password": credentials.password,
                    "next": "/",
                },
                headers={"User-Agent": self._config.user_agent},
                follow_redirects=False,
            )
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError(
                f"Proxy error contacting upstream login: {exc.__class__.__name__}"
            ) from exc

        logger.info(
            "upstream login responded",
            extra={"upstream_status": response.status_code},
        )
        return response

    async def open_stream(
        self,
        method: str,
        path: str,
        query: str,
        headers: list[tuple[str, str]],
        content: AsyncIterator[bytes] | None,
    ) -> httpx.Response:
        """요청을 보내고 바디를 읽지 않은 응답을 돌려준다. 호출자가 aclose 해야 한다.

        path 는 퍼센트 인코딩이 유지된 원본 경로이며 httpx 는 이를 다시 인코딩하지 않는다.
        """

        url = f"{path}?{query}" if query else path
        request = self._http.build_request(
            method,
            url,
            headers=headers,
            content=content,
        )
        try:
            return await self._http.send(request, stream=True, follow_redirects=False)
        except httpx.RequestError as exc:
            raise UpstreamUnavailableError(
                f"Proxy error contacting upstream: {exc.__class__.__name__}"
            ) from exc
