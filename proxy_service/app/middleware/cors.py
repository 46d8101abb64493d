import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ..cookie_policy import resolve_allowed_origin
from ..exceptions import ProxyConfigurationError


ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"
EXPOSED_HEADERS = "ETag"
PREFLIGHT_MAX_AGE_SECONDS = "600"


class ProxyCorsMiddleware(BaseHTTPMiddleware):
    """프록시 경로에 요청마다 계산한 CORS 헤더를 붙이는 미들웨어.

    - allow-origin 은 요청의 Origin 헤더(없으면 기본 프론트엔드 URL)를 그대로 쓴다.
    - origin 을 정할 수 없으면 라우트 로직 전에 500 으로 끝낸다.
    - 프리플라이트(OPTIONS) 응답 자체는 라우트가 204 로 만든다.
    """

    def __init__(  # type: ignore[override]
        self,
        app,
        route_prefix: str,
        default_origin: str | None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(app)
        self._route_prefix = route_prefix
        self._default_origin = default_origin
        self._logger = logger or logging.getLogger(__name__)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._is_proxied_path(request.url.path):
            return await call_next(request)

        try:
            origin = resolve_allowed_origin(request, self._default_origin)
        except ProxyConfigurationError as exc:
            self._logger.error("CORS configuration error: %s", exc)
            return JSONResponse({"detail": str(exc)}, status_code=exc.status_code)

        response = await call_next(request)
        self._set_cors_headers(response, origin, preflight=request.method == "OPTIONS")
        return response

    def _is_proxied_path(self, path: str) -> bool:
        return path == self._route_prefix or path.startswith(self._route_prefix + "/")

    def _set_cors_headers(self, response: Response, origin: str, preflight: bool) -> None:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Expose-Headers"] = EXPOSED_HEADERS
        response.headers["Vary"] = "Origin"
        if preflight:
            response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
            response.headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE_SECONDS
