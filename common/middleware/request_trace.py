import logging
import time
import uuid
from urllib.parse import parse_qs

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-Id"
SPAN_ID_HEADER = "X-Span-Id"

# 로그에서 제외하는 경로 (헬스 체크)
IGNORED_LOG_PATHS: frozenset[str] = frozenset({"/health"})

# 프록시 핸들러가 request.state 에 남기는 값 중 완료 로그에 싣는 것.
STATE_LOG_KEYS = ("upstream_status", "session_prefix")


def _query_params(query: str) -> dict[str, object]:
    return {
        key: values[0] if len(values) == 1 else values
        for key, values in parse_qs(query, keep_blank_values=True).items()
    }


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """요청마다 trace ID 를 붙이고 한 줄짜리 완료 로그를 남긴다.

    - X-Request-Id 가 없으면 새로 만들고, X-Span-Id 가 없으면 "0" 을 쓴다.
    - 두 값은 request.state 와 응답 헤더에 모두 실린다.
    - 요청 바디는 읽지 않는다. 로그인 바디에는 비밀번호가 있고 프록시 바디는 스트리밍된다.
    """

    def __init__(  # type: ignore[override]
        self,
        app,
        logger: logging.Logger | None = None,
        ignored_paths: frozenset[str] = IGNORED_LOG_PATHS,
    ) -> None:
        super().__init__(app)
        self._logger = logger or logging.getLogger("request_trace")
        self._ignored_paths = ignored_paths

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.span_id = request.headers.get(SPAN_ID_HEADER) or "0"

        quiet = request.url.path in self._ignored_paths
        started = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            if not quiet:
                self._logger.exception(
                    "request failed",
                    extra=self._trace_extra(request, started),
                )
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request.state.request_id)
        response.headers.setdefault(SPAN_ID_HEADER, request.state.span_id)

        if not quiet:
            self._logger.info(
                "completed request",
                extra=self._trace_extra(request, started, status=response.status_code),
            )
        return response

    def _trace_extra(
        self,
        request: Request,
        started: float,
        status: int | None = None,
    ) -> dict[str, object]:
        extra: dict[str, object] = {
            "request_id": request.state.request_id,
            "span_id": request.state.span_id,
            "method": request.method,
            "path": request.url.path,
            "duration": f"{(time.monotonic() - started) * 1000:.3f}ms",
        }
        if request.url.query:
            extra["query_params"] = _query_params(request.url.query)
        for key in STATE_LOG_KEYS:
            value = getattr(request.state, key, None)
            if value is not None:
                extra[key] = value
        if status is not None:
            extra["status"] = status
        return extra
