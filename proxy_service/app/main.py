from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware
from common.mongo.client import close_client

from .api.health import router as health_router
from .api.proxy import proxy_router
from .config import ProxyConfig, load_config
from .exceptions import SessionProxyError
from .middleware.cors import ProxyCorsMiddleware
from .services.upstream_client import build_upstream_http_client


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    """종료 시 업스트림 HTTP 클라이언트와 MongoClient 를 정리한다."""

    try:
        yield
    finally:
        await app.state.upstream_http.aclose()
        close_client()


async def handle_session_proxy_error(
    request: Request, exc: SessionProxyError
) -> JSONResponse:
    logger.error(
        "session proxy error: %s",
        exc,
        exc_info=exc.__cause__ is not None,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse({"detail": str(exc)}, status_code=exc.status_code)


def create_app(
    config: ProxyConfig | None = None,
    upstream_http: httpx.AsyncClient | None = None,
) -> FastAPI:
    setup_logger(name="session-proxy")
    config = config or load_config()

    app = FastAPI(
        title="Session Bridge Proxy",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.upstream_http = upstream_http or build_upstream_http_client(config)

    app.add_exception_handler(SessionProxyError, handle_session_proxy_error)  # type: ignore[arg-type]

    # 나중에 추가한 미들웨어가 바깥쪽에서 실행된다 (trace -> cors -> 라우트).
    app.add_middleware(
        ProxyCorsMiddleware,
        route_prefix=config.route_prefix,
        default_origin=config.frontend_url,
    )
    app.add_middleware(RequestTraceMiddleware)

    app.include_router(health_router, tags=["health"])
    app.include_router(proxy_router, prefix=config.route_prefix)

    logger.info(
        "session proxy configured (prefix=%s, upstream=%s)",
        config.route_prefix,
        config.upstream_base_url,
    )
    return app


app = create_app()


def main() -> None:
    import uvicorn

    port = int(os.getenv("PROXY_SERVICE_PORT", "8787"))
    uvicorn.run(
        "proxy_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
