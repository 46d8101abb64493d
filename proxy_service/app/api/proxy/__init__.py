from fastapi import APIRouter

from .forward import router as forward_router
from .login import router as login_router
from .logout import router as logout_router
from .preflight import router as preflight_router

# 라우트 테이블. 구체 경로(login/logout)가 와일드카드 경로보다 먼저 등록되어야 한다.
proxy_router = APIRouter()
proxy_router.include_router(login_router, tags=["auth"])
proxy_router.include_router(logout_router, tags=["auth"])
proxy_router.include_router(preflight_router)
proxy_router.include_router(forward_router, tags=["proxy"])
