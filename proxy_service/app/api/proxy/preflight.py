from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response


router = APIRouter()


@router.options("/{path:path}", include_in_schema=False)
async def preflight(path: str) -> Response:
    # CORS 헤더는 ProxyCorsMiddleware 가 붙인다.
    return Response(status_code=204)
