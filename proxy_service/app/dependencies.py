from __future__ import annotations

from fastapi import Request

from .config import ProxyConfig
from .services.upstream_client import UpstreamClient


def get_proxy_config(request: Request) -> ProxyConfig:
    return request.app.state.config


def get_upstream_client(request: Request) -> UpstreamClient:
    return UpstreamClient(
        http=request.app.state.upstream_http,
        config=request.app.state.config,
    )
