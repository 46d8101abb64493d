from __future__ import annotations


class SessionProxyError(Exception):
    """Base exception for all session-proxy errors."""

    status_code: int = 500


class ProxyConfigurationError(SessionProxyError):
    """No CORS origin can be resolved (no Origin header and no default frontend URL)."""

    status_code = 500


class SessionStoreUnavailableError(SessionProxyError):
    """The session store is unreachable or misconfigured (distinct from a session miss)."""

    status_code = 500


class UpstreamUnavailableError(SessionProxyError):
    """Network failure while contacting the upstream service."""

    status_code = 502
