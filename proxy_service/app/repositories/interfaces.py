from __future__ import annotations

from typing import Protocol

from ..models.proxy_session import ProxySession


class ProxySessionRepositoryInterface(Protocol):
    """세션 저장소 구현체가 따라야 할 최소한의 계약.

    SessionStore 는 이 인터페이스에만 의존하고, 구체 구현(Mongo 등)은 몰라도 된다.
    """

    def create(self, session: ProxySession) -> ProxySession:  # pragma: no cover - Protocol
        ...

    def find_by_session_id(
        self, session_id: str
    ) -> ProxySession | None:  # pragma: no cover - Protocol
        ...

    def delete_by_session_id(self, session_id: str) -> bool:  # pragma: no cover - Protocol
        ...
