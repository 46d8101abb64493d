from __future__ import annotations

from common.mongo.types import BaseDocument, MongoDateTime
from ...models.proxy_session import ProxySession


class ProxySessionDocument(BaseDocument):
    """MongoDB proxy_sessions 컬렉션 도큐먼트 모델."""

    session_id: str
    upstream_credential: str
    expires_at: MongoDateTime

    @classmethod
    def from_domain(cls, session: ProxySession) -> "ProxySessionDocument":
        return cls.model_validate(session.model_dump())

    def to_domain(self) -> ProxySession:
        return ProxySession(
            session_id=self.session_id,
            upstream_credential=self.upstream_credential,
            expires_at=self.expires_at,
            created_at=self.created_at,
        )
