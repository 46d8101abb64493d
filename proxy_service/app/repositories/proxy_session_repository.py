from __future__ import annotations

import logging

from pymongo.database import Database

from common.logger import session_prefix
from common.mongo.client import PROXY_SESSIONS_COLLECTION

from ..models.proxy_session import ProxySession
from .documents.proxy_session_document import ProxySessionDocument


logger = logging.getLogger(__name__)


class ProxySessionRepository:
    """proxy_sessions 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database[PROXY_SESSIONS_COLLECTION]

    def create(self, session: ProxySession) -> ProxySession:
        # 세션 ID 는 매 로그인마다 새로 발급되므로 기존 도큐먼트를 갱신하는 경로는 없다.
        document = ProxySessionDocument.from_domain(session)
        self._col.insert_one(document.to_mongo_record())
        logger.debug(
            "stored proxy session %s", session_prefix(session.session_id)
        )
        return session

    def find_by_session_id(self, session_id: str) -> ProxySession | None:
        raw = self._col.find_one({"session_id": session_id})
        if not raw:
            return None

        session = ProxySessionDocument.model_validate(raw).to_domain()

        # TTL 인덱스는 지연될 수 있으므로 애플리케이션 레벨에서도 만료를 한 번 더 확인한다.
        if session.is_expired():
            return None

        return session

    def delete_by_session_id(self, session_id: str) -> bool:
        result = self._col.delete_one({"session_id": session_id})
        return result.deleted_count > 0
