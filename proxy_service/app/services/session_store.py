from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from common.logger import session_prefix
from common.mongo.client import get_database

from ..exceptions import SessionStoreUnavailableError
from ..models.proxy_session import ProxySession
from ..repositories.interfaces import ProxySessionRepositoryInterface
from ..repositories.proxy_session_repository import ProxySessionRepository
from .detached_tasks import DetachedTasks


logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], ProxySessionRepositoryInterface]


class SessionStore:
    """불투명 세션 ID -> 업스트림 자격증명 매핑을 다루는 저장소 추상화.

    - put/delete 는 저장소 연결만 동기적으로 확인하고, 실제 쓰기는 DetachedTasks 로 넘긴다.
      응답이 먼저 나가므로 로그인 직후 요청이 잠깐 미인증으로 보일 수 있다.
    - get 의 miss(None)는 오류가 아니라 "세션 없음"이다.
    - 저장소에 닿을 수 없으면 SessionStoreUnavailableError 를 던진다.
    """

    def __init__(self, repository_factory: RepositoryFactory) -> None:
        self._repository_factory = repository_factory

    def _repository(self) -> ProxySessionRepositoryInterface:
        try:
            return self._repository_factory()
        except (RuntimeError, PyMongoError) as exc:
            raise SessionStoreUnavailableError(
                f"session store is unavailable: {exc}"
            ) from exc

    def put(
        self,
        session_id: str,
        upstream_credential: str,
        ttl_seconds: int,
        tasks: DetachedTasks,
    ) -> None:
        repo = self._repository()
        session = ProxySession.issue(
            session_id=session_id,
            upstream_credential=upstream_credential,
            ttl_seconds=ttl_seconds,
        )
        tasks.spawn(
            f"session put {session_prefix(session_id)}",
            repo.create,
            session,
        )

    def get(self, session_id: str) -> str | None:
        repo = self._repository()
        try:
            session = repo.find_by_session_id(session_id)
        except PyMongoError as exc:
            raise SessionStoreUnavailableError(
                f"session store read failed: {exc}"
            ) from exc
        except ValidationError as exc:
            # 손상된 도큐먼트는 세션 없음이 아니라 저장소 이상으로 본다.
            raise SessionStoreUnavailableError(
                "session store returned a malformed session document"
            ) from exc
        if session is None:
            return None
        return session.upstream_credential

    def delete(self, session_id: str, tasks: DetachedTasks) -> None:
        """best-effort 삭제. 저장소를 쓸 수 없어도 호출자는 계속 진행한다."""

        try:
            repo = self._repository()
        except SessionStoreUnavailableError:
            logger.warning(
                "session delete skipped, store unavailable",
                extra={"session_prefix": session_prefix(session_id)},
                exc_info=True,
            )
            return
        tasks.spawn(
            f"session delete {session_prefix(session_id)}",
            repo.delete_by_session_id,
            session_id,
        )


def _mongo_repository() -> ProxySessionRepositoryInterface:
    return ProxySessionRepository(get_database())


def get_session_store() -> SessionStore:
    return SessionStore(_mongo_repository)
