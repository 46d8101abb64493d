from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import BackgroundTasks


logger = logging.getLogger(__name__)


class DetachedTasks:
    """응답 이후에 실행되고 요청 경로가 완료를 기다리지 않는 작업 묶음.

    Starlette BackgroundTasks 위에 얹혀 있어 응답 전송이 끝난 뒤 실행된다.
    작업이 실패해도 예외를 다시 던지지 않고 로그만 남긴다.
    """

    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def spawn(
        self,
        name: str,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> None:
        self._background_tasks.add_task(_run_detached, name, func, *args, **kwargs)


def _run_detached(
    name: str,
    func: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> None:
    try:
        func(*args, **kwargs)
    except Exception:  # noqa: BLE001
        logger.exception("detached task failed", extra={"task": name})
    else:
        logger.debug("detached task completed", extra={"task": name})


def get_detached_tasks(background_tasks: BackgroundTasks) -> DetachedTasks:
    return DetachedTasks(background_tasks)
