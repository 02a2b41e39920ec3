from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

NotificationJob = Callable[..., Awaitable[Any]]


class BackgroundNotifier:
    """Run notification jobs as fire-and-forget asyncio tasks.

    A job's exception is logged and dropped. Callers never await the job, so
    the request path neither blocks on delivery nor retries it.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def submit(self, job: NotificationJob, *args: Any, **kwargs: Any) -> asyncio.Task[Any] | None:
        try:
            task = asyncio.get_running_loop().create_task(self._run(job, *args, **kwargs))
        except Exception:
            logger.exception("Could not schedule notification job %s", getattr(job, "__qualname__", job))
            return None
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every job submitted so far, including jobs they submit."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, job: NotificationJob, *args: Any, **kwargs: Any) -> None:
        try:
            await job(*args, **kwargs)
        except Exception:
            logger.exception("Notification job %s failed", getattr(job, "__qualname__", job))
