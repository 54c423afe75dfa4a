"""Bounded background task runner for fire-and-forget work."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class TaskRunnerConfig:
    """Configuration for the background task runner."""

    max_concurrency: int = 10
    max_pending: int = 100
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls) -> "TaskRunnerConfig":
        """Create config from application settings."""
        from src.core.config import get_settings
        settings = get_settings()
        return cls(
            max_concurrency=settings.background_task_concurrency,
            max_pending=settings.background_task_queue_size,
            timeout_seconds=settings.background_task_timeout_seconds,
        )


class BackgroundTaskRunner:
    """Runs coroutines in the background behind a single error boundary.

    Work submitted here never propagates exceptions to the submitter:
    failures and timeouts are logged and counted, then dropped. Once
    ``max_pending`` tasks are in flight, new submissions are rejected.
    """

    def __init__(self, config: TaskRunnerConfig | None = None) -> None:
        self.config = config or TaskRunnerConfig()
        self._semaphore = asyncio.Semaphore(self.config.max_concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._accepting = True
        self._completed = 0
        self._failed = 0
        self._timed_out = 0
        self._rejected = 0

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished yet."""
        return len(self._tasks)

    def submit(self, factory: Callable[[], Awaitable[Any]], name: str = "background-task") -> bool:
        """Schedule a coroutine factory for background execution.

        Args:
            factory: Zero-argument callable returning the awaitable to run.
            name: Label used in logs.

        Returns:
            bool: True if the task was scheduled, False if it was rejected.
        """
        if not self._accepting:
            self._rejected += 1
            logger.warning("Task runner is shut down, dropping %s", name)
            return False

        if len(self._tasks) >= self.config.max_pending:
            self._rejected += 1
            logger.warning(
                "Task runner saturated (%d pending), dropping %s",
                len(self._tasks),
                name,
            )
            return False

        task = asyncio.create_task(self._run(factory, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run(self, factory: Callable[[], Awaitable[Any]], name: str) -> None:
        async with self._semaphore:
            try:
                await asyncio.wait_for(factory(), timeout=self.config.timeout_seconds)
                self._completed += 1
            except asyncio.TimeoutError:
                self._timed_out += 1
                logger.warning(
                    "Background task %s abandoned after %.1fs",
                    name,
                    self.config.timeout_seconds,
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                self._failed += 1
                logger.exception("Background task %s failed", name)

    async def drain(self) -> None:
        """Wait until every task submitted so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Stop accepting work, wait briefly, then cancel leftovers."""
        self._accepting = False
        if not self._tasks:
            return

        done, pending = await asyncio.wait(list(self._tasks), timeout=grace_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled %d background tasks on shutdown", len(pending))

    def get_stats(self) -> dict:
        """Get runner statistics for monitoring."""
        return {
            "pending": len(self._tasks),
            "completed": self._completed,
            "failed": self._failed,
            "timed_out": self._timed_out,
            "rejected": self._rejected,
            "max_concurrency": self.config.max_concurrency,
            "max_pending": self.config.max_pending,
        }
