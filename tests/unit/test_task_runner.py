"""Unit tests for the bounded background task runner."""

import asyncio

import pytest

from src.core.task_runner import BackgroundTaskRunner, TaskRunnerConfig


class TestBackgroundTaskRunner:
    """Tests for submit, error isolation and shutdown."""

    @pytest.mark.asyncio
    async def test_runs_submitted_work(self) -> None:
        runner = BackgroundTaskRunner()
        done = asyncio.Event()

        async def work():
            done.set()

        assert runner.submit(work, name="work") is True
        await runner.drain()

        assert done.is_set()
        assert runner.get_stats()["completed"] == 1

    @pytest.mark.asyncio
    async def test_failure_is_counted_not_raised(self) -> None:
        runner = BackgroundTaskRunner()

        async def broken():
            raise ValueError("nope")

        runner.submit(broken)
        await runner.drain()

        stats = runner.get_stats()
        assert stats["failed"] == 1
        assert stats["pending"] == 0

    @pytest.mark.asyncio
    async def test_timeout_is_counted(self) -> None:
        runner = BackgroundTaskRunner(TaskRunnerConfig(timeout_seconds=0.01))

        async def slow():
            await asyncio.sleep(1)

        runner.submit(slow)
        await runner.drain()

        assert runner.get_stats()["timed_out"] == 1

    @pytest.mark.asyncio
    async def test_rejects_when_saturated(self) -> None:
        runner = BackgroundTaskRunner(TaskRunnerConfig(max_pending=1))
        release = asyncio.Event()

        async def blocked():
            await release.wait()

        assert runner.submit(blocked) is True
        assert runner.submit(blocked) is False
        assert runner.get_stats()["rejected"] == 1

        release.set()
        await runner.drain()

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self) -> None:
        runner = BackgroundTaskRunner(TaskRunnerConfig(max_concurrency=2))
        running = 0
        peak = 0

        async def work():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        for _ in range(6):
            runner.submit(work)
        await runner.drain()

        assert peak <= 2
        assert runner.get_stats()["completed"] == 6

    @pytest.mark.asyncio
    async def test_shutdown_cancels_leftovers_and_rejects_new_work(self) -> None:
        runner = BackgroundTaskRunner()

        async def forever():
            await asyncio.sleep(60)

        runner.submit(forever)
        await runner.shutdown(grace_seconds=0.01)

        assert runner.pending == 0
        assert runner.submit(forever) is False
