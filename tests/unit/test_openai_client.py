"""Unit tests for the timed OpenAI client wrapper."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from src.core.openai import OpenAIMetrics, TimedOpenAIClient


@pytest.fixture
def metrics() -> OpenAIMetrics:
    return OpenAIMetrics()


class TestTimedOpenAIClient:
    """Tests for metrics and retry behavior."""

    def test_records_successful_call(self, metrics: OpenAIMetrics) -> None:
        raw = MagicMock()
        raw.chat.completions.create.return_value.usage.total_tokens = 42
        client = TimedOpenAIClient(raw, metrics)

        client.create_chat_completion(model="gpt-test", messages=[])

        stats = metrics.get_stats()
        assert stats["total_calls"] == 1
        assert stats["total_errors"] == 0

    def test_non_retryable_error_raised_immediately(self, metrics: OpenAIMetrics) -> None:
        raw = MagicMock()
        raw.chat.completions.create.side_effect = ValueError("bad request")
        client = TimedOpenAIClient(raw, metrics)

        with pytest.raises(ValueError):
            client.create_chat_completion(model="gpt-test", messages=[])

        assert raw.chat.completions.create.call_count == 1
        assert metrics.get_stats()["total_errors"] == 1

    def test_connection_error_is_retried(self, metrics: OpenAIMetrics) -> None:
        raw = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        raw.chat.completions.create.side_effect = [APIConnectionError(request=request), MagicMock(usage=None)]
        client = TimedOpenAIClient(raw, metrics)

        with patch.object(TimedOpenAIClient._create_with_retry.retry, "sleep", lambda _: None):
            client.create_chat_completion(model="gpt-test", messages=[])

        assert raw.chat.completions.create.call_count == 2


class TestOpenAIMetrics:
    def test_empty_stats(self, metrics: OpenAIMetrics) -> None:
        assert metrics.get_stats() == {
            "total_calls": 0,
            "total_errors": 0,
            "avg_latency_ms": 0,
            "p95_latency_ms": 0,
        }

    def test_samples_are_bounded(self) -> None:
        metrics = OpenAIMetrics(max_samples=3)

        for latency in range(5):
            metrics.record_call(latency_ms=float(latency), model="m")

        assert metrics.get_stats()["total_calls"] == 5
        assert len(metrics._samples) == 3
