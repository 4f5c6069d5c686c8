"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from perplexity_proxy.config import Settings
from perplexity_proxy.jobs import SqliteJobStore
from perplexity_proxy.metering import AuthorizeResult
from perplexity_proxy.upstream import PerplexityClient


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create settings with test values."""
    return Settings(
        perplexity_api_key="test-key-123",
        perplexity_base_url="https://api.perplexity.test",
        stream_deadline_seconds=55,
        default_max_tokens=16000,
        ledger_url="https://ledger.test",
        ledger_api_token="ledger-token",
        ledger_vendor_id="workspace-1",
        job_store_path=tmp_path / "jobs.db",
        enable_usage_logging=False,
        usage_log_path=tmp_path / "settlements.jsonl",
    )


@pytest.fixture
def completion_payload() -> Callable[..., dict]:
    """Factory for chat completion payloads."""

    def _make(
        content: str = "Paris is the capital of France.",
        prompt_tokens: int = 12,
        completion_tokens: int = 40,
        model: str = "sonar",
        **usage_extra,
    ) -> dict:
        return {
            "id": "cmpl-123",
            "model": model,
            "created": 1700000000,
            "object": "chat.completion",
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
                **usage_extra,
            },
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": content},
                }
            ],
            "search_results": [
                {"title": "France", "url": "https://example.com/france", "date": None}
            ],
        }

    return _make


@pytest.fixture
def mock_ledger() -> Mock:
    """Ledger gateway that authorizes everything as transaction tx-1."""
    ledger = Mock()
    ledger.authorize = AsyncMock(
        return_value=AuthorizeResult(transaction_id="tx-1", total_amount="1.25")
    )
    ledger.settle = AsyncMock(return_value={"ok": True})
    return ledger


@pytest.fixture
def mock_client() -> Mock:
    """Create a mocked Perplexity client."""
    client = Mock(spec=PerplexityClient)
    client.chat_completion = AsyncMock()
    client.create_async_job = AsyncMock()
    client.get_async_job = AsyncMock()
    return client


@pytest_asyncio.fixture
async def job_store(tmp_path: Path) -> AsyncGenerator[SqliteJobStore, None]:
    """Create a temporary SQLite job store."""
    store = SqliteJobStore(tmp_path / "test_jobs.db")
    await store.initialize()
    yield store
    await store.close()
