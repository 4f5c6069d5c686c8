"""Perplexity HTTP API client."""

import json
import logging
import time
from typing import Any, Optional

import httpx

from ..config import Settings, ensure_api_key, settings
from ..errors import UpstreamHttpError, UpstreamSchemaError
from .models import AsyncJob, CompletionResult, validate_async_job, validate_completion
from .streaming import read_completion_stream

logger = logging.getLogger(__name__)


class PerplexityClient:
    """Async client for the chat completions and async job endpoints."""

    CHAT_COMPLETIONS_PATH = "/chat/completions"
    ASYNC_JOBS_PATH = "/async/chat/completions"

    def __init__(
        self,
        config: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or settings
        self.base_url = self.config.perplexity_base_url.rstrip("/")
        self.stream_deadline_seconds = self.config.stream_deadline_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self.config.http_timeout_seconds
        )

    async def aclose(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, accept: str = "application/json") -> dict[str, str]:
        api_key = ensure_api_key(self.config)
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": accept,
        }

    @staticmethod
    async def _raise_for_status(response: httpx.Response):
        if response.is_success:
            return
        await response.aread()
        raise UpstreamHttpError(
            status=response.status_code,
            status_text=response.reason_phrase,
            body=response.text,
        )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise UpstreamSchemaError(
                f"Upstream returned a non-JSON body: {response.text[:200]!r}"
            ) from e

    async def chat_completion(
        self,
        body: dict[str, Any],
        started_at: Optional[float] = None,
    ) -> CompletionResult:
        """POST a chat completion request.

        Streamed responses are decoded under the configured deadline, measured
        from ``started_at`` (``time.monotonic()``) or from the start of this call.

        Raises:
            MissingCredentialError: If no API key is configured
            UpstreamHttpError: On a non-2xx response
            UpstreamSchemaError: If the payload is not a chat completion
            EmptyStreamError: If a streamed response carried no payload
        """
        wants_stream = bool(body.get("stream"))
        headers = self._headers(
            accept="text/event-stream, application/json" if wants_stream else "application/json"
        )
        if started_at is None:
            started_at = time.monotonic()

        url = f"{self.base_url}{self.CHAT_COMPLETIONS_PATH}"
        logger.info(f"Calling chat completions: model={body.get('model')}, stream={wants_stream}")

        async with self._client.stream("POST", url, headers=headers, json=body) as response:
            await self._raise_for_status(response)
            content_type = response.headers.get("content-type", "")
            if "text/event-stream" in content_type:
                return await read_completion_stream(
                    response,
                    deadline_seconds=self.stream_deadline_seconds,
                    started_at=started_at,
                )
            await response.aread()
            data = self._json(response)

        return validate_completion(data)

    async def create_async_job(self, body: dict[str, Any]) -> AsyncJob:
        """Submit an asynchronous chat completion job."""
        headers = self._headers()
        request = dict(body, stream=False)
        response = await self._client.post(
            f"{self.base_url}{self.ASYNC_JOBS_PATH}",
            headers=headers,
            json={"request": request},
        )
        await self._raise_for_status(response)
        job = validate_async_job(self._json(response))
        logger.info(f"Created async job {job.id} ({job.model}), status={job.status.value}")
        return job

    async def get_async_job(self, job_id: str) -> AsyncJob:
        """Fetch the current descriptor of an asynchronous job."""
        headers = self._headers()
        response = await self._client.get(
            f"{self.base_url}{self.ASYNC_JOBS_PATH}/{job_id}",
            headers=headers,
        )
        await self._raise_for_status(response)
        return validate_async_job(self._json(response))
