"""Inputs and outputs of the metered operations."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..upstream.models import (
    AsyncJob,
    AsyncJobStatus,
    ChatMessage,
    ModelName,
    PerplexityOptions,
)


class AskPerplexityInput(PerplexityOptions):
    """Ask a single question."""

    query: str = Field(min_length=1)
    model: ModelName = "sonar"


class ChatCompletionsInput(PerplexityOptions):
    """Raw chat completion over a caller-supplied conversation."""

    model: ModelName = "sonar"
    messages: list[ChatMessage] = Field(min_length=1)


class DeepResearchInput(PerplexityOptions):
    """Start a deep research job; the model is always the deep research one."""

    messages: list[ChatMessage] = Field(min_length=1)


class DeepResearchResultInput(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    transaction_id: str = Field(alias="transactionId", min_length=1)


class _Output(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AskPerplexityOutput(_Output):
    answer: str
    raw: dict[str, Any]
    input_tokens: int = Field(alias="inputTokens")
    total_amount: str = Field(alias="totalAmount")


class ChatCompletionsOutput(_Output):
    answer: Optional[str] = None
    raw: dict[str, Any]


class AuthorizedCaps(_Output):
    input_tokens: int = Field(alias="inputTokens")
    output_tokens: int = Field(alias="outputTokens")
    citation_tokens: int = Field(alias="citationTokens")
    reasoning_tokens: int = Field(alias="reasoningTokens")
    search_queries: int = Field(alias="searchQueries")


class DeepResearchOutput(_Output):
    request: AsyncJob
    transaction_id: str = Field(alias="transactionId")
    total_amount: str = Field(alias="totalAmount")
    authorized_caps: AuthorizedCaps = Field(alias="authorizedCaps")


class DeepResearchResultOutput(_Output):
    status: AsyncJobStatus
    response: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    settled: bool
