"""Request and response shapes for the Perplexity chat completions API."""

import logging
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    ValidationError,
    field_validator,
)

from ..errors import UpstreamSchemaError

logger = logging.getLogger(__name__)

ModelName = Literal[
    "sonar",
    "sonar-pro",
    "sonar-deep-research",
    "sonar-reasoning",
    "sonar-reasoning-pro",
]
DEEP_RESEARCH_MODEL = "sonar-deep-research"

Role = Literal["system", "user", "assistant"]
SearchMode = Literal["academic", "web"]
ReasoningEffort = Literal["low", "medium", "high"]
SearchContextSize = Literal["low", "medium", "high"]


class ImageURL(BaseModel):
    """Location of an image passed to the model."""

    model_config = ConfigDict(extra="forbid")

    url: str


class TextChunk(BaseModel):
    """A text part of a multi-part message."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["text"] = "text"
    text: str


class ImageChunk(BaseModel):
    """An image part of a multi-part message."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


ContentChunk = Annotated[Union[TextChunk, ImageChunk], Field(discriminator="type")]
MessageContent = Union[str, list[ContentChunk]]


class ChatMessage(BaseModel):
    """A single conversation message."""

    role: Role
    content: MessageContent


class UserLocation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


class WebSearchOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search_context_size: Optional[SearchContextSize] = None
    user_location: Optional[UserLocation] = None
    image_search_relevance_enhanced: Optional[bool] = None


class PerplexityOptions(BaseModel):
    """Sampling and search options forwarded to the upstream API.

    Only options the caller actually set are sent. ``max_tokens`` falls back
    to the configured default cap when omitted.
    """

    model_config = ConfigDict(extra="forbid")

    search_mode: Optional[SearchMode] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    max_tokens: Optional[PositiveInt] = Field(
        default=None,
        description="The maximum number of tokens to generate. The default is 16000.",
    )
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    search_domain_filter: Optional[list[str]] = Field(default=None, max_length=10)
    return_images: Optional[bool] = None
    return_related_questions: Optional[bool] = None
    search_recency_filter: Optional[str] = None
    search_after_date_filter: Optional[str] = None
    search_before_date_filter: Optional[str] = None
    last_updated_after_filter: Optional[str] = None
    last_updated_before_filter: Optional[str] = None
    top_k: Optional[float] = None
    stream: Optional[bool] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    response_format: Optional[dict[str, Any]] = None
    disable_search: Optional[bool] = None
    enable_search_classifier: Optional[bool] = None
    web_search_options: Optional[WebSearchOptions] = None

    def to_request_options(self) -> dict[str, Any]:
        """Return the options the caller set, ready for a request body."""
        return self.model_dump(
            include=set(PerplexityOptions.model_fields),
            exclude_none=True,
        )


# Response side


class UsageInfo(BaseModel):
    """Token and search usage reported by the upstream API."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    search_context_size: Optional[str] = None
    citation_tokens: Optional[int] = None
    num_search_queries: Optional[int] = None
    reasoning_tokens: Optional[int] = None


class SearchResult(BaseModel):
    title: str
    url: str
    date: Optional[str] = None


class CompletionMessage(BaseModel):
    role: Role
    content: MessageContent


class CompletionChoice(BaseModel):
    index: int
    finish_reason: Optional[Literal["stop", "length"]] = None
    message: CompletionMessage


class ChatCompletionsResponse(BaseModel):
    """A complete (or full-snapshot streamed) chat completion."""

    model_config = ConfigDict(extra="allow")

    id: str
    model: str
    created: int
    usage: UsageInfo
    object: str = "chat.completion"
    choices: list[CompletionChoice]
    search_results: Optional[list[SearchResult]] = None


# A validated completion, or the raw payload when it still carries choices
CompletionResult = Union[ChatCompletionsResponse, dict[str, Any]]


class AsyncJobStatus(str, Enum):
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class AsyncJob(BaseModel):
    """Descriptor of an asynchronous chat completion job."""

    model_config = ConfigDict(extra="allow")

    id: str
    model: str
    status: AsyncJobStatus
    created_at: int
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    failed_at: Optional[int] = None
    error_message: Optional[str] = None
    response: Optional[CompletionResult] = None

    @field_validator("response", mode="before")
    @classmethod
    def _validate_response(cls, value: Any) -> Any:
        # Same fallback as a direct completion: keep the raw payload if it has choices
        if value is None or isinstance(value, ChatCompletionsResponse):
            return value
        return validate_completion(value)


def validate_completion(payload: Any) -> CompletionResult:
    """Validate a chat completion payload.

    A payload that fails strict validation but still has a ``choices`` field
    is returned unchanged; timeout-truncated streams commonly end up here.
    """
    try:
        return ChatCompletionsResponse.model_validate(payload)
    except ValidationError as e:
        if isinstance(payload, dict) and "choices" in payload:
            logger.warning(
                f"Chat completion failed validation, returning raw payload: {e.error_count()} errors"
            )
            return payload
        raise UpstreamSchemaError(f"Unexpected chat completion payload: {e}") from e


def validate_async_job(payload: Any) -> AsyncJob:
    """Validate an async job descriptor."""
    try:
        return AsyncJob.model_validate(payload)
    except ValidationError as e:
        raise UpstreamSchemaError(f"Unexpected async job payload: {e}") from e


def extract_text_from_content(content: Any) -> str:
    """Flatten message content into plain text, ignoring non-text chunks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for chunk in content:
            if isinstance(chunk, TextChunk):
                parts.append(chunk.text)
            elif isinstance(chunk, ImageChunk):
                parts.append("")
            elif isinstance(chunk, dict) and chunk.get("type") == "text":
                parts.append(chunk.get("text") or "")
        return "".join(parts).strip()
    return ""


def first_answer(result: CompletionResult) -> str:
    """Text of the first choice of a completion, or an empty string."""
    if isinstance(result, ChatCompletionsResponse):
        if not result.choices:
            return ""
        return extract_text_from_content(result.choices[0].message.content)

    choices = result.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or choices[0].get("delta") or {}
    return extract_text_from_content(message.get("content"))


def usage_of(result: CompletionResult) -> UsageInfo:
    """Usage record of a completion; missing counts read as zero."""
    if isinstance(result, ChatCompletionsResponse):
        return result.usage

    raw = result.get("usage") if isinstance(result, dict) else None
    if not isinstance(raw, dict):
        raw = {}

    def _count(key: str) -> int:
        value = raw.get(key)
        return int(value) if isinstance(value, (int, float)) else 0

    return UsageInfo(
        prompt_tokens=_count("prompt_tokens"),
        completion_tokens=_count("completion_tokens"),
        total_tokens=_count("total_tokens"),
        citation_tokens=_count("citation_tokens"),
        num_search_queries=_count("num_search_queries"),
        reasoning_tokens=_count("reasoning_tokens"),
    )


def completion_to_dict(result: CompletionResult) -> dict[str, Any]:
    """JSON-ready form of a completion result."""
    if isinstance(result, ChatCompletionsResponse):
        return result.model_dump(mode="json", exclude_none=True)
    return result
