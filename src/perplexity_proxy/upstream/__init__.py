"""Upstream Perplexity API access."""

from .client import PerplexityClient
from .models import (
    DEEP_RESEARCH_MODEL,
    AsyncJob,
    AsyncJobStatus,
    ChatCompletionsResponse,
    ChatMessage,
    CompletionResult,
    ImageChunk,
    PerplexityOptions,
    TextChunk,
    UsageInfo,
    completion_to_dict,
    extract_text_from_content,
    first_answer,
    usage_of,
)
from .streaming import decode_event_stream, read_completion_stream

__all__ = [
    "PerplexityClient",
    "DEEP_RESEARCH_MODEL",
    "AsyncJob",
    "AsyncJobStatus",
    "ChatCompletionsResponse",
    "ChatMessage",
    "CompletionResult",
    "ImageChunk",
    "PerplexityOptions",
    "TextChunk",
    "UsageInfo",
    "completion_to_dict",
    "extract_text_from_content",
    "first_answer",
    "usage_of",
    "decode_event_stream",
    "read_completion_stream",
]
