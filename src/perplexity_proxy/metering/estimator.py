"""Usage estimates used to size ledger authorizations.

These are conservative upper bounds, not predictions. Settlement always
uses the smaller of the authorized amount and what the upstream reports.
"""

from typing import Any, Iterable, Optional, Union

from ..upstream.models import ChatMessage, ImageChunk, TextChunk

CHARS_PER_TOKEN = 4

# Search queries budgeted per reasoning effort
SEARCH_QUERY_ESTIMATES = {
    "low": 10,
    "medium": 30,
    "high": 60,
}
DEFAULT_SEARCH_QUERY_ESTIMATE = SEARCH_QUERY_ESTIMATES["medium"]

# Floors for deep research token caps
MIN_CITATION_TOKEN_CAP = 50_000
MIN_REASONING_TOKEN_CAP = 100_000


def estimate_tokens_from_chars(chars: int) -> int:
    """Estimate token count from character count, rounding up."""
    return -(-chars // CHARS_PER_TOKEN)


def estimate_input_tokens(text: str) -> int:
    """Estimate input tokens for a plain prompt."""
    return estimate_tokens_from_chars(len(text))


def _message_chars(message: ChatMessage) -> int:
    content = message.content
    if isinstance(content, str):
        return len(content)
    total = 0
    for chunk in content:
        if isinstance(chunk, TextChunk):
            total += len(chunk.text)
        elif isinstance(chunk, ImageChunk):
            continue
        else:
            raise TypeError(f"Unsupported content chunk: {type(chunk).__name__}")
    return total


def estimate_input_tokens_from_messages(
    messages: Iterable[Union[ChatMessage, dict[str, Any]]],
) -> int:
    """Estimate input tokens for a message list.

    Only text counts; string content is one implicit text chunk and image
    chunks contribute nothing.
    """
    chars = 0
    for message in messages:
        if not isinstance(message, ChatMessage):
            message = ChatMessage.model_validate(message)
        chars += _message_chars(message)
    return estimate_tokens_from_chars(chars)


def estimate_search_queries(effort: Optional[str] = None) -> int:
    """Search query budget for a reasoning effort; unknown values count as medium."""
    return SEARCH_QUERY_ESTIMATES.get(effort or "medium", DEFAULT_SEARCH_QUERY_ESTIMATE)


def citation_token_cap(output_cap: int) -> int:
    return max(output_cap, MIN_CITATION_TOKEN_CAP)


def reasoning_token_cap(output_cap: int) -> int:
    return max(output_cap, MIN_REASONING_TOKEN_CAP)
