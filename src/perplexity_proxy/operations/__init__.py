"""Metered operations exposed as tools."""

from .models import (
    AskPerplexityInput,
    AskPerplexityOutput,
    AuthorizedCaps,
    ChatCompletionsInput,
    ChatCompletionsOutput,
    DeepResearchInput,
    DeepResearchOutput,
    DeepResearchResultInput,
    DeepResearchResultOutput,
)
from .orchestrator import PerplexityOperations

__all__ = [
    "PerplexityOperations",
    "AskPerplexityInput",
    "AskPerplexityOutput",
    "AuthorizedCaps",
    "ChatCompletionsInput",
    "ChatCompletionsOutput",
    "DeepResearchInput",
    "DeepResearchOutput",
    "DeepResearchResultInput",
    "DeepResearchResultOutput",
]
