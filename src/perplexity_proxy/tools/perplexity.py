"""Perplexity tools backed by the metered operations."""

from ..operations import (
    AskPerplexityInput,
    ChatCompletionsInput,
    DeepResearchInput,
    DeepResearchResultInput,
    PerplexityOperations,
)
from .registry import Tool, ToolRegistry


class PerplexityTools:
    """Perplexity tools that can be registered with a registry."""

    def __init__(self, operations: PerplexityOperations):
        self.operations = operations

    def register(self, registry: ToolRegistry):
        """Register all Perplexity tools with the registry."""
        registry.register(self._ask_tool())
        registry.register(self._chat_completions_tool())
        registry.register(self._deep_research_tool())
        registry.register(self._deep_research_result_tool())

    def _ask_tool(self) -> Tool:
        async def handler(request: AskPerplexityInput) -> dict:
            result = await self.operations.ask(request)
            return result.to_response()

        return Tool(
            name="ASK_PERPLEXITY",
            description="Ask Perplexity with a simple prompt. Returns the first message "
            "content and raw response.",
            input_model=AskPerplexityInput,
            handler=handler,
        )

    def _chat_completions_tool(self) -> Tool:
        async def handler(request: ChatCompletionsInput) -> dict:
            result = await self.operations.chat_completions(request)
            return result.to_response()

        return Tool(
            name="PERPLEXITY_CHAT_COMPLETIONS",
            description="Low-level Perplexity chat completions call mirroring the API options.",
            input_model=ChatCompletionsInput,
            handler=handler,
        )

    def _deep_research_tool(self) -> Tool:
        async def handler(request: DeepResearchInput) -> dict:
            result = await self.operations.deep_research(request)
            return result.to_response()

        return Tool(
            name="PERPLEXITY_DEEP_RESEARCH",
            description="Start an asynchronous sonar-deep-research job. Returns the job "
            "descriptor and a transaction id to poll with "
            "GET_PERPLEXITY_DEEP_RESEARCH_RESULT.",
            input_model=DeepResearchInput,
            handler=handler,
        )

    def _deep_research_result_tool(self) -> Tool:
        async def handler(request: DeepResearchResultInput) -> dict:
            result = await self.operations.get_deep_research_result(request)
            return result.to_response()

        return Tool(
            name="GET_PERPLEXITY_DEEP_RESEARCH_RESULT",
            description="Poll a deep research job by transaction id. Usage is settled "
            "once the job has completed or failed.",
            input_model=DeepResearchResultInput,
            handler=handler,
        )
