"""Tool surface for the metered operations."""

from .perplexity import PerplexityTools
from .registry import Tool, ToolRegistry

__all__ = ["PerplexityTools", "ToolRegistry", "Tool"]
