"""Tool registry for managing the exposed operations."""

import inspect
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class Tool(BaseModel):
    """A named operation with a validated input shape."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    input_model: type[BaseModel] = Field(exclude=True)
    handler: Optional[Callable] = Field(default=None, exclude=True)

    def to_schema(self) -> dict:
        """Describe the tool with the JSON schema of its input."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_model.model_json_schema(by_alias=True),
        }


class ToolRegistry:
    """Registry for managing tools."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool):
        """Register a tool."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools."""
        return list(self._tools.values())

    def to_schemas(self) -> list[dict]:
        return [tool.to_schema() for tool in self._tools.values()]

    async def execute(self, tool_name: str, arguments: Optional[dict] = None) -> Any:
        """Validate arguments against the tool's input model and run it.

        Raises:
            ValueError: If the tool is unknown or has no handler
            pydantic.ValidationError: If the arguments do not fit the input model
        """
        tool = self.get(tool_name)
        if not tool:
            raise ValueError(f"Unknown tool: {tool_name}")
        if not tool.handler:
            raise ValueError(f"Tool {tool_name} has no handler")

        request = tool.input_model.model_validate(arguments or {})

        if inspect.iscoroutinefunction(tool.handler):
            return await tool.handler(request)
        return tool.handler(request)
