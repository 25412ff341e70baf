"""
Tool registry - the tools one realtime session exposes to the agent.

Each session builds its own registry, so tool state is never shared between
interviews. Lookups are by the name the agent uses in its function calls.
"""

from typing import Dict, List, Optional, Type, Union

import structlog

from interviewer.tools.base import Tool, ToolDefinition

logger = structlog.get_logger(__name__)


def _default_tools() -> List[Type[Tool]]:
    from interviewer.tools.interview.complete_interview import CompleteInterviewTool
    return [CompleteInterviewTool]


class ToolRegistry:
    """Name -> Tool mapping plus schema export for ``session.update``."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}
        self._defaults_loaded = False

    def register(self, tool: Union[Tool, Type[Tool]]) -> Tool:
        """Register a tool instance, or a tool class to instantiate.

        A tool registered under an existing name replaces it.
        """
        instance = tool() if isinstance(tool, type) else tool
        if instance.name in self._tools:
            logger.warning("Replacing registered tool", tool=instance.name)
        self._tools[instance.name] = instance
        logger.debug("Registered tool", tool=instance.name)
        return instance

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_definitions(self) -> List[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def to_openai_realtime_schema(self) -> List[Dict]:
        """Function schemas for the Realtime ``tools`` field, in registration order."""
        return [definition.to_openai_realtime_schema() for definition in self.get_definitions()]

    def initialize_default_tools(self) -> None:
        """Register the built-in interview tools (once)."""
        if self._defaults_loaded:
            return
        for tool_class in _default_tools():
            self.register(tool_class)
        self._defaults_loaded = True
        logger.info("🛠️  Interview tools ready", tools=self.list_tools())

    def list_tools(self) -> List[str]:
        return list(self._tools)

    def clear(self) -> None:
        self._tools.clear()
        self._defaults_loaded = False

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
