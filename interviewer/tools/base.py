"""
Tool abstractions for the interviewer.

A tool is described once by a ToolDefinition, advertised to the realtime
agent as a function schema in ``session.update``, and invoked by name with
the decoded arguments of a finalized call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from interviewer.tools.context import ToolExecutionContext

JSON_SCHEMA_TYPES = ("string", "integer", "number", "boolean", "array", "object")


@dataclass
class ToolParameter:
    """One named argument of a tool."""
    name: str
    type: str
    description: str
    required: bool = False
    enum: Optional[List[str]] = None

    def __post_init__(self):
        if self.type not in JSON_SCHEMA_TYPES:
            raise ValueError(f"Unsupported parameter type for {self.name}: {self.type}")

    def to_dict(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


@dataclass
class ToolDefinition:
    """Name, description and parameters the agent sees for a tool."""
    name: str
    description: str
    parameters: List[ToolParameter] = field(default_factory=list)

    @property
    def required_parameters(self) -> List[str]:
        return [p.name for p in self.parameters if p.required]

    def to_openai_realtime_schema(self) -> Dict[str, Any]:
        """Function schema for the Realtime ``tools`` list (name at top level)."""
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_dict() for p in self.parameters},
                "required": self.required_parameters,
            },
        }


class Tool(ABC):
    """Base class for tools the realtime agent can call."""

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        ...

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    async def execute(
        self,
        parameters: Dict[str, Any],
        context: 'ToolExecutionContext'
    ) -> Dict[str, Any]:
        """
        Act on one finalized invocation.

        Args:
            parameters: Decoded arguments; empty when the argument text was
                missing or could not be decoded (see ``context.outcome``)
            context: Call id, parse outcome and owning session

        Returns:
            Result dictionary with at least ``status``
        """
