"""
Tool execution context - what a tool can reach while handling an invocation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TYPE_CHECKING

from interviewer.core.models import ParseOutcome

if TYPE_CHECKING:
    from interviewer.core.session_state import SessionState


@dataclass
class ToolExecutionContext:
    """
    Context provided to tools during execution.

    Carries the invocation metadata and the session state the invocation
    belongs to.
    """

    call_id: str
    tool_name: str
    session: 'SessionState'
    outcome: ParseOutcome = ParseOutcome.PARSED
    raw_event: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def completion(self):
        """Completion coordinator of the owning session."""
        return self.session.completion
