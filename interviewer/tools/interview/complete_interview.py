"""
Complete Interview Tool - the agent signals that the interview has concluded.

The invocation is acknowledged right away; the completion screen itself is
held back until the agent has stopped speaking (see CompletionCoordinator).
"""

from typing import Dict, Any

import structlog

from interviewer.core.models import CompletionReason, CompletionRecord
from interviewer.tools.base import Tool, ToolDefinition, ToolParameter
from interviewer.tools.context import ToolExecutionContext

logger = structlog.get_logger(__name__)

TOOL_NAME = "complete_interview"


class CompleteInterviewTool(Tool):
    """
    End the interview.

    Use when:
    - All interview questions were asked and answered
    - The interview time is up
    - The candidate asks to stop
    """

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=TOOL_NAME,
            description=(
                "Signal that the interview has concluded. Provide a brief optional summary "
                "and/or reason."
            ),
            parameters=[
                ToolParameter(
                    name="summary",
                    type="string",
                    description="Short wrap-up message for the candidate or internal summary (1-3 sentences).",
                ),
                ToolParameter(
                    name="reason",
                    type="string",
                    description="Why the interview ended.",
                    enum=[reason.value for reason in CompletionReason],
                ),
            ]
        )

    async def execute(
        self,
        parameters: Dict[str, Any],
        context: ToolExecutionContext
    ) -> Dict[str, Any]:
        """
        Hand the completion to the session's coordinator.

        Args:
            parameters: {summary: Optional[str], reason: Optional[str]}
            context: Tool execution context

        Returns:
            {status: "success", summary, reason}
        """
        record = CompletionRecord.from_arguments(parameters)

        logger.info(
            "🏁 Interview completion requested",
            call_id=context.call_id,
            reason=record.reason.value if record.reason else None,
            has_summary=record.summary is not None,
            arguments_outcome=context.outcome.value,
        )

        await context.completion.submit(context.call_id, record)

        return {"status": "success", **record.to_dict()}
