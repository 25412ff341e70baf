"""
OpenAI Realtime adapter for tool calling.

Reassembles streamed function-call events into complete invocations and
routes them to the registered tools.

Streamed shape (fields vary between API revisions, hence the fallbacks):
{
    "type": "response.function_call_arguments.delta",
    "call_id": "call_456",
    "name": "complete_interview",        // often only on the first or last event
    "delta": "{\"summ"                   // argument text fragment
}
...
{
    "type": "response.function_call_arguments.done",
    "call_id": "call_456",
    "arguments": "{\"summary\": \"...\"}" // optional: full text or a structured record
}
"""

import json
from typing import Any, Dict, Optional, TYPE_CHECKING

import structlog
from prometheus_client import Counter

from interviewer.core.models import ParseOutcome, ParsedArguments, ToolInvocation
from interviewer.tools.context import ToolExecutionContext
from interviewer.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from interviewer.core.session_state import SessionState

logger = structlog.get_logger(__name__)

TERMINAL_SUFFIXES = (".completed", ".done", ".finished")
TERMINAL_TYPES = frozenset({
    "response.function_call.completed",
    "response.tool_call.completed",
})

_TOOL_INVOCATIONS = Counter(
    "interviewer_tool_invocations_total",
    "Finalized tool invocations by tool name and argument decoding outcome",
    ["tool", "outcome"],
)
_TOOL_EVENTS_DROPPED = Counter(
    "interviewer_tool_events_dropped_total",
    "Tool-call events dropped because the call id or tool name could not be resolved",
)


def is_tool_event(event: Dict[str, Any]) -> bool:
    event_type = event.get("type") or ""
    return "function_call" in event_type or "tool_call" in event_type


def is_terminal_event(event: Dict[str, Any]) -> bool:
    event_type = event.get("type") or ""
    return event_type.endswith(TERMINAL_SUFFIXES) or event_type in TERMINAL_TYPES


def _nested(event: Dict[str, Any], key: str, field: str) -> Optional[Any]:
    block = event.get(key)
    if isinstance(block, dict):
        return block.get(field)
    return None


def extract_call_id(event: Dict[str, Any]) -> Optional[str]:
    """call_id, else id, else call.id."""
    return event.get("call_id") or event.get("id") or _nested(event, "call", "id") or None


def extract_tool_name(event: Dict[str, Any]) -> Optional[str]:
    """name, else function.name, else tool.name."""
    return event.get("name") or _nested(event, "function", "name") or _nested(event, "tool", "name") or None


def extract_fragment(event: Dict[str, Any]) -> Optional[str]:
    """Argument text carried by the event: ``delta``, else a textual ``arguments``."""
    delta = event.get("delta")
    if isinstance(delta, str) and delta:
        return delta
    arguments = event.get("arguments")
    if isinstance(arguments, str) and arguments:
        return arguments
    return None


def decode_arguments(raw: Optional[str]) -> ParsedArguments:
    """
    Decode accumulated argument text.

    Never raises: anything that is not a JSON object degrades to an empty
    dict, with the outcome saying why.
    """
    if raw is None or not raw.strip():
        return ParsedArguments(arguments={}, outcome=ParseOutcome.EMPTY, raw=raw or "")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        return ParsedArguments(arguments={}, outcome=ParseOutcome.MALFORMED, raw=raw)
    if not isinstance(decoded, dict):
        return ParsedArguments(arguments={}, outcome=ParseOutcome.NOT_AN_OBJECT, raw=raw)
    return ParsedArguments(arguments=decoded, outcome=ParseOutcome.PARSED, raw=raw)


class OpenAIToolAdapter:
    """
    Adapter between OpenAI Realtime tool-call events and the tool registry.

    Buffers live in the session state passed to ``handle_event``; the adapter
    itself keeps no per-call state.
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def get_tools_config(self):
        """Tool schemas for the session.update ``tools`` field."""
        return self.registry.to_openai_realtime_schema()

    async def handle_event(
        self,
        event: Dict[str, Any],
        session: 'SessionState'
    ) -> Optional[ToolInvocation]:
        """
        Feed one inbound event to the call buffers.

        Returns the finalized invocation when ``event`` is a terminal event
        for a known call, otherwise None.
        """
        if not is_tool_event(event):
            return None

        buffers = session.buffers
        call_id = extract_call_id(event)
        existing = buffers.get(call_id) if call_id else None
        name = extract_tool_name(event) or (existing.name if existing else None)

        if not call_id or not name:
            _TOOL_EVENTS_DROPPED.inc()
            logger.debug(
                "Dropping unidentifiable tool event",
                event_type=event.get("type"),
                call_id=call_id,
                tool=name,
            )
            return None

        terminal = is_terminal_event(event)
        arguments = event.get("arguments")
        fragment = extract_fragment(event)

        if (
            terminal
            and isinstance(arguments, str)
            and arguments
            and existing is not None
            and existing.raw
            and arguments.startswith(existing.raw)
        ):
            # Terminal text that extends the streamed prefix is the complete string
            buffers.replace(call_id, arguments, name=name)
        elif fragment is not None:
            buffers.append(call_id, fragment, name=name)

        if not terminal:
            return None

        buffer = buffers.pop(call_id)
        raw = buffer.raw if buffer else ""
        if not raw and isinstance(arguments, (dict, list)):
            raw = json.dumps(arguments)

        parsed = decode_arguments(raw)
        invocation = ToolInvocation(
            name=name,
            call_id=call_id,
            arguments=parsed.arguments,
            outcome=parsed.outcome,
        )
        _TOOL_INVOCATIONS.labels(tool=name, outcome=parsed.outcome.value).inc()

        if parsed.outcome in (ParseOutcome.MALFORMED, ParseOutcome.NOT_AN_OBJECT):
            logger.warning(
                "Tool arguments could not be decoded; using empty arguments",
                call_id=call_id,
                tool=name,
                outcome=parsed.outcome.value,
                raw_preview=parsed.raw[:120],
            )
        else:
            logger.info(
                "🔧 Tool call finalized",
                call_id=call_id,
                tool=name,
                outcome=parsed.outcome.value,
            )

        await self.dispatch(invocation, session, event)
        return invocation

    async def dispatch(
        self,
        invocation: ToolInvocation,
        session: 'SessionState',
        event: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Route a finalized invocation to its tool.

        Unknown tools are accepted and dropped. A tool that raises is logged;
        the error does not reach the realtime agent.
        """
        tool = self.registry.get(invocation.name)
        if tool is None:
            logger.debug("No tool registered for invocation", call_id=invocation.call_id, tool=invocation.name)
            return None

        context = ToolExecutionContext(
            call_id=invocation.call_id,
            tool_name=invocation.name,
            session=session,
            outcome=invocation.outcome,
            raw_event=event,
        )
        try:
            return await tool.execute(invocation.arguments, context)
        except Exception as e:
            logger.error(
                "Tool execution failed",
                call_id=invocation.call_id,
                tool=invocation.name,
                error=str(e),
                exc_info=True,
            )
            return None
