"""
Tests for reassembling streamed OpenAI Realtime tool calls.
"""

import json

import pytest

from interviewer.core.models import CompletionReason, CompletionRecord, ParseOutcome
from interviewer.tools.adapters.openai import (
    OpenAIToolAdapter,
    decode_arguments,
    extract_call_id,
    extract_fragment,
    extract_tool_name,
    is_terminal_event,
    is_tool_event,
)
from interviewer.tools.base import Tool, ToolDefinition
from interviewer.tools.registry import ToolRegistry


class RecordingTool(Tool):
    """Captures every invocation it receives."""

    def __init__(self, name="record_answer"):
        self._name = name
        self.calls = []

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(name=self._name, description="test tool")

    async def execute(self, parameters, context):
        self.calls.append((parameters, context))
        return {"status": "success"}


class FailingTool(RecordingTool):

    async def execute(self, parameters, context):
        raise RuntimeError("tool blew up")


@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.initialize_default_tools()
    return registry


@pytest.fixture
def adapter(registry):
    return OpenAIToolAdapter(registry)


def delta(call_id, text, name=None):
    event = {"type": "response.function_call_arguments.delta", "call_id": call_id, "delta": text}
    if name:
        event["name"] = name
    return event


def done(call_id, name=None, arguments=None):
    event = {"type": "response.function_call_arguments.done", "call_id": call_id}
    if name:
        event["name"] = name
    if arguments is not None:
        event["arguments"] = arguments
    return event


class TestEventClassification:

    def test_tool_events(self):
        assert is_tool_event({"type": "response.function_call_arguments.delta"})
        assert is_tool_event({"type": "response.tool_call.completed"})
        assert not is_tool_event({"type": "response.output_audio.delta"})
        assert not is_tool_event({})

    def test_terminal_events(self):
        assert is_terminal_event({"type": "response.function_call_arguments.done"})
        assert is_terminal_event({"type": "response.function_call.completed"})
        assert is_terminal_event({"type": "response.tool_call.finished"})
        assert not is_terminal_event({"type": "response.function_call_arguments.delta"})

    def test_call_id_fallbacks(self):
        assert extract_call_id({"call_id": "a", "id": "b"}) == "a"
        assert extract_call_id({"id": "b"}) == "b"
        assert extract_call_id({"call": {"id": "c"}}) == "c"
        assert extract_call_id({"call": "not-a-dict"}) is None

    def test_tool_name_fallbacks(self):
        assert extract_tool_name({"name": "a", "function": {"name": "b"}}) == "a"
        assert extract_tool_name({"function": {"name": "b"}}) == "b"
        assert extract_tool_name({"tool": {"name": "c"}}) == "c"
        assert extract_tool_name({}) is None

    def test_fragment_prefers_delta(self):
        assert extract_fragment({"delta": "x", "arguments": "y"}) == "x"
        assert extract_fragment({"delta": "", "arguments": "y"}) == "y"
        assert extract_fragment({"arguments": {"summary": "s"}}) is None


class TestDecodeArguments:

    def test_object(self):
        parsed = decode_arguments('{"summary": "ok"}')
        assert parsed.outcome == ParseOutcome.PARSED
        assert parsed.arguments == {"summary": "ok"}

    def test_empty(self):
        assert decode_arguments("").outcome == ParseOutcome.EMPTY
        assert decode_arguments("   ").outcome == ParseOutcome.EMPTY
        assert decode_arguments(None).arguments == {}

    def test_malformed(self):
        parsed = decode_arguments('{"summary": "trunc')
        assert parsed.outcome == ParseOutcome.MALFORMED
        assert parsed.arguments == {}
        assert parsed.outcome.degraded

    def test_not_an_object(self):
        parsed = decode_arguments("[1, 2]")
        assert parsed.outcome == ParseOutcome.NOT_AN_OBJECT
        assert parsed.arguments == {}


class TestOpenAIToolAdapter:

    @pytest.mark.asyncio
    async def test_fragments_reassemble_into_completion(self, adapter, session):
        """Name on the first fragment only; the buffer remembers it."""
        await adapter.handle_event(delta("c1", '{"sum', name="complete_interview"), session)
        await adapter.handle_event(
            delta("c1", 'mary":"Good job","reason":"finished_all_questions"}'), session
        )
        invocation = await adapter.handle_event(done("c1"), session)

        assert invocation.name == "complete_interview"
        assert invocation.outcome == ParseOutcome.PARSED
        assert invocation.arguments == {"summary": "Good job", "reason": "finished_all_questions"}
        assert session.completion.pending == CompletionRecord(
            summary="Good job", reason=CompletionReason.FINISHED_ALL_QUESTIONS
        )
        assert "c1" not in session.buffers

    @pytest.mark.asyncio
    async def test_terminal_without_fragments_yields_empty_arguments(self, adapter, session):
        invocation = await adapter.handle_event(done("c9", name="complete_interview"), session)

        assert invocation.arguments == {}
        assert invocation.outcome == ParseOutcome.EMPTY
        assert session.completion.pending == CompletionRecord()

    @pytest.mark.asyncio
    async def test_terminal_with_structured_arguments(self, adapter, session):
        invocation = await adapter.handle_event(
            done("c2", name="complete_interview", arguments={"reason": "time_up"}),
            session,
        )

        assert invocation.arguments == {"reason": "time_up"}
        assert session.completion.pending.reason == CompletionReason.TIME_UP

    @pytest.mark.asyncio
    async def test_terminal_text_replaces_streamed_fragments(self, adapter, session):
        await adapter.handle_event(delta("c3", '{"summary":"Go', name="complete_interview"), session)
        invocation = await adapter.handle_event(
            done("c3", arguments='{"summary":"Good job"}'), session
        )

        assert invocation.arguments == {"summary": "Good job"}

    @pytest.mark.asyncio
    async def test_terminal_text_appends_remaining_fragment(self, adapter, session):
        await adapter.handle_event(delta("c4", '{"sum', name="complete_interview"), session)
        invocation = await adapter.handle_event(
            {
                "type": "response.function_call.completed",
                "call_id": "c4",
                "arguments": 'mary":"Good job"}',
            },
            session,
        )

        assert invocation.outcome == ParseOutcome.PARSED
        assert invocation.arguments == {"summary": "Good job"}

    @pytest.mark.asyncio
    async def test_terminal_text_without_fragments_is_the_whole_string(self, adapter, session):
        invocation = await adapter.handle_event(
            done("c5", name="complete_interview", arguments='{"reason":"time_up"}'), session
        )

        assert invocation.arguments == {"reason": "time_up"}

    @pytest.mark.asyncio
    async def test_interleaved_calls_stay_separate(self, registry, session):
        recorder = RecordingTool()
        registry.register(recorder)
        adapter = OpenAIToolAdapter(registry)

        await adapter.handle_event(delta("a", '{"x":', name="record_answer"), session)
        await adapter.handle_event(delta("b", '{"y":', name="record_answer"), session)
        await adapter.handle_event(delta("a", "1}"), session)
        await adapter.handle_event(delta("b", "2}"), session)
        first = await adapter.handle_event(done("b"), session)
        second = await adapter.handle_event(done("a"), session)

        assert first.arguments == {"y": 2}
        assert second.arguments == {"x": 1}
        assert [params for params, _ in recorder.calls] == [{"y": 2}, {"x": 1}]
        assert len(session.buffers) == 0

    @pytest.mark.asyncio
    async def test_event_without_call_id_is_dropped(self, adapter, session):
        result = await adapter.handle_event(
            {"type": "response.function_call_arguments.delta", "name": "complete_interview", "delta": "{"},
            session,
        )

        assert result is None
        assert len(session.buffers) == 0

    @pytest.mark.asyncio
    async def test_event_without_resolvable_name_is_dropped(self, adapter, session):
        await adapter.handle_event(delta("c4", '{"summary":"x"}'), session)
        result = await adapter.handle_event(done("c4"), session)

        assert result is None
        assert len(session.buffers) == 0
        assert session.completion.pending is None

    @pytest.mark.asyncio
    async def test_malformed_arguments_still_complete(self, adapter, session):
        await adapter.handle_event(delta("c5", '{"summary": "cut', name="complete_interview"), session)
        invocation = await adapter.handle_event(done("c5"), session)

        assert invocation.outcome == ParseOutcome.MALFORMED
        assert invocation.arguments == {}
        assert session.completion.pending == CompletionRecord()

    @pytest.mark.asyncio
    async def test_unknown_tool_is_accepted_and_dropped(self, adapter, session, transport):
        await adapter.handle_event(delta("c6", "{}", name="lookup_weather"), session)
        invocation = await adapter.handle_event(done("c6"), session)

        assert invocation.name == "lookup_weather"
        assert session.completion.pending is None
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_tool_failure_is_contained(self, registry, session):
        registry.register(FailingTool("explode"))
        adapter = OpenAIToolAdapter(registry)

        invocation = await adapter.handle_event(done("c7", name="explode", arguments="{}"), session)

        assert invocation.name == "explode"
        assert len(session.buffers) == 0

    @pytest.mark.asyncio
    async def test_non_tool_events_ignored(self, adapter, session):
        assert await adapter.handle_event({"type": "response.created"}, session) is None
        assert len(session.buffers) == 0

    def test_tools_config_lists_complete_interview(self, adapter):
        schemas = adapter.get_tools_config()

        assert [s["name"] for s in schemas] == ["complete_interview"]
        json.dumps(schemas)
