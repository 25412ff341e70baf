"""
Core data models for the realtime interviewer.

Typed structures shared by the tool-call buffer, the presentation state
machine and the completion coordinator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class PresentationState(str, Enum):
    """Whether the agent is currently speaking."""
    ENTRY = "entry"
    TALKING = "talking"
    IDLE = "idle"


class SignalSource(str, Enum):
    """Which driver requested a presentation state change."""
    EVENT = "event"        # Realtime channel event classification
    AUDIO = "audio"        # Remote-audio VAD
    WATCHDOG = "watchdog"  # Idle fallback after a missing terminal event
    SESSION = "session"    # Session lifecycle (greeting, user text, reset)


class CompletionReason(str, Enum):
    FINISHED_ALL_QUESTIONS = "finished_all_questions"
    TIME_UP = "time_up"
    USER_REQUESTED = "user_requested"
    OTHER = "other"


class ParseOutcome(str, Enum):
    """How accumulated tool-call arguments were decoded."""
    PARSED = "parsed"                # JSON object
    EMPTY = "empty"                  # Nothing was ever accumulated
    MALFORMED = "malformed"          # Text present but not valid JSON
    NOT_AN_OBJECT = "not_an_object"  # Valid JSON, but not an object

    @property
    def degraded(self) -> bool:
        return self is not ParseOutcome.PARSED


@dataclass
class CallBuffer:
    """Argument fragments streamed for one tool call.

    ``name`` remembers the tool name from whichever fragment carried it, so
    later fragments without a name still resolve.
    """
    call_id: str
    raw: str = ""
    name: Optional[str] = None

    def append(self, fragment: str) -> None:
        self.raw += fragment


@dataclass(frozen=True)
class ParsedArguments:
    """Result of decoding a finalized buffer.

    ``arguments`` is always a dict; a degraded outcome yields an empty one.
    """
    arguments: Dict[str, Any]
    outcome: ParseOutcome
    raw: str = ""


@dataclass(frozen=True)
class ToolInvocation:
    """A fully reconstructed tool call emitted by the agent."""
    name: str
    call_id: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    outcome: ParseOutcome = ParseOutcome.PARSED


@dataclass(frozen=True)
class CompletionRecord:
    """Result of a finalized ``complete_interview`` invocation."""
    summary: Optional[str] = None
    reason: Optional[CompletionReason] = None

    @classmethod
    def from_arguments(cls, arguments: Dict[str, Any]) -> "CompletionRecord":
        """Build a record, dropping fields that are missing or of the wrong type."""
        summary = arguments.get("summary")
        if not isinstance(summary, str) or not summary:
            summary = None

        reason = arguments.get("reason")
        try:
            reason = CompletionReason(reason) if isinstance(reason, str) else None
        except ValueError:
            reason = None

        return cls(summary=summary, reason=reason)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "summary": self.summary,
            "reason": self.reason.value if self.reason else None,
        }
