"""
Completion coordinator.

Acknowledges ``complete_interview`` invocations immediately but keeps the
resulting record pending until the agent has stopped speaking, so the
completion screen never cuts off the agent's closing words.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from prometheus_client import Counter

from interviewer.core.models import CompletionRecord, PresentationState, SignalSource
from interviewer.core.presentation import PresentationStateMachine

logger = structlog.get_logger(__name__)

ACK_OUTPUT = json.dumps({"acknowledged": True})

_COMPLETIONS_ACKNOWLEDGED = Counter(
    "interviewer_completions_acknowledged_total",
    "complete_interview invocations acknowledged to the agent",
)
_COMPLETIONS_PROMOTED = Counter(
    "interviewer_completions_promoted_total",
    "Completion records made visible once the agent went idle",
)

SendEvent = Callable[[Dict[str, Any]], Awaitable[bool]]
CompletionListener = Callable[[CompletionRecord], None]


def build_acknowledgment(call_id: str) -> Dict[str, Any]:
    return {
        "type": "tool.output",
        "call_id": call_id,
        "output": ACK_OUTPUT,
    }


class CompletionCoordinator:
    """Owns PendingCompletion and the visible (finalized) completion."""

    def __init__(self, presentation: PresentationStateMachine, send: SendEvent):
        self.presentation = presentation
        self._send = send
        self.pending: Optional[CompletionRecord] = None
        self.finalized: Optional[CompletionRecord] = None
        self._listeners: List[CompletionListener] = []
        self._finalized_event = asyncio.Event()
        presentation.add_listener(self._on_state_change)

    def add_listener(self, listener: CompletionListener) -> None:
        self._listeners.append(listener)

    async def submit(self, call_id: str, record: CompletionRecord) -> None:
        """Acknowledge the invocation and hold ``record`` until the agent is idle.

        A later submission replaces an earlier pending or visible record.
        """
        try:
            sent = await self._send(build_acknowledgment(call_id))
        except Exception as e:
            logger.error("Failed to send completion acknowledgment", call_id=call_id, error=str(e), exc_info=True)
        else:
            if sent:
                _COMPLETIONS_ACKNOWLEDGED.inc()
                logger.info("✅ Acknowledged interview completion", call_id=call_id)
            else:
                logger.warning("Completion acknowledgment not sent; channel closed", call_id=call_id)

        if self.pending is not None or self.finalized is not None:
            logger.info("Replacing earlier completion", call_id=call_id)
        self.pending = record
        if not self.promote_if_idle():
            logger.info(
                "Completion pending until agent is idle",
                call_id=call_id,
                state=self.presentation.state.value,
            )

    def promote_if_idle(self) -> bool:
        """Make the pending record visible if the agent is idle."""
        if self.pending is None or self.presentation.state != PresentationState.IDLE:
            return False

        record, self.pending = self.pending, None
        self.finalized = record
        self._finalized_event.set()
        _COMPLETIONS_PROMOTED.inc()
        logger.info("🎉 Interview completion visible", **record.to_dict())

        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.error("Completion listener failed", exc_info=True)
        return True

    def _on_state_change(self, old: PresentationState, new: PresentationState, source: SignalSource) -> None:
        if new == PresentationState.IDLE:
            self.promote_if_idle()

    async def wait_finalized(self) -> CompletionRecord:
        await self._finalized_event.wait()
        return self.finalized

    def reset(self) -> None:
        """Discard pending and visible completions."""
        if self.pending is not None:
            logger.info("Discarding pending completion")
        self.pending = None
        self.finalized = None
        self._finalized_event.clear()
