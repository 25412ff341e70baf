"""
Event synchronizer - wires a session transport to the session state.

Every inbound event goes first to the tool-call buffers, then to the event
driver of the presentation state machine. The remote-audio sampler runs as
its own task; nothing orders its ticks relative to inbound events.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from interviewer.core.session_state import SessionState
from interviewer.core.vad import RemoteAudioSampler
from interviewer.providers.base import SessionTransport
from interviewer.tools.adapters.openai import OpenAIToolAdapter

logger = structlog.get_logger(__name__)


class EventSynchronizer:
    """Subscribes one SessionState to one transport."""

    def __init__(self, transport: SessionTransport, session: SessionState, adapter: OpenAIToolAdapter):
        self.transport = transport
        self.session = session
        self.adapter = adapter
        self.sampler: Optional[RemoteAudioSampler] = None
        if session.config.vad.enabled:
            self.sampler = RemoteAudioSampler(
                session.audio_tap,
                session.detector,
                frame_interval_ms=session.config.vad.frame_interval_ms,
                clock=session.clock,
            )
        self._attached = False

    def attach(self) -> None:
        """Register handlers on the transport (once)."""
        if self._attached:
            return
        self.transport.add_event_handler(self.handle_event)
        self.transport.add_stop_handler(self.teardown)
        if self.sampler is not None:
            self.transport.attach_audio_tap(self.session.audio_tap)
        self._attached = True

    def start(self) -> None:
        """Attach to the transport and start sampling remote audio."""
        self.attach()
        if self.sampler is not None:
            self.sampler.start()

    async def handle_event(self, event: Dict[str, Any]) -> None:
        await self.adapter.handle_event(event, self.session)
        self.session.presentation.on_channel_event(event)

    async def teardown(self) -> None:
        """Stop sampling and discard all per-session state."""
        if self.sampler is not None:
            await self.sampler.stop()
        self.session.reset()
        logger.info("Event synchronizer torn down")
