"""
Per-session state for the event-synchronization core.

Everything the drivers mutate lives on one SessionState that is passed to
them explicitly; tearing a session down is a single ``reset()``.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from interviewer.config import AppConfig
from interviewer.core.completion import CompletionCoordinator, SendEvent
from interviewer.core.presentation import PresentationStateMachine
from interviewer.core.vad import RemoteAudioTap, VoiceActivityDetector, monotonic_ms
from interviewer.tools.buffers import CallBufferStore

logger = structlog.get_logger(__name__)


class SessionState:
    """Owns the call buffers, presentation state, VAD and completion of one session."""

    def __init__(self, config: AppConfig, send: SendEvent, clock: Optional[Callable[[], float]] = None):
        self.config = config
        self.clock = clock or monotonic_ms

        self.buffers = CallBufferStore()
        self.presentation = PresentationStateMachine(
            talking_hold_ms=config.presentation.talking_hold_ms,
            arbitration=config.presentation.arbitration,
        )
        self.detector = VoiceActivityDetector(
            self.presentation,
            start_threshold=config.vad.start_threshold,
            stop_threshold=config.vad.stop_threshold,
            required_silence_ms=config.vad.required_silence_ms,
            clock=self.clock,
        )
        self.audio_tap = RemoteAudioTap(
            sample_rate=config.realtime.output_sample_rate_hz,
            window_samples=config.vad.window_samples,
        )
        self.completion = CompletionCoordinator(self.presentation, send)

    @property
    def state(self):
        return self.presentation.state

    def reset(self) -> None:
        """Discard buffers and pending state; presentation back to ``entry``."""
        pending_calls = len(self.buffers)
        had_pending = self.completion.pending is not None

        self.buffers.clear()
        self.presentation.reset()
        self.detector.reset()
        self.audio_tap.clear()
        self.completion.reset()

        logger.info(
            "Session state reset",
            discarded_buffers=pending_calls,
            discarded_pending_completion=had_pending,
        )
