"""
Presentation state machine: is the agent speaking?

Two drivers write the same ``entry | talking | idle`` state:

- the event driver classifies realtime channel events (response created,
  output fragments, response done) and arms an idle-fallback watchdog in case
  the terminal event never arrives;
- the audio driver (``interviewer.core.vad``) measures the remote audio.

With ``audio_authoritative`` arbitration the audio driver owns the state while
it hears the agent speaking: event and watchdog writes are ignored until the
detector reports silence again. Quiet audio that never crosses the start
threshold leaves the event driver and its watchdog in charge.
With ``last_writer_wins`` both drivers write freely.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import structlog
from prometheus_client import Counter

from interviewer.core.models import PresentationState, SignalSource

logger = structlog.get_logger(__name__)

AUDIO_AUTHORITATIVE = "audio_authoritative"
LAST_WRITER_WINS = "last_writer_wins"

_STATE_TRANSITIONS = Counter(
    "interviewer_presentation_transitions_total",
    "Presentation state changes by target state and signal source",
    ["state", "source"],
)

StateListener = Callable[[PresentationState, PresentationState, SignalSource], None]

TALK_START_TYPES = frozenset({"response.created", "response.delta"})
TALK_END_TYPES = frozenset({"response.completed", "response.done", "response.stopped"})


def is_talk_start(event_type: str) -> bool:
    return event_type in TALK_START_TYPES or event_type.startswith("response.output_")


def is_talk_end(event_type: str) -> bool:
    return event_type in TALK_END_TYPES


class TalkingWatchdog:
    """Cancellable timer that forces idle when talk-start events stop arriving.

    ``arm()`` (re)starts the countdown, ``disarm()`` cancels it, and expiry
    calls ``on_expire`` once.
    """

    def __init__(self, hold_ms: int, on_expire: Callable[[], None]):
        self.hold_ms = hold_ms
        self._on_expire = on_expire
        self._task: Optional[asyncio.Task] = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> None:
        self.disarm()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def disarm(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        await asyncio.sleep(self.hold_ms / 1000.0)
        self._task = None
        logger.debug("Talking watchdog expired", hold_ms=self.hold_ms)
        self._on_expire()


class PresentationStateMachine:
    """Owns the session's PresentationState and applies the arbitration policy."""

    def __init__(self, talking_hold_ms: int = 4000, arbitration: str = AUDIO_AUTHORITATIVE):
        if arbitration not in (AUDIO_AUTHORITATIVE, LAST_WRITER_WINS):
            raise ValueError(f"Unknown arbitration policy: {arbitration}")
        self.arbitration = arbitration
        self._state = PresentationState.ENTRY
        self._audio_active = False
        self._listeners: List[StateListener] = []
        self.watchdog = TalkingWatchdog(talking_hold_ms, self._on_watchdog_expired)

    @property
    def state(self) -> PresentationState:
        return self._state

    @property
    def audio_active(self) -> bool:
        return self._audio_active

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def set_audio_active(self, active: bool) -> None:
        """The audio driver hears speech (True) or has heard it end (False).

        Under audio arbitration an active audio driver owns the state and the
        watchdog is disarmed.
        """
        if self._audio_active == active:
            return
        self._audio_active = active
        logger.debug("Remote speech activity", active=active, arbitration=self.arbitration)
        if active and self.arbitration == AUDIO_AUTHORITATIVE:
            self.watchdog.disarm()

    def _accepts(self, source: SignalSource) -> bool:
        if self.arbitration == LAST_WRITER_WINS or not self._audio_active:
            return True
        return source not in (SignalSource.EVENT, SignalSource.WATCHDOG)

    def set_state(self, new_state: PresentationState, source: SignalSource) -> bool:
        """
        Request a state change.

        Returns:
            True if the state changed. Idempotent writes and writes rejected
            by the arbitration policy return False and notify nobody.
        """
        if not self._accepts(source):
            logger.debug("Ignoring presentation write", requested=new_state.value, source=source.value)
            return False

        old_state = self._state
        if old_state == new_state:
            return False

        self._state = new_state
        _STATE_TRANSITIONS.labels(state=new_state.value, source=source.value).inc()
        logger.debug("Presentation state changed", old=old_state.value, new=new_state.value, source=source.value)

        for listener in list(self._listeners):
            try:
                listener(old_state, new_state, source)
            except Exception:
                logger.error("Presentation listener failed", new=new_state.value, exc_info=True)
        return True

    def on_channel_event(self, event: Dict[str, Any]) -> None:
        """Event driver: classify one inbound event."""
        event_type = event.get("type") or ""

        if is_talk_start(event_type):
            if not self._accepts(SignalSource.EVENT):
                return
            self.set_state(PresentationState.TALKING, SignalSource.EVENT)
            self.watchdog.arm()
        elif is_talk_end(event_type):
            self.watchdog.disarm()
            self.set_state(PresentationState.IDLE, SignalSource.EVENT)

    def _on_watchdog_expired(self) -> None:
        self.set_state(PresentationState.IDLE, SignalSource.WATCHDOG)

    def reset(self) -> None:
        """Back to ``entry`` for a new session; listeners are not notified."""
        self.watchdog.disarm()
        self._audio_active = False
        self._state = PresentationState.ENTRY
