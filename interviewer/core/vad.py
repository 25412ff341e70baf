"""
Voice activity detection on the agent's remote audio.

Remote audio arrives as PCM16 chunks, usually faster than real time. The
tap plays them out against a real-time cursor so that each frame tick sees
the window of samples that would be audible at that moment, and the
detector turns window RMS into talking/idle with hysteresis.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

import numpy as np
import structlog

from interviewer.core.models import PresentationState, SignalSource
from interviewer.core.presentation import PresentationStateMachine

logger = structlog.get_logger(__name__)

_PCM16_FULL_SCALE = 32768.0


def compute_rms(samples) -> float:
    """RMS amplitude of a window, normalized to [0, 1].

    Integer input is treated as PCM16; float input is assumed to already be
    in [-1, 1].
    """
    data = np.asarray(samples)
    if data.size == 0:
        return 0.0
    if np.issubdtype(data.dtype, np.integer):
        data = data.astype(np.float64) / _PCM16_FULL_SCALE
    else:
        data = data.astype(np.float64)
    rms = float(np.sqrt(np.mean(np.square(data))))
    return min(rms, 1.0)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class RemoteAudioTap:
    """Real-time view of the agent's audio.

    ``write`` queues decoded PCM16 (little endian) audio; ``advance`` moves
    the playback cursor by the elapsed time and returns the latest
    ``window_samples`` samples played. An empty queue plays silence.
    """

    def __init__(self, sample_rate: int = 24000, window_samples: int = 2048):
        self.sample_rate = sample_rate
        self.window_samples = window_samples
        self._pending = np.zeros(0, dtype=np.int16)
        self._window = np.zeros(window_samples, dtype=np.int16)
        self._odd_byte = b""
        self._carry = 0.0

    @property
    def pending_ms(self) -> float:
        return 1000.0 * self._pending.size / self.sample_rate

    def write(self, pcm16: bytes) -> None:
        data = self._odd_byte + pcm16
        if len(data) % 2:
            self._odd_byte = data[-1:]
            data = data[:-1]
        else:
            self._odd_byte = b""
        if not data:
            return
        samples = np.frombuffer(data, dtype="<i2").astype(np.int16)
        self._pending = np.concatenate((self._pending, samples))

    def advance(self, elapsed_ms: float) -> np.ndarray:
        exact = elapsed_ms * self.sample_rate / 1000.0 + self._carry
        count = int(exact)
        self._carry = exact - count
        if count <= 0:
            return self._window

        played = self._pending[:count]
        self._pending = self._pending[count:]
        if played.size < count:
            played = np.concatenate((played, np.zeros(count - played.size, dtype=np.int16)))

        self._window = np.concatenate((self._window, played))[-self.window_samples:]
        return self._window

    def clear(self) -> None:
        self._pending = np.zeros(0, dtype=np.int16)
        self._window = np.zeros(self.window_samples, dtype=np.int16)
        self._odd_byte = b""
        self._carry = 0.0


class VoiceActivityDetector:
    """RMS hysteresis: speaking starts at ``start_threshold`` and ends only
    after ``required_silence_ms`` below ``stop_threshold``.

    RMS between the two thresholds neither starts nor ends speech.
    """

    def __init__(
        self,
        presentation: PresentationStateMachine,
        start_threshold: float = 0.04,
        stop_threshold: float = 0.02,
        required_silence_ms: int = 300,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if start_threshold <= stop_threshold:
            raise ValueError("start_threshold must be greater than stop_threshold")
        self.presentation = presentation
        self.start_threshold = start_threshold
        self.stop_threshold = stop_threshold
        self.required_silence_ms = required_silence_ms
        self._clock = clock
        self.speaking = False
        self.last_above_ms = 0.0

    def process(self, rms: float, now_ms: Optional[float] = None) -> None:
        now = self._clock() if now_ms is None else now_ms
        if rms >= self.start_threshold:
            self.last_above_ms = now
            if not self.speaking:
                self.speaking = True
                self.presentation.set_audio_active(True)
                self.presentation.set_state(PresentationState.TALKING, SignalSource.AUDIO)
        elif (
            self.speaking
            and rms < self.stop_threshold
            and now - self.last_above_ms > self.required_silence_ms
        ):
            self.speaking = False
            self.presentation.set_state(PresentationState.IDLE, SignalSource.AUDIO)
            self.presentation.set_audio_active(False)

    def reset(self) -> None:
        self.speaking = False
        self.last_above_ms = 0.0


class RemoteAudioSampler:
    """Frame-tick loop feeding the tap's current window to the detector."""

    def __init__(
        self,
        tap: RemoteAudioTap,
        detector: VoiceActivityDetector,
        frame_interval_ms: int = 16,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.tap = tap
        self.detector = detector
        self.frame_interval_ms = frame_interval_ms
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._last_tick_ms: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._last_tick_ms = None
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Remote audio sampler started", frame_interval_ms=self.frame_interval_ms)

    def tick(self) -> float:
        """Sample one frame; returns the RMS seen."""
        now = self._clock()
        elapsed = 0.0 if self._last_tick_ms is None else now - self._last_tick_ms
        self._last_tick_ms = now
        rms = compute_rms(self.tap.advance(elapsed))
        self.detector.process(rms, now)
        return rms

    async def _run(self) -> None:
        interval = self.frame_interval_ms / 1000.0
        while True:
            try:
                self.tick()
            except Exception:
                logger.error("Remote audio sampling failed", exc_info=True)
            await asyncio.sleep(interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Remote audio sampler stopped")
