"""Shared fixtures for the interviewer test suite."""

from typing import Any, Dict, List, Optional

import pytest

from interviewer.config import AppConfig, PresentationConfig, RealtimeConfig, VADConfig
from interviewer.core.session_state import SessionState
from interviewer.providers.base import SessionTransport


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: float = 1000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


class FakeTransport(SessionTransport):
    """In-memory transport: records sent events, replays inbound ones."""

    def __init__(self):
        super().__init__()
        self.sent: List[Dict[str, Any]] = []
        self.started = False
        self.stopped = False

    @property
    def is_open(self) -> bool:
        return self.started and not self.stopped

    async def start(self, context: Optional[Dict[str, Any]] = None) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True
        await self.run_stop_handlers()

    async def send(self, event: Dict[str, Any]) -> bool:
        self.sent.append(event)
        return True

    async def feed(self, *events: Dict[str, Any]) -> None:
        for event in events:
            await self.dispatch(event)

    def sent_of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.sent if e.get("type") == event_type]


@pytest.fixture
def app_config():
    return AppConfig(
        realtime=RealtimeConfig(api_key="sk-test-key", greeting_instructions=None),
        presentation=PresentationConfig(talking_hold_ms=4000),
        vad=VADConfig(),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def session(app_config, transport, clock):
    return SessionState(app_config, send=transport.send, clock=clock)
