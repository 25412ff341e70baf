"""
Session transport interface.

A transport owns connection setup and teardown with the remote agent. On top
of the ``send`` primitive it builds the few client events the engine needs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]
StopHandler = Callable[[], Awaitable[None]]


class SessionTransport(ABC):
    """Base class for realtime session transports.

    Handlers run sequentially per event, in registration order, so events are
    processed in arrival order. A handler that raises is logged and the next
    handler (and event) still runs.
    """

    def __init__(self):
        self._event_handlers: List[EventHandler] = []
        self._stop_handlers: List[StopHandler] = []
        self._audio_tap = None

    def add_event_handler(self, handler: EventHandler) -> None:
        self._event_handlers.append(handler)

    def add_stop_handler(self, handler: StopHandler) -> None:
        self._stop_handlers.append(handler)

    def attach_audio_tap(self, tap) -> None:
        """Route decoded remote audio (PCM16) into ``tap.write``."""
        self._audio_tap = tap

    @property
    def audio_tap(self):
        return self._audio_tap

    async def dispatch(self, event: Dict[str, Any]) -> None:
        for handler in list(self._event_handlers):
            try:
                await handler(event)
            except Exception:
                logger.error("Event handler failed", event_type=event.get("type"), exc_info=True)

    async def run_stop_handlers(self) -> None:
        for handler in list(self._stop_handlers):
            try:
                await handler()
            except Exception:
                logger.error("Stop handler failed", exc_info=True)

    @abstractmethod
    async def start(self, context: Optional[Dict[str, Any]] = None) -> None:
        """Open the session."""

    @abstractmethod
    async def stop(self) -> None:
        """Close the session and run stop handlers."""

    @abstractmethod
    async def send(self, event: Dict[str, Any]) -> bool:
        """Send one client event to the agent.

        Returns False, without raising, when the session is not open.
        """

    async def send_text_message(self, text: str) -> bool:
        """Send a typed candidate message and ask the agent to respond."""
        sent = await self.send({
            "type": "conversation.item.create",
            "item": {
                "type": "message",
                "role": "user",
                "content": [{"type": "input_text", "text": text}],
            },
        })
        if not sent:
            return False
        return await self.request_response()

    async def request_response(self, instructions: Optional[str] = None) -> bool:
        event: Dict[str, Any] = {"type": "response.create"}
        if instructions:
            event["response"] = {"instructions": instructions}
        return await self.send(event)

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether events can currently be sent."""
