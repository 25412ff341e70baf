"""
OpenAI Realtime session transport.

Drives an interview over OpenAI's server-side Realtime WebSocket rather than
WebRTC. Inbound JSON events are dispatched to the registered handlers in
arrival order; output audio deltas are decoded and written to the attached
audio tap so the VAD can follow what the agent is saying.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import contextlib
import json
import uuid
from typing import Any, Dict, List, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from structlog import get_logger

from .base import SessionTransport
from ..config import RealtimeConfig

logger = get_logger(__name__)

AUDIO_DELTA_TYPES = frozenset({"response.output_audio.delta", "response.audio.delta"})


class OpenAIRealtimeSession(SessionTransport):
    """
    OpenAI Realtime transport for one interview.

    Lifecycle:
    1. start() -> opens the WebSocket, starts the receive loop, sends session.update
       with the interviewer instructions, voice and tool schemas.
    2. send(event) -> serializes one client event.
    3. Inbound events -> dispatched to event handlers; audio deltas -> audio tap.
    4. stop() -> cancels the receive loop, closes the socket, runs stop handlers.
    """

    def __init__(self, config: RealtimeConfig, tools: Optional[List[Dict[str, Any]]] = None):
        super().__init__()
        self.config = config
        self.tools = tools or []
        self.websocket: Optional[ClientConnection] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._remote_close_task: Optional[asyncio.Task] = None
        self._send_lock = asyncio.Lock()
        self._closing = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self.websocket is not None and self.websocket.state.name == "OPEN"

    def _build_ws_url(self) -> str:
        base = (self.config.base_url or "").strip()
        if base.startswith("${") or not base.startswith(("ws://", "wss://")):
            logger.warning("Invalid realtime base_url in config; falling back to default", base_url=base)
            base = "wss://api.openai.com/v1/realtime"
        base = base.rstrip("/")
        return f"{base}?model={self.config.model}"

    def build_session_update(self) -> Dict[str, Any]:
        return {
            "type": "session.update",
            "session": {
                "type": "realtime",
                "model": self.config.model,
                "instructions": self.config.instructions,
                "audio": {
                    "output": {"voice": self.config.voice},
                },
                "tools": self.tools,
            },
        }

    async def start(self, context: Optional[Dict[str, Any]] = None) -> None:
        if not self.config.api_key:
            raise RuntimeError("OpenAI API key is not configured")

        url = self._build_ws_url()
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        logger.info("Connecting to OpenAI Realtime", url=url, model=self.config.model)

        self.websocket = await connect(
            url,
            additional_headers=headers,
            open_timeout=self.config.connect_timeout_sec,
        )
        self._closing = False
        self._closed = False
        self._receive_task = asyncio.create_task(self._receive_loop())

        await self.send(self.build_session_update())
        logger.info("OpenAI Realtime session started", tools=[t.get("name") for t in self.tools])

    async def send(self, event: Dict[str, Any]) -> bool:
        if not self.is_open:
            logger.error("Failed to send event - no open realtime connection", type=event.get("type"))
            return False

        payload = dict(event)
        payload.setdefault("event_id", str(uuid.uuid4()))
        logger.debug("OpenAI send", type=payload.get("type"))

        message = json.dumps(payload)
        async with self._send_lock:
            await self.websocket.send(message)
        return True

    async def stop(self) -> None:
        if self._closing or self._closed:
            return

        self._closing = True
        try:
            if self._receive_task:
                self._receive_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._receive_task
            if self.websocket is not None and self.is_open:
                await self.websocket.close()
        finally:
            self._receive_task = None
            self.websocket = None
            self._closing = False
            self._closed = True
            logger.info("OpenAI Realtime session stopped")
            await self.run_stop_handlers()

    async def _receive_loop(self) -> None:
        assert self.websocket is not None
        try:
            async for message in self.websocket:
                if isinstance(message, bytes):
                    continue
                try:
                    event = json.loads(message)
                except json.JSONDecodeError:
                    logger.warning("Failed to decode OpenAI Realtime payload", payload_preview=message[:64])
                    continue
                if not isinstance(event, dict):
                    logger.warning("Ignoring non-object OpenAI Realtime payload", payload_preview=message[:64])
                    continue
                await self._handle_event(event)
        except asyncio.CancelledError:
            raise
        except (ConnectionClosedError, ConnectionClosedOK):
            logger.info("OpenAI Realtime connection closed")
        except Exception:
            logger.error("OpenAI Realtime receive loop error", exc_info=True)

        # Remote side went away: tear down like a local stop
        if not self._closing and not self._closed:
            self._remote_close_task = asyncio.create_task(self.stop())

    async def _handle_event(self, event: Dict[str, Any]) -> None:
        event_type = event.get("type") or ""

        if event_type == "error":
            logger.error("OpenAI Realtime error event", error_event=event.get("error"))
        elif event_type in AUDIO_DELTA_TYPES:
            self._handle_output_audio(event.get("delta"))
        elif event_type:
            logger.debug("OpenAI event", type=event_type)

        await self.dispatch(event)

    def _handle_output_audio(self, audio_b64: Any) -> None:
        if self._audio_tap is None or not isinstance(audio_b64, str) or not audio_b64:
            return
        try:
            pcm16 = base64.b64decode(audio_b64, validate=True)
        except (binascii.Error, ValueError):
            logger.debug("Undecodable output audio delta", size=len(audio_b64))
            return
        self._audio_tap.write(pcm16)
