import asyncio
import contextlib
import logging
import signal
from typing import Any, Dict, Optional

from prometheus_client import start_http_server

from .config import AppConfig, MetricsConfig, load_config, validate_config
from .core.models import CompletionRecord, PresentationState, SignalSource
from .core.session_state import SessionState
from .core.synchronizer import EventSynchronizer
from .logging_config import configure_logging, get_logger, set_session_id
from .providers.base import SessionTransport
from .providers.openai_realtime import OpenAIRealtimeSession
from .tools.adapters.openai import OpenAIToolAdapter
from .tools.registry import ToolRegistry

logger = get_logger(__name__)


class InterviewEngine:
    """Runs one realtime interview session.

    Owns the transport, the per-session state and the synchronizer between
    them. The candidate-facing boundary is ``session.presentation`` (is the
    agent talking) and ``session.completion`` (has the interview finished).
    """

    def __init__(self, config: AppConfig, transport: Optional[SessionTransport] = None, clock=None):
        self.config = config
        self.registry = ToolRegistry()
        self.registry.initialize_default_tools()
        self.adapter = OpenAIToolAdapter(self.registry)
        self.transport = transport or OpenAIRealtimeSession(
            config.realtime, tools=self.adapter.get_tools_config()
        )
        self.session = SessionState(config, send=self.transport.send, clock=clock)
        self.synchronizer = EventSynchronizer(self.transport, self.session, self.adapter)
        self._greeting_task: Optional[asyncio.Task] = None
        self.session_id: Optional[str] = None

    async def start(self) -> None:
        self.session_id = set_session_id()
        self.synchronizer.attach()
        await self.transport.start()
        self.synchronizer.start()
        logger.info("🎙️ Interview session started", state=self.session.state.value)

        if self.config.realtime.greeting_instructions:
            self._greeting_task = asyncio.create_task(self._send_greeting())

    async def _send_greeting(self) -> None:
        """Play the entry state briefly, then ask the agent to open the interview."""
        await asyncio.sleep(self.config.realtime.greeting_delay_ms / 1000.0)
        self.session.presentation.set_state(PresentationState.TALKING, SignalSource.SESSION)
        if await self.transport.request_response(self.config.realtime.greeting_instructions):
            logger.info("Greeting requested")

    async def send_text_message(self, text: str) -> bool:
        """Typed candidate input; the agent is listening until it responds."""
        self.session.presentation.set_state(PresentationState.IDLE, SignalSource.SESSION)
        return await self.transport.send_text_message(text)

    async def wait_for_completion(self) -> CompletionRecord:
        return await self.session.completion.wait_finalized()

    def snapshot(self) -> Dict[str, Any]:
        finalized = self.session.completion.finalized
        return {
            "session_id": self.session_id,
            "state": self.session.state.value,
            "completed": finalized is not None,
            "completion": finalized.to_dict() if finalized else None,
        }

    async def stop(self) -> None:
        if self._greeting_task is not None:
            self._greeting_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._greeting_task
            self._greeting_task = None
        await self.transport.stop()
        logger.info("Interview session stopped", session_id=self.session_id)


def start_metrics_server(metrics: MetricsConfig) -> bool:
    """Serve the Prometheus registry over HTTP when enabled; returns whether it started."""
    if not metrics.enabled:
        return False
    try:
        start_http_server(metrics.port, addr=metrics.host)
    except OSError as e:
        logger.error("Metrics endpoint failed to start", host=metrics.host, port=metrics.port, error=str(e))
        return False
    logger.info("Metrics endpoint started", host=metrics.host, port=metrics.port)
    return True


async def main():
    config = load_config()
    level_name = str(config.logging.level).upper()
    configure_logging(log_level=getattr(logging, level_name, logging.INFO))

    errors, warnings = validate_config(config)
    if errors:
        logger.error("❌ Configuration validation FAILED", errors=errors, warnings=warnings)
        raise RuntimeError(f"Configuration errors: {errors}")
    if warnings:
        logger.warning("⚠️  Configuration warnings", warnings=warnings)

    start_metrics_server(config.metrics)

    engine = InterviewEngine(config)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    def _on_completion(record: CompletionRecord) -> None:
        logger.info("Interview completed", **record.to_dict())
        if config.engine.stop_on_completion:
            shutdown_event.set()

    engine.session.completion.add_listener(_on_completion)

    await engine.start()
    try:
        await shutdown_event.wait()
    finally:
        await engine.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        logger.info("Interviewer has shut down.")
