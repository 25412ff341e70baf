"""
Default value application for configuration.

This module handles:
- Realtime transport overrides (model, URL, voice)
- Presentation overrides (talking hold, driver arbitration)
- VAD threshold overrides
- Metrics exporter overrides

Environment values win over YAML. Values that fail to convert are ignored
and the YAML (or model default) stays in effect.
"""

import os
from typing import Any, Callable, Dict

import structlog

logger = structlog.get_logger(__name__)


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    block = config_data.get(name) or {}
    if not isinstance(block, dict):
        block = {}
    config_data[name] = block
    return block


def _override(block: Dict[str, Any], key: str, env_name: str, convert: Callable[[str], Any] = str) -> None:
    raw = os.getenv(env_name)
    if raw is None or raw.strip() == "":
        return
    try:
        block[key] = convert(raw.strip())
    except ValueError:
        logger.warning("Ignoring invalid environment override", env=env_name, value=raw)


def apply_realtime_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply realtime session overrides from environment variables.

    Environment variables:
    - OPENAI_REALTIME_URL: WebSocket base URL
    - OPENAI_REALTIME_MODEL: Realtime model name
    - OPENAI_REALTIME_VOICE: Output voice

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    realtime = _section(config_data, 'realtime')
    _override(realtime, 'base_url', 'OPENAI_REALTIME_URL')
    _override(realtime, 'model', 'OPENAI_REALTIME_MODEL')
    _override(realtime, 'voice', 'OPENAI_REALTIME_VOICE')


def apply_presentation_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply presentation state machine overrides.

    Environment variables:
    - TALKING_HOLD_MS: Idle-fallback watchdog duration
    - PRESENTATION_ARBITRATION: audio_authoritative | last_writer_wins
    """
    presentation = _section(config_data, 'presentation')
    _override(presentation, 'talking_hold_ms', 'TALKING_HOLD_MS', int)
    _override(presentation, 'arbitration', 'PRESENTATION_ARBITRATION', lambda v: v.lower())


def apply_vad_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply remote-audio VAD overrides.

    Environment variables:
    - VAD_START_THRESHOLD: RMS at or above which the agent is speaking
    - VAD_STOP_THRESHOLD: RMS below which audio counts as silence
    - VAD_REQUIRED_SILENCE_MS: Silence needed before switching to idle
    """
    vad = _section(config_data, 'vad')
    _override(vad, 'start_threshold', 'VAD_START_THRESHOLD', float)
    _override(vad, 'stop_threshold', 'VAD_STOP_THRESHOLD', float)
    _override(vad, 'required_silence_ms', 'VAD_REQUIRED_SILENCE_MS', int)


def _flag(value: str) -> bool:
    normalized = value.lower()
    if normalized in ('1', 'true', 'yes', 'on'):
        return True
    if normalized in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(value)


def apply_metrics_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply Prometheus exporter overrides.

    Environment variables:
    - METRICS_ENABLED: 1|0, serve /metrics over HTTP
    - METRICS_BIND_HOST: Listen address (default 127.0.0.1)
    - METRICS_BIND_PORT: Listen port (default 15000)
    """
    metrics = _section(config_data, 'metrics')
    _override(metrics, 'enabled', 'METRICS_ENABLED', _flag)
    _override(metrics, 'host', 'METRICS_BIND_HOST')
    _override(metrics, 'port', 'METRICS_BIND_PORT', int)
