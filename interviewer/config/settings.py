"""
Configuration models for the realtime interviewer.

Pydantic v2 models validate the merged YAML + environment configuration.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field
import structlog

from interviewer.config.loaders import resolve_config_path, load_yaml_with_env_expansion
from interviewer.config.security import inject_realtime_api_key
from interviewer.config.defaults import (
    apply_realtime_defaults,
    apply_presentation_defaults,
    apply_vad_defaults,
    apply_metrics_defaults,
)

logger = structlog.get_logger(__name__)

DEFAULT_INSTRUCTIONS = (
    "You are an AI interviewer. Speak only in English. Do not switch languages unless "
    "explicitly asked to translate. Greet the candidate warmly and explain this is a short, "
    "interactive real-time interview. Ask one question at a time and keep responses concise, "
    "clear, and professional. Encourage follow-ups and clarifications if the candidate asks. "
    "Avoid long monologues. When you determine the interview is finished, call the "
    "`complete_interview` tool exactly once with a short optional `summary` of the candidate's "
    "performance and an optional `reason` (e.g., finished_all_questions, time_up, user_requested)."
)

DEFAULT_GREETING_INSTRUCTIONS = (
    "Introduce yourself as an AI interviewer. Speak only in English. Explain this is a short, "
    "interactive real-time interview. Ask the first question now: 'What interests you about "
    "this company?'. Keep it concise and invite clarifying questions."
)

ARBITRATION_MODES = ("audio_authoritative", "last_writer_wins")


class RealtimeConfig(BaseModel):
    api_key: Optional[str] = None
    base_url: str = Field(default="wss://api.openai.com/v1/realtime")
    model: str = Field(default="gpt-realtime")
    voice: str = Field(default="marin")
    instructions: str = Field(default=DEFAULT_INSTRUCTIONS)
    greeting_instructions: Optional[str] = Field(default=DEFAULT_GREETING_INSTRUCTIONS)
    # Delay between the channel opening and the greeting response request
    greeting_delay_ms: int = Field(default=400)
    output_sample_rate_hz: int = Field(default=24000)
    connect_timeout_sec: float = Field(default=10.0)


class PresentationConfig(BaseModel):
    # Idle-fallback watchdog: talking reverts to idle after this long without a talk-start event
    talking_hold_ms: int = Field(default=4000)
    arbitration: str = Field(default="audio_authoritative")  # audio_authoritative | last_writer_wins


class VADConfig(BaseModel):
    enabled: bool = Field(default=True)
    start_threshold: float = Field(default=0.04)
    stop_threshold: float = Field(default=0.02)
    required_silence_ms: int = Field(default=300)
    frame_interval_ms: int = Field(default=16)  # roughly one display frame
    window_samples: int = Field(default=2048)


class EngineConfig(BaseModel):
    stop_on_completion: bool = Field(default=False)


class MetricsConfig(BaseModel):
    enabled: bool = Field(default=False)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=15000)


class LoggingConfig(BaseModel):
    level: str = Field(default="info")  # debug|info|warning|error|critical


class AppConfig(BaseModel):
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    presentation: PresentationConfig = Field(default_factory=PresentationConfig)
    vad: VADConfig = Field(default_factory=VADConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        path: YAML file, absolute or relative to the project root. Defaults to
            INTERVIEWER_CONFIG, then config/interviewer.yaml

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If values have the wrong shape
    """
    path = resolve_config_path(path)
    config_data = load_yaml_with_env_expansion(path)

    inject_realtime_api_key(config_data)

    apply_realtime_defaults(config_data)
    apply_presentation_defaults(config_data)
    apply_vad_defaults(config_data)
    apply_metrics_defaults(config_data)

    return AppConfig(**config_data)


def validate_config(config: AppConfig) -> tuple[list[str], list[str]]:
    """Validate configuration before a session starts.

    Errors block startup, warnings are logged but non-blocking.

    Returns:
        (errors, warnings)
    """
    errors = []
    warnings = []

    if not config.realtime.api_key:
        errors.append("No realtime API key configured (set OPENAI_API_KEY)")

    if not config.realtime.base_url.startswith(("ws://", "wss://")):
        errors.append(f"Invalid realtime base_url: {config.realtime.base_url} (must be ws:// or wss://)")

    if config.presentation.arbitration not in ARBITRATION_MODES:
        errors.append(
            f"Invalid presentation arbitration: {config.presentation.arbitration} "
            f"(must be one of {', '.join(ARBITRATION_MODES)})"
        )

    vad = config.vad
    if vad.start_threshold <= vad.stop_threshold:
        errors.append(
            f"VAD start_threshold ({vad.start_threshold}) must be greater than stop_threshold ({vad.stop_threshold})"
        )
    if not (0.0 < vad.stop_threshold < 1.0 and 0.0 < vad.start_threshold <= 1.0):
        errors.append("VAD thresholds must lie within (0, 1]")
    if vad.frame_interval_ms <= 0 or vad.window_samples <= 0:
        errors.append("VAD frame_interval_ms and window_samples must be positive")

    if config.metrics.enabled and not (0 < config.metrics.port < 65536):
        errors.append(f"Invalid metrics port: {config.metrics.port}")

    if config.presentation.talking_hold_ms < 1000:
        warnings.append(
            f"Talking hold very short: {config.presentation.talking_hold_ms}ms (agent may flicker to idle mid-turn)"
        )
    if vad.required_silence_ms < 100:
        warnings.append(f"VAD required silence very short: {vad.required_silence_ms}ms")

    log_level = os.getenv('LOG_LEVEL', config.logging.level).lower()
    if log_level == 'debug':
        warnings.append("Debug logging enabled (logs every realtime event)")

    return errors, warnings
