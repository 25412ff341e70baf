"""
Configuration package for the realtime interviewer.

This package contains:
- loaders: YAML file loading and parsing
- security: API key injection
- defaults: Environment overrides
- settings: Pydantic models, load_config and validate_config
"""

from interviewer.config.settings import (
    RealtimeConfig,
    PresentationConfig,
    VADConfig,
    EngineConfig,
    MetricsConfig,
    LoggingConfig,
    AppConfig,
    ARBITRATION_MODES,
    load_config,
    validate_config,
)

__all__ = [
    'RealtimeConfig',
    'PresentationConfig',
    'VADConfig',
    'EngineConfig',
    'MetricsConfig',
    'LoggingConfig',
    'AppConfig',
    'ARBITRATION_MODES',
    'load_config',
    'validate_config',
]
