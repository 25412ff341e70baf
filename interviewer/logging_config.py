"""
Structured logging for the interviewer.

structlog runs on top of stdlib ``logging`` so third-party loggers
(websockets, asyncio) share the same handlers and renderer. Every record
carries the service name, the emitting component and, inside a session, the
session id. Credentials are redacted before rendering.
"""

import contextvars
import logging
import os
import sys
import time
import uuid
from logging.handlers import RotatingFileHandler
from typing import Any, Optional, Union

import structlog
from structlog import dev as structlog_dev

session_id_var = contextvars.ContextVar('session_id', default=None)

SERVICE_NAME = 'interviewer'

REDACTED = '***REDACTED***'

# Matched case-insensitively, ignoring '_' and '-', as a whole key or a key suffix
SENSITIVE_KEYS = {
    'api_key', 'apikey', 'api_keys',
    'token', 'access_token', 'refresh_token', 'bearer',
    'ephemeral_key', 'client_secret',
    'password', 'passwd', 'pwd', 'pass',
    'authorization', 'auth',
    'credential', 'credentials', 'secret', 'secrets',
    'private_key',
}

_NORMALIZED_SENSITIVE = frozenset(k.replace('_', '').replace('-', '') for k in SENSITIVE_KEYS)

_QUIET_LOGGERS = ('websockets', 'websockets.client', 'asyncio')


def get_session_id() -> Optional[str]:
    return session_id_var.get()


def set_session_id(value: Optional[str] = None) -> str:
    """Bind a session id to the current context (a fresh uuid by default)."""
    value = value or str(uuid.uuid4())
    session_id_var.set(value)
    return value


def add_session_id(logger, method_name, event_dict):
    session_id = get_session_id()
    if session_id:
        event_dict['session_id'] = session_id
    return event_dict


def add_service_context(logger, method_name, event_dict):
    event_dict['service'] = SERVICE_NAME
    event_dict['component'] = (
        event_dict.get('logger')
        or getattr(getattr(logger, 'logger', None), 'name', None)
        or getattr(logger, 'name', None)
        or 'unknown'
    )
    return event_dict


def _is_sensitive_key(key: Any) -> bool:
    normalized = str(key).lower().replace('_', '').replace('-', '')
    # Suffix match catches "openai_api_key" without flagging "passthrough"
    return any(normalized.endswith(pattern) for pattern in _NORMALIZED_SENSITIVE)


def _mask(value: Any) -> Any:
    """Mask a value stored under a sensitive key."""
    if value is None or value == '' or isinstance(value, bool):
        return value
    if isinstance(value, str):
        # Keep a two-character prefix ("sk", "ek", "Be") for debugging
        return f"{value[:2]}{REDACTED}" if len(value) > 4 else REDACTED
    if isinstance(value, (list, tuple)):
        return [_mask(item) for item in value]
    if isinstance(value, dict):
        return _sanitize(value)
    return REDACTED


def _sanitize(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: _mask(item) if _is_sensitive_key(key) else _sanitize(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_sanitize(item) if isinstance(item, dict) else item for item in value]
    return value


def sanitize_secrets(logger, method_name, event_dict):
    """
    Redact credentials anywhere in the event.

    Realtime sessions authenticate with an OpenAI API key (or an ephemeral
    client secret) sent as a bearer header; neither may reach a log sink.
    """
    return _sanitize(event_dict)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _level_value(log_level: Union[str, int]) -> int:
    if isinstance(log_level, int):
        return log_level
    return getattr(logging, str(log_level).upper(), logging.INFO)


def _rotating_file_handler(path: str, service_name: str) -> Optional[RotatingFileHandler]:
    """Open the log file; a directory gets a timestamped file inside it."""
    stamp = time.strftime("%Y%m%d-%H%M%S")
    if path.endswith(os.sep) or os.path.isdir(path):
        path = os.path.join(path, f"{service_name}-{stamp}.log")
    else:
        path = path.replace("{ts}", stamp)
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)
    except OSError as e:
        structlog.get_logger(__name__).warning(
            "File logging disabled; continuing with console only",
            log_file_path=path,
            error=str(e),
        )
        return None


def configure_logging(
    log_level: Union[str, int] = "INFO",
    log_to_file: bool = False,
    log_file_path: str = "interviewer.log",
    service_name: str = SERVICE_NAME,
) -> None:
    """
    Configure structlog and the root logger.

    Environment overrides:
      - LOG_LEVEL: debug|info|warning|error|critical
      - LOG_FORMAT: json|console (default: json)
      - LOG_COLOR: 0|1, console only (default: 1)
      - LOG_TO_FILE: 0|1
      - LOG_FILE_PATH: file or directory
      - LOG_SHOW_TRACEBACKS: auto|always|never (auto: only at debug level)
    """
    level = _level_value(os.getenv("LOG_LEVEL") or log_level)
    log_to_file = _env_flag("LOG_TO_FILE", log_to_file)
    log_file_path = os.getenv("LOG_FILE_PATH", log_file_path)
    console = os.getenv("LOG_FORMAT", "json").strip().lower() == "console"

    tracebacks = os.getenv("LOG_SHOW_TRACEBACKS", "auto").strip().lower()
    show_tracebacks = tracebacks == "always" or (tracebacks != "never" and level <= logging.DEBUG)

    def drop_exc_info(logger, method_name, event_dict):
        if not show_tracebacks:
            event_dict.pop("exc_info", None)
        return event_dict

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_context,
            add_session_id,
            sanitize_secrets,
            drop_exc_info,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if console:
        renderer = structlog_dev.ConsoleRenderer(colors=_env_flag("LOG_COLOR", True))
    else:
        renderer = structlog.processors.JSONRenderer()
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if log_to_file:
        file_handler = _rotating_file_handler(log_file_path, service_name)
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str):
    return structlog.get_logger(name)
