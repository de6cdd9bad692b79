"""Centralized logging utilities for rebaccore.

This module provides:
- Logging configuration from RebacConfig
- Safe preview utilities for identifiers and payloads
- Secret redaction
- Structured logging with request/subject correlation for decision audits
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import LogLevel, RebacConfig


# Patterns for detecting secrets that may leak into identifiers or messages
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|api[_-]?key)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)',
    r'[a-f0-9]{40,}',  # Long hex strings (could be keys)
]

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "request_id", "subject_id",
})


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded, single-line preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns from text.

    Args:
        text: The text to redact
        replacement: String to replace secrets with (default: "[REDACTED]")

    Returns:
        Text with secrets redacted
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Combine safe_preview() and redact_secrets() for a log field."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class RebacFormatter(logging.Formatter):
    """Formatter that emits request/subject correlation and optional JSON.

    Decision audit records carry ``request_id`` and ``subject_id`` so a
    single check can be followed through resolver debug output.
    """

    def __init__(
        self,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "request_id", None)
        subject_id = getattr(record, "subject_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if request_id:
            log_data["request_id"] = str(request_id)
        if subject_id:
            log_data["subject_id"] = safe_log_value(subject_id, limit=120, redact=self.redact_secrets)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if request_id:
            parts.append(f"request_id={log_data['request_id']}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class RebacLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds request_id and subject_id to every record.

    Usage:
        logger = get_rebac_logger(__name__, request_id="req-42")
        logger.info("Checked permission", subject_id="user:alice")
    """

    def __init__(
        self,
        logger: logging.Logger,
        request_id: Optional[str] = None,
        subject_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.request_id = request_id
        self.subject_id = subject_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        request_id = kwargs.pop("request_id", self.request_id)
        subject_id = kwargs.pop("subject_id", self.subject_id)

        extra = kwargs.get("extra", {})
        if request_id:
            extra["request_id"] = request_id
        if subject_id:
            extra["subject_id"] = subject_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[RebacConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging for a process embedding rebaccore.

    Args:
        config: RebacConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_config_from_env
        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(LogLevel(config.log_level), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        RebacFormatter(
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_rebac_logger(
    name: str,
    request_id: Optional[str] = None,
    subject_id: Optional[str] = None,
) -> RebacLoggerAdapter:
    """Get a logger adapter bound to a request and/or subject.

    Args:
        name: Logger name (typically __name__)
        request_id: Optional correlation id included in all records
        subject_id: Optional subject included in all records

    Returns:
        RebacLoggerAdapter instance
    """
    return RebacLoggerAdapter(logging.getLogger(name), request_id=request_id, subject_id=subject_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "RebacFormatter",
    "RebacLoggerAdapter",
    "setup_logging",
    "get_rebac_logger",
]
