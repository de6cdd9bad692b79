"""Configuration contract for the rebaccore authorization engine.

This module provides the Pydantic-validated configuration model for the
resolver and decision API: recursion bound, wall-clock timeout, fan-out
mode, logging, and where to load namespace schemas from.

Direct os.environ/os.getenv usage is FORBIDDEN outside
``load_config_from_env()``. Everything else receives a ``RebacConfig``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RebacConfig(BaseModel):
    """Configuration for the permission resolver and decision API.

    ``max_depth`` caps structural recursion through relation rewrites and
    computed usersets. ``timeout_seconds`` caps total latency of one check,
    including slow tuple-store calls. The two are independent bounds.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Resolution
    max_depth: int = Field(
        default=10,
        ge=1,
        description="Maximum relation-resolution depth before a path is denied",
    )
    timeout_seconds: Optional[float] = Field(
        default=5.0,
        description="Wall-clock budget for a single permission check (None = unbounded)",
    )
    concurrent_fanout: bool = Field(
        default=True,
        description="Evaluate independent branches concurrently instead of sequentially",
    )

    # Schemas
    schema_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON namespace schema document (None = built-in schemas)",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for log identification",
    )

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Timeout must be positive when set."""
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be positive or None")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


def load_config_from_env() -> RebacConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - REBAC_MAX_DEPTH: Maximum resolution depth (default: 10)
    - REBAC_TIMEOUT_SECONDS: Per-check timeout; "none" or "0" disables it (default: 5)
    - REBAC_CONCURRENT_FANOUT: Concurrent branch evaluation (default: true)
    - REBAC_SCHEMA_PATH: JSON schema document path
    - SERVICE_NAME: Service name for log identification

    Returns:
        RebacConfig instance with values from environment or defaults.
    """
    import os

    timeout_raw = os.getenv("REBAC_TIMEOUT_SECONDS", "5").strip().lower()
    timeout: Optional[float]
    if timeout_raw in ("", "none", "0"):
        timeout = None
    else:
        timeout = float(timeout_raw)

    return RebacConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_flag(os.getenv("LOG_JSON", "false")),
        max_depth=int(os.getenv("REBAC_MAX_DEPTH", "10")),
        timeout_seconds=timeout,
        concurrent_fanout=_env_flag(os.getenv("REBAC_CONCURRENT_FANOUT", "true")),
        schema_path=os.getenv("REBAC_SCHEMA_PATH") or None,
        service_name=os.getenv("SERVICE_NAME"),
    )


__all__ = [
    "LogLevel",
    "RebacConfig",
    "load_config_from_env",
]
