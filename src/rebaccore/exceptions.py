"""Unified exception hierarchy for rebaccore.

Every error raised by the authorization core inherits from RebacError.
This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- HTTP status mapping for callers that expose decisions over a web layer

A *deny* is never an exception. It is the normal negative result of a
permission check. Exceptions are reserved for malformed schemas, malformed
requests, and infrastructure failures.

Usage:
    from rebaccore.exceptions import (
        RebacError,
        UnknownPermissionError,
        TupleStoreError,
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "RebacError",
    "ConfigurationError",
    "SchemaIssue",
    "SchemaValidationError",
    "UnknownNamespaceError",
    "UnknownPermissionError",
    "InvalidRequestError",
    "TupleStoreError",
    "ResolutionTimeoutError",
    "PermissionDeniedError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # Protocol helpers
    "get_http_status_code",
]


# ---- Exception Hierarchy ----------------------------------------------------


class RebacError(Exception):
    """Base exception for the authorization core.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "UNKNOWN_PERMISSION").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal authorization error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(RebacError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


@dataclass(frozen=True)
class SchemaIssue:
    """A single problem found while validating namespace schemas."""

    namespace: str
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.namespace}.{self.field}: {self.message}"


class SchemaValidationError(RebacError):
    """One or more namespace schemas are malformed.

    Startup-fatal: a registry is never built from schemas that raise this.
    All issues found are collected in ``issues`` rather than stopping at the
    first one, so a deploy log shows everything that needs fixing.
    """

    code: str = "SCHEMA_VALIDATION_ERROR"
    message: str = "Namespace schemas failed validation"

    def __init__(self, issues: Iterable[SchemaIssue], message: str | None = None) -> None:
        self.issues: tuple[SchemaIssue, ...] = tuple(issues)
        summary = "; ".join(str(issue) for issue in self.issues)
        base = message or self.message
        super().__init__(f"{base}: {summary}" if summary else base, issues=[str(i) for i in self.issues])


class UnknownNamespaceError(RebacError):
    """The request names a namespace the registry has never heard of."""

    code: str = "UNKNOWN_NAMESPACE"

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(f"Unknown namespace: {namespace!r}", namespace=namespace)


class UnknownPermissionError(RebacError):
    """The request names a permission its namespace does not define."""

    code: str = "UNKNOWN_PERMISSION"

    def __init__(self, namespace: str, permission: str) -> None:
        self.namespace = namespace
        self.permission = permission
        super().__init__(
            f"Unknown permission {permission!r} in namespace {namespace!r}",
            namespace=namespace,
            permission=permission,
        )


class InvalidRequestError(RebacError):
    """Malformed check request (e.g. empty subject or object identifier)."""

    code: str = "INVALID_REQUEST"


class TupleStoreError(RebacError):
    """The relation tuple store failed to answer a lookup.

    The resolver never turns this into a deny. Retry or fail-closed policy
    belongs to the caller.
    """

    code: str = "TUPLE_STORE_ERROR"
    message: str = "Relation tuple store lookup failed"


class ResolutionTimeoutError(RebacError):
    """A permission check exceeded its wall-clock budget."""

    code: str = "RESOLUTION_TIMEOUT"
    message: str = "Permission check timed out"


class PermissionDeniedError(RebacError):
    """Raised by ``PermissionChecker.require_permission`` on a deny."""

    code: str = "PERMISSION_DENIED"
    message: str = "Permission denied"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[RebacError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[RebacError]] = {}

    def register(self, code: str, error_cls: type[RebacError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[RebacError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[RebacError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("QUOTA_EXCEEDED")
        class QuotaExceededError(RebacError):
            code = "QUOTA_EXCEEDED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", RebacError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("SCHEMA_VALIDATION_ERROR", SchemaValidationError)
error_registry.register("UNKNOWN_NAMESPACE", UnknownNamespaceError)
error_registry.register("UNKNOWN_PERMISSION", UnknownPermissionError)
error_registry.register("INVALID_REQUEST", InvalidRequestError)
error_registry.register("TUPLE_STORE_ERROR", TupleStoreError)
error_registry.register("RESOLUTION_TIMEOUT", ResolutionTimeoutError)
error_registry.register("PERMISSION_DENIED", PermissionDeniedError)


# ---- Protocol Mapping -------------------------------------------------------


def get_http_status_code(error: RebacError) -> int:
    """Map a RebacError to the HTTP status a calling web layer should use.

    Unknown namespaces and permissions are integration bugs on the caller's
    side and map to 500, never to 403.
    """
    error_to_status = {
        "INVALID_REQUEST": 400,
        "PERMISSION_DENIED": 403,
        "UNKNOWN_NAMESPACE": 500,
        "UNKNOWN_PERMISSION": 500,
        "SCHEMA_VALIDATION_ERROR": 500,
        "CONFIGURATION_ERROR": 500,
        "TUPLE_STORE_ERROR": 503,
        "RESOLUTION_TIMEOUT": 504,
    }
    return error_to_status.get(error.code, 500)
