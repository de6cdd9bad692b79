"""Decision API: the public entry point for permission checks.

Wraps :class:`PermissionResolver` with input validation, a wall-clock
timeout, decision audit logging and atomic registry swaps.

Unknown namespaces and permissions propagate as ``UnknownNamespaceError`` /
``UnknownPermissionError``. They are never reported as a deny: "you asked
about something that does not exist" is an integration bug, not a 403.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Iterable, Optional, TypeVar

from .config import RebacConfig, load_config_from_env
from .exceptions import (
    InvalidRequestError,
    PermissionDeniedError,
    ResolutionTimeoutError,
    RebacError,
    TupleStoreError,
    UnknownNamespaceError,
    UnknownPermissionError,
)
from .logging import get_rebac_logger
from .resolver import PermissionResolver, RelationPath, drain_tasks
from .schema.definitions import default_registry
from .schema.loader import load_schemas_from_file
from .schema.registry import SchemaRegistry
from .tuples.store import RelationTupleStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check.

    Attributes:
        allowed: Whether the subject has the permission.
        explain: Witness chain of relation resolutions, when requested and allowed.
        checked: On deny, the relations that were evaluated (from ``grantedBy``).
    """

    allowed: bool
    explain: Optional[RelationPath] = None
    checked: tuple[str, ...] = ()

    @property
    def denied(self) -> bool:
        return not self.allowed

    def describe(self) -> str:
        """Human-readable summary for audit logs."""
        if self.allowed:
            if self.explain:
                return "allow via " + " -> ".join(str(step) for step in self.explain)
            return "allow"
        if self.checked:
            return "deny (checked " + ", ".join(self.checked) + ")"
        return "deny"


def _require_identifier(name: str, value: object) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{name} must be a non-empty string", field=name)


class PermissionChecker:
    """Permission checks for one schema registry and one tuple store.

    Args:
        registry: Validated schema registry.
        store: Relation tuple store.
        config: Resolution and logging settings (defaults if None).

    Example::

        checker = PermissionChecker(default_registry(), store)
        decision = await checker.check_permission("alice", "view", "project", "p-1", explain=True)
        decision.allowed     # True
        decision.describe()  # 'allow via project:p-1#parent_organization[computed_userset] -> ...'
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        store: RelationTupleStore,
        config: RebacConfig | None = None,
    ) -> None:
        self._config = config or RebacConfig()
        self._store = store
        self._resolver = self._make_resolver(registry)

    @classmethod
    def from_config(cls, store: RelationTupleStore, config: RebacConfig | None = None) -> PermissionChecker:
        """Build a checker, loading schemas from ``config.schema_path`` or the built-ins.

        Raises:
            SchemaValidationError: If the configured schema document is invalid.
        """
        config = config or load_config_from_env()
        if config.schema_path:
            registry = SchemaRegistry.build(load_schemas_from_file(config.schema_path))
        else:
            registry = default_registry()
        return cls(registry, store, config)

    def _make_resolver(self, registry: SchemaRegistry) -> PermissionResolver:
        return PermissionResolver(
            registry,
            self._store,
            max_depth=self._config.max_depth,
            concurrent=self._config.concurrent_fanout,
        )

    @property
    def config(self) -> RebacConfig:
        return self._config

    @property
    def registry(self) -> SchemaRegistry:
        return self._resolver.registry

    def swap_registry(self, registry: SchemaRegistry) -> None:
        """Publish a new registry. In-flight checks keep the one they started with."""
        self._resolver = self._make_resolver(registry)
        logger.info("Schema registry swapped: %d namespaces", len(registry))

    async def _bounded(self, awaitable: Awaitable[_T], what: str) -> _T:
        timeout = self._config.timeout_seconds
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise ResolutionTimeoutError(
                f"{what} exceeded {timeout:g}s",
                timeout_seconds=timeout,
            ) from exc

    # ── Checks ──────────────────────────────────────────

    async def check_permission(
        self,
        subject_id: str,
        permission: str,
        namespace: str,
        object_id: str,
        *,
        explain: bool = False,
        request_id: str | None = None,
    ) -> Decision:
        """Check whether ``subject_id`` has ``permission`` on ``namespace:object_id``.

        Args:
            subject_id: The acting subject.
            permission: Permission name defined by the namespace.
            namespace: Resource type (e.g. ``"project"``).
            object_id: Resource identifier.
            explain: Attach the witness relation path to an allow.
            request_id: Correlation id for audit log records.

        Returns:
            Decision with ``allowed`` set; a deny is a normal result.

        Raises:
            InvalidRequestError: An identifier is empty.
            UnknownNamespaceError: The namespace is not registered.
            UnknownPermissionError: The namespace has no such permission.
            TupleStoreError: The tuple store failed a lookup.
            ResolutionTimeoutError: The check exceeded ``timeout_seconds``.
        """
        _require_identifier("subject_id", subject_id)
        _require_identifier("permission", permission)
        _require_identifier("namespace", namespace)
        _require_identifier("object_id", object_id)

        resolver = self._resolver
        log = get_rebac_logger(__name__, request_id=request_id, subject_id=subject_id)
        started = time.perf_counter()

        try:
            resolution = await self._bounded(
                resolver.resolve(subject_id, permission, namespace, object_id),
                f"check {permission} on {namespace}:{object_id}",
            )
        except (UnknownNamespaceError, UnknownPermissionError) as exc:
            log.error("Malformed check %s on %s:%s: %s", permission, namespace, object_id, exc.message)
            raise
        except (TupleStoreError, ResolutionTimeoutError) as exc:
            log.warning("Check %s on %s:%s failed: [%s] %s", permission, namespace, object_id, exc.code, exc.message)
            raise

        audited = Decision(resolution.allowed, resolution.path or None, resolution.checked)
        decision = audited if explain else replace(audited, explain=None)
        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(
            "%s %s on %s:%s in %.1fms: %s",
            "ALLOW" if decision.allowed else "DENY",
            permission,
            namespace,
            object_id,
            elapsed_ms,
            audited.describe(),
        )
        return decision

    async def require_permission(
        self,
        subject_id: str,
        permission: str,
        namespace: str,
        object_id: str,
        *,
        request_id: str | None = None,
    ) -> Decision:
        """Like :meth:`check_permission`, but raise on deny.

        Raises:
            PermissionDeniedError: The subject lacks the permission.
        """
        decision = await self.check_permission(
            subject_id, permission, namespace, object_id, explain=True, request_id=request_id
        )
        if decision.denied:
            raise PermissionDeniedError(
                f"{subject_id} lacks {permission} on {namespace}:{object_id}",
                subject_id=subject_id,
                permission=permission,
                namespace=namespace,
                object_id=object_id,
                checked=list(decision.checked),
            )
        return decision

    async def _check_each(
        self, subject_id: str, permissions: Iterable[str], namespace: str, object_id: str
    ) -> dict[str, bool]:
        names = list(dict.fromkeys(permissions))
        tasks = [
            asyncio.ensure_future(self.check_permission(subject_id, name, namespace, object_id)) for name in names
        ]
        try:
            decisions = await asyncio.gather(*tasks)
        finally:
            # One failure must not leave sibling checks running against the store.
            await drain_tasks(tasks)
        return {name: decision.allowed for name, decision in zip(names, decisions)}

    async def check_all(self, subject_id: str, permissions: Iterable[str], namespace: str, object_id: str) -> bool:
        """True if every listed permission is granted (an empty list is vacuously True)."""
        results = await self._check_each(subject_id, permissions, namespace, object_id)
        return all(results.values())

    async def check_any(self, subject_id: str, permissions: Iterable[str], namespace: str, object_id: str) -> bool:
        """True if at least one listed permission is granted."""
        results = await self._check_each(subject_id, permissions, namespace, object_id)
        return any(results.values())

    async def missing_permissions(
        self, subject_id: str, permissions: Iterable[str], namespace: str, object_id: str
    ) -> tuple[str, ...]:
        """Listed permissions the subject does not have, in input order."""
        results = await self._check_each(subject_id, permissions, namespace, object_id)
        return tuple(name for name, allowed in results.items() if not allowed)

    async def list_permissions(self, subject_id: str, namespace: str, object_id: str) -> tuple[str, ...]:
        """Every permission of the namespace the subject has on the object, sorted."""
        schema = self.registry.get_schema(namespace)
        results = await self._check_each(subject_id, sorted(schema.permissions), namespace, object_id)
        return tuple(name for name, allowed in results.items() if allowed)

    async def list_direct_relations(self, subject_id: str, namespace: str, object_id: str) -> frozenset[str]:
        """Relations stored directly for the subject on the object (no rewrites applied).

        Raises:
            UnknownNamespaceError: The namespace is not registered.
            NotImplementedError: The store does not support listing.
        """
        _require_identifier("subject_id", subject_id)
        _require_identifier("object_id", object_id)
        self.registry.get_schema(namespace)
        try:
            return await self._bounded(
                self._store.list_relations(subject_id, namespace, object_id),
                f"list relations on {namespace}:{object_id}",
            )
        except (RebacError, NotImplementedError):
            raise
        except Exception as exc:
            raise TupleStoreError(f"list_relations failed for {namespace}:{object_id}: {exc}") from exc


__all__ = [
    "Decision",
    "PermissionChecker",
]
