"""Permission resolution over namespace schemas and relation tuples.

Given ``(subject, permission, namespace, object)``, the resolver decides
whether any relation that grants the permission holds between subject and
object. A single relation holds when:

1. the tuple store has the exact tuple (always checked first), or
2. its rewrite holds:
   - ``union`` / ``inherits``: any listed relation on the same object holds,
   - ``intersection``: every listed relation on the same object holds,
   - ``computed_userset``: the subject holds the target relation on the
     object's linked parent.

Evaluation is depth-first with short-circuiting. Independent branches run
concurrently as asyncio tasks; the first success cancels its siblings.

Cycles and runaway chains fail closed. A ``(namespace, relation, object)``
triple already on the current resolution path, or a path longer than
``max_depth``, evaluates to deny for that path and never raises. Results that
did not depend on such a cut are memoised for the rest of the call. A
memoised allow is reused deeper in the same call only while its witness still
fits under ``max_depth`` from there, so an answer never depends on which
branch happened to fill the memo first.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Sequence

from .exceptions import InvalidRequestError, RebacError, TupleStoreError
from .schema.models import ComputedUserset, IntersectionRewrite, NamespaceSchema
from .schema.registry import SchemaRegistry
from .tuples.store import ObjectRef, RelationTupleStore

logger = logging.getLogger(__name__)

_Triple = tuple[str, str, str]  # (namespace, relation, object_id)


@dataclass(frozen=True)
class RelationStep:
    """One hop of a witness path: ``namespace:object_id#relation`` satisfied ``via`` a mechanism.

    ``via`` is ``"direct"`` for a stored tuple, otherwise the rewrite kind
    (``"union"``, ``"intersection"``, ``"inherits"``, ``"computed_userset"``).
    """

    namespace: str
    object_id: str
    relation: str
    via: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.object_id}#{self.relation}[{self.via}]"


RelationPath = tuple[RelationStep, ...]


@dataclass(frozen=True)
class Resolution:
    """Result of :meth:`PermissionResolver.resolve`.

    Attributes:
        allowed: Whether the permission is granted.
        path: Witness chain of relation resolutions when allowed.
        checked: Relations from ``grantedBy`` that were evaluated, when denied.
    """

    allowed: bool
    path: RelationPath = ()
    checked: tuple[str, ...] = ()


@dataclass(frozen=True)
class _Outcome:
    allowed: bool
    path: RelationPath = ()
    # False when a cycle or depth cut contributed to a deny
    exact: bool = True
    # Relation hops below and including this one needed to reproduce an allow
    height: int = 0

    def prefixed(self, step: RelationStep) -> _Outcome:
        if not self.allowed:
            return self
        return _Outcome(True, (step,) + self.path, self.exact, self.height + 1)


_DENY = _Outcome(False)
_CUT = _Outcome(False, exact=False)

_Thunk = Callable[[], Awaitable[_Outcome]]


class _CallContext:
    """Per-call state: the subject and the memo of exact results."""

    __slots__ = ("subject_id", "memo")

    def __init__(self, subject_id: str) -> None:
        self.subject_id = subject_id
        # Only touched between awaits on the event loop, so check-and-set is atomic.
        self.memo: dict[_Triple, _Outcome] = {}


async def drain_tasks(tasks: Sequence[asyncio.Task]) -> None:
    """Cancel unfinished tasks and wait for them to settle."""
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.wait(pending)
    for task in tasks:
        if not task.cancelled():
            # Mark exceptions as retrieved; the first one was already raised.
            task.exception()


class PermissionResolver:
    """Resolve permissions against a schema registry and a tuple store.

    Args:
        registry: Validated schema registry. Captured for the resolver's lifetime.
        store: Relation tuple store.
        max_depth: Maximum number of relation hops on one resolution path.
        concurrent: Evaluate independent branches concurrently.

    Example::

        resolver = PermissionResolver(default_registry(), store)
        result = await resolver.resolve("alice", "view", "project", "p-1")
        result.allowed  # True
        [str(step) for step in result.path]
        # ['project:p-1#parent_organization[computed_userset]',
        #  'organization:org-1#member[direct]']
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        store: RelationTupleStore,
        *,
        max_depth: int = 10,
        concurrent: bool = True,
    ) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self._registry = registry
        self._store = store
        self._max_depth = max_depth
        self._concurrent = concurrent

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    @property
    def max_depth(self) -> int:
        return self._max_depth

    # ── Public API ──────────────────────────────────────

    async def resolve(self, subject_id: str, permission: str, namespace: str, object_id: str) -> Resolution:
        """Decide whether ``subject_id`` has ``permission`` on ``namespace:object_id``.

        Raises:
            UnknownNamespaceError: The namespace is not registered.
            UnknownPermissionError: The namespace has no such permission.
            TupleStoreError: The tuple store failed a lookup.
        """
        schema = self._registry.get_schema(namespace)
        definition = self._registry.get_permission(namespace, permission)
        ctx = _CallContext(subject_id)

        relations = self._cheapest_first(schema, definition.granted_by)
        outcome = await self._any(
            [functools.partial(self._holds, ctx, namespace, rel, object_id, frozenset(), 1) for rel in relations]
        )

        logger.debug(
            "resolve %s %s on %s:%s -> %s",
            subject_id,
            permission,
            namespace,
            object_id,
            " -> ".join(str(step) for step in outcome.path) if outcome.allowed else "deny",
        )
        if outcome.allowed:
            return Resolution(True, path=outcome.path)
        return Resolution(False, checked=definition.granted_by)

    async def holds_relation(self, subject_id: str, relation: str, namespace: str, object_id: str) -> bool:
        """Decide whether ``subject_id`` holds ``relation`` on ``namespace:object_id``.

        Raises:
            UnknownNamespaceError: The namespace is not registered.
            InvalidRequestError: The namespace has no such relation.
        """
        if self._registry.get_relation(namespace, relation) is None:
            raise InvalidRequestError(
                f"Unknown relation {relation!r} in namespace {namespace!r}",
                namespace=namespace,
                relation=relation,
            )
        outcome = await self._holds(_CallContext(subject_id), namespace, relation, object_id, frozenset(), 1)
        return outcome.allowed

    # ── Relation evaluation ─────────────────────────────

    async def _holds(
        self,
        ctx: _CallContext,
        namespace: str,
        relation: str,
        object_id: str,
        on_path: frozenset[_Triple],
        depth: int,
    ) -> _Outcome:
        key = (namespace, relation, object_id)
        if key in on_path:
            logger.debug("Cycle at %s:%s#%s, denying this path", namespace, object_id, relation)
            return _CUT
        if depth > self._max_depth:
            logger.warning(
                "Resolution depth %d exceeded at %s:%s#%s, denying this path",
                self._max_depth,
                namespace,
                object_id,
                relation,
            )
            return _CUT

        cached = ctx.memo.get(key)
        if cached is not None and (not cached.allowed or depth + cached.height - 1 <= self._max_depth):
            return cached

        outcome = await self._evaluate(ctx, namespace, relation, object_id, on_path | {key}, depth)
        if outcome.exact:
            ctx.memo[key] = outcome
        return outcome

    async def _evaluate(
        self,
        ctx: _CallContext,
        namespace: str,
        relation: str,
        object_id: str,
        on_path: frozenset[_Triple],
        depth: int,
    ) -> _Outcome:
        if await self._has_tuple(ctx.subject_id, relation, namespace, object_id):
            return _Outcome(True, (RelationStep(namespace, object_id, relation, "direct"),), height=1)

        schema = self._registry.get_schema(namespace)
        rewrite = schema.relations[relation].rewrite
        if rewrite is None:
            return _DENY

        step = RelationStep(namespace, object_id, relation, rewrite.kind)

        if isinstance(rewrite, ComputedUserset):
            parent = await self._get_parent(namespace, object_id, rewrite.link or relation)
            if parent is None:
                return _DENY
            if parent.namespace != rewrite.namespace:
                logger.warning(
                    "Link %r of %s:%s points to %s, expected namespace %r; denying",
                    rewrite.link or relation,
                    namespace,
                    object_id,
                    parent,
                    rewrite.namespace,
                )
                return _DENY
            child = await self._holds(ctx, parent.namespace, rewrite.relation, parent.object_id, on_path, depth + 1)
            return child.prefixed(step)

        members = [
            functools.partial(self._holds, ctx, namespace, member, object_id, on_path, depth + 1)
            for member in self._cheapest_first(schema, rewrite.relations)
        ]
        if isinstance(rewrite, IntersectionRewrite):
            outcome = await self._all(members)
        else:
            outcome = await self._any(members)
        return outcome.prefixed(step)

    @staticmethod
    def _cheapest_first(schema: NamespaceSchema, relations: Iterable[str]) -> list[str]:
        """Direct-only relations, then same-object rewrites, then indirections."""

        def cost(name: str) -> int:
            rewrite = schema.relations[name].rewrite
            if rewrite is None:
                return 0
            if isinstance(rewrite, ComputedUserset):
                return 2
            return 1

        return sorted(relations, key=cost)

    # ── Combinators ─────────────────────────────────────

    async def _any(self, thunks: Sequence[_Thunk]) -> _Outcome:
        """OR with short-circuit on the first success."""
        if not self._concurrent or len(thunks) < 2:
            exact = True
            for thunk in thunks:
                outcome = await thunk()
                if outcome.allowed:
                    return outcome
                exact = exact and outcome.exact
            return _Outcome(False, exact=exact)

        tasks = [asyncio.ensure_future(thunk()) for thunk in thunks]
        try:
            exact = True
            pending: set[asyncio.Future] = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    outcome = task.result()
                    if outcome.allowed:
                        return outcome
                    exact = exact and outcome.exact
            return _Outcome(False, exact=exact)
        finally:
            await drain_tasks(tasks)

    async def _all(self, thunks: Sequence[_Thunk]) -> _Outcome:
        """AND with short-circuit on the first failure; witness paths concatenate in order."""
        if not self._concurrent or len(thunks) < 2:
            path: RelationPath = ()
            height = 0
            for thunk in thunks:
                outcome = await thunk()
                if not outcome.allowed:
                    return outcome
                path += outcome.path
                height = max(height, outcome.height)
            return _Outcome(True, path, height=height)

        tasks = [asyncio.ensure_future(thunk()) for thunk in thunks]
        try:
            pending: set[asyncio.Future] = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    outcome = task.result()
                    if not outcome.allowed:
                        return outcome
            results = [task.result() for task in tasks]
            path = sum((outcome.path for outcome in results), ())
            return _Outcome(True, path, height=max(outcome.height for outcome in results))
        finally:
            await drain_tasks(tasks)

    # ── Store access ────────────────────────────────────

    async def _has_tuple(self, subject_id: str, relation: str, namespace: str, object_id: str) -> bool:
        try:
            return bool(await self._store.has_tuple(subject_id, relation, namespace, object_id))
        except RebacError:
            raise
        except Exception as exc:
            raise TupleStoreError(
                f"has_tuple failed for {namespace}:{object_id}#{relation}: {exc}",
                namespace=namespace,
                object_id=object_id,
                relation=relation,
            ) from exc

    async def _get_parent(self, namespace: str, object_id: str, link: str) -> ObjectRef | None:
        try:
            return await self._store.get_parent_link(namespace, object_id, link)
        except RebacError:
            raise
        except Exception as exc:
            raise TupleStoreError(
                f"get_parent_link failed for {namespace}:{object_id} via {link!r}: {exc}",
                namespace=namespace,
                object_id=object_id,
                link=link,
            ) from exc


__all__ = [
    "PermissionResolver",
    "RelationPath",
    "RelationStep",
    "Resolution",
]
