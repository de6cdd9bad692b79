"""In-process relation tuple store.

Reference implementation of :class:`RelationTupleStore` for tests, local
development and small single-process deployments. Not persistent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from .store import ObjectRef, RelationTuple, RelationTupleStore

logger = logging.getLogger(__name__)


class InMemoryTupleStore(RelationTupleStore):
    """Set-backed tuple store with separate parent links.

    Args:
        tuples: Initial relation tuples.
        latency_s: Artificial delay applied to every lookup, to simulate a
            network-backed store.

    Example::

        store = InMemoryTupleStore()
        store.add("alice", "member", "organization", "org-1")
        store.link("project", "p-1", "parent_organization", ObjectRef("organization", "org-1"))
    """

    def __init__(self, tuples: Iterable[RelationTuple] = (), *, latency_s: float = 0.0) -> None:
        self._tuples: set[RelationTuple] = set(tuples)
        self._links: dict[tuple[str, str, str], ObjectRef] = {}
        self._latency_s = latency_s
        self.tuple_lookups = 0
        self.link_lookups = 0

    # ── Mutation ────────────────────────────────────────

    def add(self, subject_id: str, relation: str, namespace: str, object_id: str) -> RelationTuple:
        rel_tuple = RelationTuple(subject_id, relation, namespace, object_id)
        self._tuples.add(rel_tuple)
        logger.debug("Tuple added: %s", rel_tuple)
        return rel_tuple

    def remove(self, subject_id: str, relation: str, namespace: str, object_id: str) -> bool:
        rel_tuple = RelationTuple(subject_id, relation, namespace, object_id)
        if rel_tuple in self._tuples:
            self._tuples.remove(rel_tuple)
            logger.debug("Tuple removed: %s", rel_tuple)
            return True
        return False

    def link(self, namespace: str, object_id: str, link: str, parent: ObjectRef) -> None:
        """Point ``namespace:object_id`` at ``parent`` through ``link``."""
        self._links[(namespace, object_id, link)] = parent

    def unlink(self, namespace: str, object_id: str, link: str) -> bool:
        return self._links.pop((namespace, object_id, link), None) is not None

    def __len__(self) -> int:
        return len(self._tuples)

    def __contains__(self, rel_tuple: object) -> bool:
        return rel_tuple in self._tuples

    # ── RelationTupleStore ──────────────────────────────

    async def has_tuple(self, subject_id: str, relation: str, namespace: str, object_id: str) -> bool:
        self.tuple_lookups += 1
        if self._latency_s:
            await asyncio.sleep(self._latency_s)
        return RelationTuple(subject_id, relation, namespace, object_id) in self._tuples

    async def get_parent_link(self, namespace: str, object_id: str, link: str) -> ObjectRef | None:
        self.link_lookups += 1
        if self._latency_s:
            await asyncio.sleep(self._latency_s)
        return self._links.get((namespace, object_id, link))

    async def list_relations(self, subject_id: str, namespace: str, object_id: str) -> frozenset[str]:
        return frozenset(
            t.relation
            for t in self._tuples
            if t.subject_id == subject_id and t.namespace == namespace and t.object_id == object_id
        )


__all__ = ["InMemoryTupleStore"]
