"""Relation tuple store contract.

The authorization core never owns relation tuples. It asks an external
store two questions:

- does tuple ``(subject, relation, namespace, object)`` exist?
- which parent object does ``object`` point to through a named link?

Implementations are typically network-backed (a database), so every method
is a coroutine. Any exception they raise that is not already a
``RebacError`` is wrapped by the resolver into ``TupleStoreError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ObjectRef:
    """A typed object reference, e.g. ``ObjectRef("organization", "org-1")``."""

    namespace: str
    object_id: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.object_id}"


@dataclass(frozen=True)
class RelationTuple:
    """Fact: ``subject_id`` holds ``relation`` on ``namespace:object_id``."""

    subject_id: str
    relation: str
    namespace: str
    object_id: str

    @property
    def object(self) -> ObjectRef:
        return ObjectRef(self.namespace, self.object_id)

    def __str__(self) -> str:
        return f"{self.namespace}:{self.object_id}#{self.relation}@{self.subject_id}"


class RelationTupleStore(ABC):
    """Read-side contract the resolver depends on."""

    @abstractmethod
    async def has_tuple(self, subject_id: str, relation: str, namespace: str, object_id: str) -> bool:
        """Return True if the exact tuple is stored."""
        raise NotImplementedError

    @abstractmethod
    async def get_parent_link(self, namespace: str, object_id: str, link: str) -> ObjectRef | None:
        """Resolve ``namespace:object_id`` through ``link`` (e.g. a project's organization).

        Returns None when the object has no such link.
        """
        raise NotImplementedError

    async def list_relations(self, subject_id: str, namespace: str, object_id: str) -> frozenset[str]:
        """Relations ``subject_id`` holds directly on the object.

        Optional capability; used for introspection only, never by resolution.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support listing relations")


__all__ = [
    "ObjectRef",
    "RelationTuple",
    "RelationTupleStore",
]
