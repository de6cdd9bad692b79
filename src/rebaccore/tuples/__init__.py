"""Relation tuple store contract and the in-memory reference store."""

from .memory import InMemoryTupleStore
from .store import ObjectRef, RelationTuple, RelationTupleStore

__all__ = [
    "InMemoryTupleStore",
    "ObjectRef",
    "RelationTuple",
    "RelationTupleStore",
]
