"""Tests for relation tuples and the in-memory store."""

from __future__ import annotations

import pytest

from rebaccore import InMemoryTupleStore, ObjectRef, RelationTuple, RelationTupleStore


class TestValues:
    """Tests for ObjectRef and RelationTuple."""

    def test_object_ref_str(self) -> None:
        """Test ObjectRef renders as namespace:id."""
        assert str(ObjectRef("organization", "org-1")) == "organization:org-1"

    def test_relation_tuple(self) -> None:
        """Test RelationTuple exposes its object and a readable form."""
        rel_tuple = RelationTuple("alice", "owner", "organization", "org-1")
        assert rel_tuple.object == ObjectRef("organization", "org-1")
        assert str(rel_tuple) == "organization:org-1#owner@alice"

    def test_store_is_abstract(self) -> None:
        """Test the store contract cannot be instantiated."""
        with pytest.raises(TypeError):
            RelationTupleStore()  # type: ignore[abstract]


class TestInMemoryTupleStore:
    """Tests for InMemoryTupleStore."""

    @pytest.mark.asyncio
    async def test_add_and_lookup(self) -> None:
        """Test stored tuples are found exactly."""
        store = InMemoryTupleStore()
        added = store.add("alice", "owner", "organization", "org-1")
        assert added in store
        assert len(store) == 1
        assert await store.has_tuple("alice", "owner", "organization", "org-1") is True
        assert await store.has_tuple("alice", "admin", "organization", "org-1") is False
        assert store.tuple_lookups == 2

    @pytest.mark.asyncio
    async def test_initial_tuples(self) -> None:
        """Test the store can be seeded with tuples."""
        store = InMemoryTupleStore([RelationTuple("bob", "member", "organization", "org-1")])
        assert await store.has_tuple("bob", "member", "organization", "org-1") is True

    @pytest.mark.asyncio
    async def test_remove(self) -> None:
        """Test removal reports whether a tuple existed."""
        store = InMemoryTupleStore()
        store.add("alice", "owner", "organization", "org-1")
        assert store.remove("alice", "owner", "organization", "org-1") is True
        assert store.remove("alice", "owner", "organization", "org-1") is False
        assert await store.has_tuple("alice", "owner", "organization", "org-1") is False

    @pytest.mark.asyncio
    async def test_parent_links(self) -> None:
        """Test links resolve per (namespace, object, link) and can be removed."""
        store = InMemoryTupleStore()
        org = ObjectRef("organization", "org-1")
        store.link("project", "p-1", "parent_organization", org)
        assert await store.get_parent_link("project", "p-1", "parent_organization") == org
        assert await store.get_parent_link("project", "p-1", "linked_client") is None
        assert store.unlink("project", "p-1", "parent_organization") is True
        assert store.unlink("project", "p-1", "parent_organization") is False
        assert await store.get_parent_link("project", "p-1", "parent_organization") is None
        assert store.link_lookups == 3

    @pytest.mark.asyncio
    async def test_list_relations(self) -> None:
        """Test listing is scoped to one subject and object."""
        store = InMemoryTupleStore()
        store.add("alice", "owner", "organization", "org-1")
        store.add("alice", "viewer", "organization", "org-1")
        store.add("alice", "owner", "organization", "org-2")
        store.add("bob", "member", "organization", "org-1")
        assert await store.list_relations("alice", "organization", "org-1") == frozenset({"owner", "viewer"})
