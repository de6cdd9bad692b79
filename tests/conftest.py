"""Shared fixtures: built-in registry, in-memory store, and a small tenant graph."""

from __future__ import annotations

import pytest

from rebaccore import (
    InMemoryTupleStore,
    ObjectRef,
    PermissionChecker,
    PermissionResolver,
    RebacConfig,
    SchemaRegistry,
    default_registry,
)

ORG = ObjectRef("organization", "org-1")


def link_platform_objects(store: InMemoryTupleStore) -> None:
    """org-1 owns project p-1, client c-1, invoice i-1, campaign cm-1, event e-1, timesheet t-1.

    p-1 is linked to client c-1; document d-1 and event e-1 belong to p-1.
    """
    for namespace, object_id in (
        ("project", "p-1"),
        ("client", "c-1"),
        ("invoice", "i-1"),
        ("campaign", "cm-1"),
        ("event", "e-1"),
        ("report", "r-1"),
        ("timesheet", "t-1"),
    ):
        store.link(namespace, object_id, "parent_organization", ORG)
    store.link("project", "p-1", "linked_client", ObjectRef("client", "c-1"))
    store.link("document", "d-1", "parent_project", ObjectRef("project", "p-1"))
    store.link("event", "e-1", "parent_project", ObjectRef("project", "p-1"))
    store.link("timesheet", "t-1", "parent_project", ObjectRef("project", "p-1"))


@pytest.fixture
def registry() -> SchemaRegistry:
    return default_registry()


@pytest.fixture
def store() -> InMemoryTupleStore:
    store = InMemoryTupleStore()
    link_platform_objects(store)
    return store


@pytest.fixture(params=[True, False], ids=["concurrent", "sequential"])
def resolver(request, registry: SchemaRegistry, store: InMemoryTupleStore) -> PermissionResolver:
    return PermissionResolver(registry, store, concurrent=request.param)


@pytest.fixture(params=[True, False], ids=["concurrent", "sequential"])
def checker(request, registry: SchemaRegistry, store: InMemoryTupleStore) -> PermissionChecker:
    return PermissionChecker(registry, store, RebacConfig(concurrent_fanout=request.param))
