"""Schema registry: validated, immutable index of namespace schemas.

Provides:
- ``validate_schemas()``: collect every consistency problem in a schema set.
- ``SchemaRegistry``: read-only lookup built with ``SchemaRegistry.build()``.

Validation is fail-fast at startup. A registry instance only exists if every
schema in it passed. Hot reload publishes a new instance; an existing one is
never mutated.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from ..exceptions import SchemaIssue, SchemaValidationError, UnknownNamespaceError, UnknownPermissionError
from .models import ComputedUserset, NamespaceSchema, PermissionDefinition, RelationDefinition

logger = logging.getLogger(__name__)


def _invert_granted_by(schema: NamespaceSchema) -> dict[str, frozenset[str]]:
    """relation name → permissions whose ``granted_by`` lists it."""
    inverse: dict[str, set[str]] = {name: set() for name in schema.relations}
    for perm_name, perm in schema.permissions.items():
        for relation in perm.granted_by:
            inverse.setdefault(relation, set()).add(perm_name)
    return {name: frozenset(perms) for name, perms in inverse.items()}


def _check_namespace(schema: NamespaceSchema, known: Mapping[str, NamespaceSchema]) -> list[SchemaIssue]:
    issues: list[SchemaIssue] = []
    ns = schema.name

    for perm_name, perm in schema.permissions.items():
        for relation in perm.granted_by:
            if relation in schema.relations:
                continue
            if relation in schema.permissions:
                message = f"{relation!r} is a permission; grantedBy must name relations only"
            else:
                message = f"unknown relation {relation!r}"
            issues.append(SchemaIssue(ns, f"permissions.{perm_name}.grantedBy", message))

    inverse = _invert_granted_by(schema)

    for rel_name, relation in schema.relations.items():
        field = f"relations.{rel_name}"
        rewrite = relation.rewrite

        if isinstance(rewrite, ComputedUserset):
            target = known.get(rewrite.namespace)
            if target is None:
                issues.append(
                    SchemaIssue(ns, f"{field}.computedUserset.namespace", f"unknown namespace {rewrite.namespace!r}")
                )
            elif rewrite.relation not in target.relations:
                issues.append(
                    SchemaIssue(
                        ns,
                        f"{field}.computedUserset.relation",
                        f"namespace {rewrite.namespace!r} has no relation {rewrite.relation!r}",
                    )
                )
        elif rewrite is not None:
            for member in rewrite.relations:
                if member == rel_name:
                    issues.append(SchemaIssue(ns, f"{field}.{rewrite.kind}", "relation references itself"))
                elif member not in schema.relations:
                    issues.append(SchemaIssue(ns, f"{field}.{rewrite.kind}", f"unknown relation {member!r}"))

        if relation.permissions is not None:
            unknown = sorted(relation.permissions - set(schema.permissions))
            if unknown:
                issues.append(SchemaIssue(ns, f"{field}.permissions", f"unknown permissions {unknown}"))
            derived = inverse.get(rel_name, frozenset())
            declared = relation.permissions & set(schema.permissions)
            if declared != derived:
                issues.append(
                    SchemaIssue(
                        ns,
                        f"{field}.permissions",
                        f"declares {sorted(declared)} but grantedBy lists give {sorted(derived)}",
                    )
                )

    return issues


def validate_schemas(schemas: Iterable[NamespaceSchema]) -> list[SchemaIssue]:
    """Validate a schema set and return every issue found.

    Cross-namespace references are checked only after all names are indexed,
    so schemas may reference each other in any order.

    Returns:
        List of issues; empty when the set is valid.
    """
    schemas = list(schemas)
    issues: list[SchemaIssue] = []
    index: dict[str, NamespaceSchema] = {}

    for schema in schemas:
        if schema.name in index:
            issues.append(SchemaIssue(schema.name, "name", "duplicate namespace name"))
            continue
        index[schema.name] = schema

    for schema in index.values():
        issues.extend(_check_namespace(schema, index))

    return issues


class SchemaRegistry:
    """Immutable collection of validated namespace schemas.

    Construct with :meth:`build`. Lookups of unknown namespaces or
    permissions raise, they never return an empty result, so a typo in a
    caller surfaces as an integration bug rather than a silent deny.

    Example::

        registry = SchemaRegistry.build(BUILTIN_SCHEMAS)
        registry.relations_granting("organization", "edit")  # ("owner", "admin")
    """

    __slots__ = ("_schemas", "_relation_permissions")

    def __init__(self, schemas: Mapping[str, NamespaceSchema]) -> None:
        # Use build(); this assumes schemas are already validated.
        self._schemas: Mapping[str, NamespaceSchema] = MappingProxyType(dict(schemas))
        self._relation_permissions: Mapping[str, Mapping[str, frozenset[str]]] = MappingProxyType(
            {name: MappingProxyType(_invert_granted_by(schema)) for name, schema in self._schemas.items()}
        )

    @classmethod
    def build(cls, schemas: Iterable[NamespaceSchema]) -> SchemaRegistry:
        """Validate ``schemas`` and return a ready registry.

        Raises:
            SchemaValidationError: If any schema is inconsistent. No registry
                is produced in that case.
        """
        schemas = list(schemas)
        issues = validate_schemas(schemas)
        if issues:
            for issue in issues:
                logger.error("Schema validation failed: %s", issue)
            raise SchemaValidationError(issues)

        registry = cls({schema.name: schema for schema in schemas})
        logger.info("Schema registry ready with %d namespaces: %s", len(registry), ", ".join(registry.namespaces))
        return registry

    # ── Lookups ─────────────────────────────────────────

    @property
    def namespaces(self) -> tuple[str, ...]:
        return tuple(self._schemas)

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def __iter__(self) -> Iterator[NamespaceSchema]:
        return iter(self._schemas.values())

    def get_schema(self, namespace: str) -> NamespaceSchema:
        """Return the schema for ``namespace``.

        Raises:
            UnknownNamespaceError: If the namespace is not registered.
        """
        try:
            return self._schemas[namespace]
        except KeyError:
            raise UnknownNamespaceError(namespace) from None

    def get_permission(self, namespace: str, permission: str) -> PermissionDefinition:
        """Return a permission definition.

        Raises:
            UnknownNamespaceError: If the namespace is not registered.
            UnknownPermissionError: If the namespace lacks the permission.
        """
        definition = self.get_schema(namespace).get_permission(permission)
        if definition is None:
            raise UnknownPermissionError(namespace, permission)
        return definition

    def get_relation(self, namespace: str, relation: str) -> RelationDefinition | None:
        return self.get_schema(namespace).get_relation(relation)

    def relations_granting(self, namespace: str, permission: str) -> tuple[str, ...]:
        return self.get_permission(namespace, permission).granted_by

    def permissions_granted_by(self, namespace: str, relation: str) -> frozenset[str]:
        """Permissions directly granted by holding ``relation`` (derived from grantedBy)."""
        self.get_schema(namespace)
        return self._relation_permissions[namespace].get(relation, frozenset())

    def __repr__(self) -> str:
        return f"SchemaRegistry(namespaces={list(self._schemas)!r})"


__all__ = [
    "SchemaRegistry",
    "validate_schemas",
]
