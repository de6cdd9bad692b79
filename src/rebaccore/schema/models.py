"""Namespace schema data model.

Provides:
- ``NamespaceSchema``: one resource type: its relations and permissions.
- ``RelationDefinition``: a relation, optionally composed through a rewrite.
- ``PermissionDefinition``: a permission granted by any of several relations.
- Rewrite variants: ``UnionRewrite``, ``IntersectionRewrite``,
  ``InheritsRewrite``, ``ComputedUserset``.

A relation carries at most one rewrite. Documents written in the flat shape
(``union``, ``intersection``, ``inheritsFrom``, ``computedUserset`` keys on the
relation itself) are lifted into the tagged ``rewrite`` field on load, and
declaring two of them at once is rejected.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


class _SchemaModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


def _dedupe(names: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(names))


class UnionRewrite(_SchemaModel):
    """Holds if ANY listed relation on the same object holds."""

    kind: Literal["union"] = "union"
    relations: tuple[str, ...] = Field(min_length=1)

    @field_validator("relations")
    @classmethod
    def dedupe_relations(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(v)


class IntersectionRewrite(_SchemaModel):
    """Holds only if ALL listed relations on the same object hold."""

    kind: Literal["intersection"] = "intersection"
    relations: tuple[str, ...] = Field(min_length=1)

    @field_validator("relations")
    @classmethod
    def dedupe_relations(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(v)


class InheritsRewrite(_SchemaModel):
    """Holders of any listed (more specific) relation also hold this one.

    Same OR semantics as ``UnionRewrite``; kept distinct so role
    hierarchies read as hierarchies.
    """

    kind: Literal["inherits"] = "inherits"
    relations: tuple[str, ...] = Field(min_length=1)

    @field_validator("relations")
    @classmethod
    def dedupe_relations(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(v)


class ComputedUserset(_SchemaModel):
    """Cross-namespace indirection through a parent link.

    A subject holds the declaring relation on object O when O's parent
    (found via ``link``) lives in ``namespace`` and the subject holds
    ``relation`` on that parent.

    ``link`` defaults to the name of the declaring relation, e.g. relation
    ``parent_organization`` follows the ``parent_organization`` link.
    """

    kind: Literal["computed_userset"] = "computed_userset"
    relation: str = Field(min_length=1)
    namespace: str = Field(min_length=1)
    link: Optional[str] = None


RelationRewrite = Annotated[
    Union[UnionRewrite, IntersectionRewrite, InheritsRewrite, ComputedUserset],
    Field(discriminator="kind"),
]

# Flat document keys → rewrite kind
_FLAT_REWRITE_KEYS = (
    ("union", "union"),
    ("intersection", "intersection"),
    ("inheritsFrom", "inherits"),
    ("inherits_from", "inherits"),
    ("computedUserset", "computed_userset"),
    ("computed_userset", "computed_userset"),
)


class RelationDefinition(_SchemaModel):
    """A relation within a namespace.

    ``permissions`` is optional: when omitted, the registry derives it from
    the namespace's ``grantedBy`` lists. When present, the registry checks it
    against that derivation and refuses mismatches.
    """

    description: str = ""
    permissions: Optional[frozenset[str]] = None
    rewrite: Optional[RelationRewrite] = None

    @model_validator(mode="before")
    @classmethod
    def lift_flat_rewrite(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        found: list[tuple[str, str, Any]] = []
        for key, kind in _FLAT_REWRITE_KEYS:
            if key in data:
                value = data.pop(key)
                if value is not None:
                    found.append((key, kind, value))
        if not found:
            return data
        if len(found) > 1 or data.get("rewrite") is not None:
            keys = [key for key, _, _ in found]
            if data.get("rewrite") is not None:
                keys.append("rewrite")
            raise ValueError(f"a relation may declare at most one composition, got {keys}")

        key, kind, value = found[0]
        if isinstance(value, BaseModel):
            data["rewrite"] = value
        elif kind == "computed_userset":
            if not isinstance(value, dict):
                raise ValueError(f"{key} must be an object with relation and namespace, got {type(value).__name__}")
            data["rewrite"] = {"kind": kind, **value}
        else:
            # Left uncoerced so the field rejects scalars and bare strings.
            data["rewrite"] = {"kind": kind, "relations": value}
        return data

    @property
    def referenced_relations(self) -> tuple[str, ...]:
        """Same-namespace relation names this relation's rewrite depends on."""
        if self.rewrite is None or isinstance(self.rewrite, ComputedUserset):
            return ()
        return self.rewrite.relations


class PermissionDefinition(_SchemaModel):
    """A permission: granted if the subject holds ANY relation in ``granted_by``."""

    description: str = ""
    granted_by: tuple[str, ...] = Field(alias="grantedBy", min_length=1)

    @field_validator("granted_by")
    @classmethod
    def dedupe_granted_by(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(v)


class NamespaceSchema(_SchemaModel):
    """Static declaration of one resource type."""

    name: str = Field(min_length=1)
    description: str = ""
    relations: Mapping[str, RelationDefinition]
    permissions: Mapping[str, PermissionDefinition]

    @field_validator("relations", "permissions", mode="after")
    @classmethod
    def freeze_mapping(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("relations", "permissions", mode="wrap")
    def dump_mapping(self, value: Mapping[str, Any], handler: Any) -> Any:
        return handler(dict(value))

    def get_relation(self, name: str) -> RelationDefinition | None:
        return self.relations.get(name)

    def get_permission(self, name: str) -> PermissionDefinition | None:
        return self.permissions.get(name)


# ── Builders ────────────────────────────────────────────


def direct(description: str = "") -> RelationDefinition:
    """A relation satisfied only by a stored tuple."""
    return RelationDefinition(description=description)


def union_of(*relations: str, description: str = "") -> RelationDefinition:
    return RelationDefinition(description=description, rewrite=UnionRewrite(relations=relations))


def intersection_of(*relations: str, description: str = "") -> RelationDefinition:
    return RelationDefinition(description=description, rewrite=IntersectionRewrite(relations=relations))


def inherits_from(*relations: str, description: str = "") -> RelationDefinition:
    return RelationDefinition(description=description, rewrite=InheritsRewrite(relations=relations))


def computed_userset(
    relation: str,
    namespace: str,
    *,
    link: str | None = None,
    description: str = "",
) -> RelationDefinition:
    """A relation satisfied by holding ``relation`` on the linked parent in ``namespace``."""
    return RelationDefinition(
        description=description,
        rewrite=ComputedUserset(relation=relation, namespace=namespace, link=link),
    )


def granted_by(*relations: str, description: str = "") -> PermissionDefinition:
    return PermissionDefinition(description=description, granted_by=relations)


__all__ = [
    "ComputedUserset",
    "InheritsRewrite",
    "IntersectionRewrite",
    "NamespaceSchema",
    "PermissionDefinition",
    "RelationDefinition",
    "RelationRewrite",
    "UnionRewrite",
    "computed_userset",
    "direct",
    "granted_by",
    "inherits_from",
    "intersection_of",
    "union_of",
]
