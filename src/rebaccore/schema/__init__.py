"""Namespace schemas: data model, registry, JSON loading, built-in definitions.

Defines:
- NamespaceSchema / RelationDefinition / PermissionDefinition: schema data
- UnionRewrite / IntersectionRewrite / InheritsRewrite / ComputedUserset: relation composition
- SchemaRegistry, validate_schemas(): validated lookup
- load_schemas_from_json() / load_schemas_from_file() / dump_schemas(): JSON documents
- BUILTIN_SCHEMAS, default_registry(): the nine platform namespaces
"""

from .definitions import (
    BUILTIN_SCHEMAS,
    Namespaces,
    OrganizationRole,
    default_registry,
)
from .loader import (
    dump_schemas,
    load_schemas_from_file,
    load_schemas_from_json,
    parse_schemas,
)
from .models import (
    ComputedUserset,
    InheritsRewrite,
    IntersectionRewrite,
    NamespaceSchema,
    PermissionDefinition,
    RelationDefinition,
    UnionRewrite,
    computed_userset,
    direct,
    granted_by,
    inherits_from,
    intersection_of,
    union_of,
)
from .registry import SchemaRegistry, validate_schemas

__all__ = [
    "BUILTIN_SCHEMAS",
    "ComputedUserset",
    "InheritsRewrite",
    "IntersectionRewrite",
    "NamespaceSchema",
    "Namespaces",
    "OrganizationRole",
    "PermissionDefinition",
    "RelationDefinition",
    "SchemaRegistry",
    "UnionRewrite",
    "computed_userset",
    "default_registry",
    "direct",
    "dump_schemas",
    "granted_by",
    "inherits_from",
    "intersection_of",
    "load_schemas_from_file",
    "load_schemas_from_json",
    "parse_schemas",
    "union_of",
    "validate_schemas",
]
