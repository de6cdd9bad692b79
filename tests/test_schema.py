"""Tests for namespace schema models, validation and the built-in registry."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from rebaccore import (
    BUILTIN_SCHEMAS,
    ComputedUserset,
    InheritsRewrite,
    NamespaceSchema,
    Namespaces,
    OrganizationRole,
    PermissionDefinition,
    RelationDefinition,
    SchemaRegistry,
    SchemaValidationError,
    UnionRewrite,
    UnknownNamespaceError,
    UnknownPermissionError,
    default_registry,
    validate_schemas,
)
from rebaccore.schema import (
    computed_userset,
    direct,
    granted_by,
    inherits_from,
    intersection_of,
    union_of,
)


def _ns(name: str, relations: dict, permissions: dict) -> NamespaceSchema:
    return NamespaceSchema(name=name, relations=relations, permissions=permissions)


class TestRelationDefinition:
    """Tests for relation models and rewrite lifting."""

    def test_direct_has_no_rewrite(self) -> None:
        """Test a plain relation carries no rewrite."""
        assert direct().rewrite is None
        assert direct().referenced_relations == ()

    def test_flat_union_key_is_lifted(self) -> None:
        """Test the flat 'union' key becomes a tagged rewrite."""
        relation = RelationDefinition.model_validate({"union": ["editor", "owner"]})
        assert isinstance(relation.rewrite, UnionRewrite)
        assert relation.rewrite.relations == ("editor", "owner")

    def test_flat_inherits_from_key_is_lifted(self) -> None:
        """Test the camelCase 'inheritsFrom' key is accepted."""
        relation = RelationDefinition.model_validate({"inheritsFrom": ["owner"]})
        assert isinstance(relation.rewrite, InheritsRewrite)
        assert relation.referenced_relations == ("owner",)

    def test_flat_computed_userset_key_is_lifted(self) -> None:
        """Test the 'computedUserset' key becomes a ComputedUserset."""
        relation = RelationDefinition.model_validate(
            {"computedUserset": {"relation": "member", "namespace": "organization"}}
        )
        assert isinstance(relation.rewrite, ComputedUserset)
        assert relation.rewrite.link is None
        assert relation.referenced_relations == ()

    def test_tagged_rewrite_is_accepted(self) -> None:
        """Test the tagged form written by the loader round-trips."""
        relation = RelationDefinition.model_validate(
            {"rewrite": {"kind": "intersection", "relations": ["a", "b"]}}
        )
        assert relation.rewrite.kind == "intersection"

    def test_two_compositions_rejected(self) -> None:
        """Test a relation may not declare both union and intersection."""
        with pytest.raises(ValidationError, match="at most one composition"):
            RelationDefinition.model_validate({"union": ["a"], "intersection": ["b"]})

    def test_flat_key_plus_rewrite_rejected(self) -> None:
        """Test a flat key cannot be combined with an explicit rewrite."""
        with pytest.raises(ValidationError, match="at most one composition"):
            RelationDefinition.model_validate(
                {"union": ["a"], "rewrite": {"kind": "union", "relations": ["b"]}}
            )

    def test_empty_union_rejected(self) -> None:
        """Test a union needs at least one member."""
        with pytest.raises(ValidationError):
            RelationDefinition.model_validate({"union": []})

    @pytest.mark.parametrize(
        "document",
        [
            {"union": "owner"},
            {"intersection": 5},
            {"inheritsFrom": "owner"},
            {"computedUserset": 7},
            {"computedUserset": ["member", "organization"]},
        ],
    )
    def test_malformed_flat_composition_rejected(self, document: dict) -> None:
        """Test scalar or wrongly shaped composition values fail validation."""
        with pytest.raises(ValidationError):
            RelationDefinition.model_validate(document)

    def test_members_deduplicated(self) -> None:
        """Test duplicate rewrite members collapse in declared order."""
        relation = union_of("b", "a", "b")
        assert relation.rewrite.relations == ("b", "a")

    def test_unknown_field_rejected(self) -> None:
        """Test typos in relation documents are not silently ignored."""
        with pytest.raises(ValidationError):
            RelationDefinition.model_validate({"unoin": ["a"]})

    def test_builders(self) -> None:
        """Test builder helpers produce the matching rewrite kinds."""
        assert intersection_of("a", "b").rewrite.kind == "intersection"
        assert inherits_from("a").rewrite.kind == "inherits"
        rel = computed_userset("admin", "organization", link="parent_organization")
        assert rel.rewrite.kind == "computed_userset"
        assert rel.rewrite.link == "parent_organization"


class TestPermissionDefinition:
    """Tests for PermissionDefinition."""

    def test_granted_by_alias(self) -> None:
        """Test the document alias 'grantedBy' populates granted_by."""
        perm = PermissionDefinition.model_validate({"grantedBy": ["owner", "admin"]})
        assert perm.granted_by == ("owner", "admin")

    def test_empty_granted_by_rejected(self) -> None:
        """Test a permission must be granted by at least one relation."""
        with pytest.raises(ValidationError):
            PermissionDefinition(granted_by=())

    def test_granted_by_deduplicated(self) -> None:
        """Test duplicate grantedBy entries collapse."""
        assert granted_by("owner", "owner", "admin").granted_by == ("owner", "admin")

    def test_models_are_frozen(self) -> None:
        """Test schema models cannot be mutated after construction."""
        schema = _ns("doc", {"owner": direct()}, {"view": granted_by("owner")})
        with pytest.raises(ValidationError):
            schema.name = "other"

    def test_schema_mappings_are_read_only(self) -> None:
        """Test relations and permissions of a registered schema cannot be edited in place."""
        schema = default_registry().get_schema("organization")
        with pytest.raises(TypeError):
            schema.permissions["view"] = granted_by("viewer")  # type: ignore[index]
        with pytest.raises(TypeError):
            del schema.relations["owner"]  # type: ignore[attr-defined]
        assert schema.permissions["view"].granted_by[0] == "owner"


class TestValidateSchemas:
    """Tests for cross-reference validation."""

    def test_valid_set_has_no_issues(self) -> None:
        """Test a consistent pair of namespaces validates cleanly."""
        schemas = [
            _ns("doc", {"parent": computed_userset("owner", "folder")}, {"view": granted_by("parent")}),
            _ns("folder", {"owner": direct()}, {"view": granted_by("owner")}),
        ]
        assert validate_schemas(schemas) == []

    def test_granted_by_unknown_relation(self) -> None:
        """Test grantedBy naming a missing relation is reported."""
        issues = validate_schemas([_ns("doc", {"owner": direct()}, {"view": granted_by("ghost")})])
        assert len(issues) == 1
        assert issues[0].field == "permissions.view.grantedBy"
        assert "ghost" in issues[0].message

    def test_granted_by_permission_name(self) -> None:
        """Test grantedBy naming a permission is reported as such."""
        issues = validate_schemas(
            [_ns("doc", {"owner": direct()}, {"view": granted_by("edit"), "edit": granted_by("owner")})]
        )
        assert len(issues) == 1
        assert "is a permission" in issues[0].message

    def test_computed_userset_unknown_namespace(self) -> None:
        """Test computedUserset into an unregistered namespace is reported."""
        issues = validate_schemas(
            [_ns("doc", {"parent": computed_userset("owner", "folder")}, {"view": granted_by("parent")})]
        )
        assert [issue.field for issue in issues] == ["relations.parent.computedUserset.namespace"]

    def test_computed_userset_unknown_relation(self) -> None:
        """Test computedUserset naming a missing target relation is reported."""
        issues = validate_schemas(
            [
                _ns("doc", {"parent": computed_userset("admin", "folder")}, {"view": granted_by("parent")}),
                _ns("folder", {"owner": direct()}, {"view": granted_by("owner")}),
            ]
        )
        assert [issue.field for issue in issues] == ["relations.parent.computedUserset.relation"]

    def test_rewrite_unknown_member(self) -> None:
        """Test union members must exist in the namespace."""
        issues = validate_schemas(
            [_ns("doc", {"owner": direct(), "editor": union_of("owner", "ghost")}, {"view": granted_by("editor")})]
        )
        assert len(issues) == 1
        assert issues[0].field == "relations.editor.union"

    def test_rewrite_self_reference(self) -> None:
        """Test a relation may not list itself."""
        issues = validate_schemas(
            [_ns("doc", {"owner": inherits_from("owner")}, {"view": granted_by("owner")})]
        )
        assert len(issues) == 1
        assert issues[0].message == "relation references itself"
        assert issues[0].field == "relations.owner.inherits"

    def test_duplicate_namespace(self) -> None:
        """Test two namespaces with the same name are reported."""
        schema = _ns("doc", {"owner": direct()}, {"view": granted_by("owner")})
        issues = validate_schemas([schema, schema])
        assert [(issue.namespace, issue.field) for issue in issues] == [("doc", "name")]

    def test_explicit_permissions_must_match_granted_by(self) -> None:
        """Test a relation's declared permissions agree with grantedBy."""
        relations = {"owner": RelationDefinition(permissions=frozenset({"view"}))}
        permissions = {"view": granted_by("owner"), "delete": granted_by("owner")}
        issues = validate_schemas([_ns("doc", relations, permissions)])
        assert len(issues) == 1
        assert issues[0].field == "relations.owner.permissions"
        assert "declares" in issues[0].message

    def test_explicit_permissions_consistent(self) -> None:
        """Test matching declared permissions pass."""
        relations = {"owner": RelationDefinition(permissions=frozenset({"view", "delete"}))}
        permissions = {"view": granted_by("owner"), "delete": granted_by("owner")}
        assert validate_schemas([_ns("doc", relations, permissions)]) == []

    def test_all_issues_collected(self) -> None:
        """Test validation reports every problem, not just the first."""
        issues = validate_schemas(
            [
                _ns(
                    "doc",
                    {"owner": direct(), "editor": union_of("ghost"), "parent": computed_userset("x", "nowhere")},
                    {"view": granted_by("phantom")},
                )
            ]
        )
        assert len(issues) == 3


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_build_raises_with_issues(self) -> None:
        """Test build refuses an invalid schema set."""
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaRegistry.build([_ns("doc", {"owner": direct()}, {"view": granted_by("ghost")})])
        assert len(exc_info.value.issues) == 1
        assert exc_info.value.code == "SCHEMA_VALIDATION_ERROR"
        assert "doc.permissions.view.grantedBy" in str(exc_info.value)

    def test_forward_references_allowed(self) -> None:
        """Test namespaces may reference ones declared later."""
        registry = SchemaRegistry.build(
            [
                _ns("doc", {"parent": computed_userset("owner", "folder")}, {"view": granted_by("parent")}),
                _ns("folder", {"owner": direct()}, {"view": granted_by("owner")}),
            ]
        )
        assert registry.namespaces == ("doc", "folder")
        assert "folder" in registry
        assert len(registry) == 2

    def test_unknown_namespace_raises(self, registry: SchemaRegistry) -> None:
        """Test looking up a missing namespace raises."""
        with pytest.raises(UnknownNamespaceError) as exc_info:
            registry.get_schema("spaceship")
        assert exc_info.value.namespace == "spaceship"

    def test_unknown_permission_raises(self, registry: SchemaRegistry) -> None:
        """Test looking up a missing permission raises."""
        with pytest.raises(UnknownPermissionError):
            registry.get_permission("organization", "launch")

    def test_relations_granting(self, registry: SchemaRegistry) -> None:
        """Test grantedBy lookup for a built-in permission."""
        assert registry.relations_granting("organization", "edit") == ("owner", "admin")

    def test_permissions_granted_by_derived(self, registry: SchemaRegistry) -> None:
        """Test relation permissions are derived from grantedBy lists."""
        assert registry.permissions_granted_by("organization", "owner") == frozenset(
            {
                "view",
                "edit",
                "delete",
                "manage_members",
                "invite_users",
                "manage_settings",
                "manage_billing",
                "view_analytics",
            }
        )
        assert registry.permissions_granted_by("organization", "viewer") == frozenset({"view"})
        assert registry.permissions_granted_by("organization", "nobody") == frozenset()


class TestBuiltinSchemas:
    """Tests for the built-in namespaces."""

    def test_builtin_set_is_valid(self) -> None:
        """Test the shipped schemas validate without issues."""
        assert validate_schemas(BUILTIN_SCHEMAS) == []

    def test_default_registry_covers_all_namespaces(self) -> None:
        """Test every declared namespace is registered."""
        registry = default_registry()
        assert set(registry.namespaces) == set(Namespaces.ALL)

    def test_default_registry_is_cached(self) -> None:
        """Test the default registry is built once."""
        assert default_registry() is default_registry()

    def test_organization_role_hierarchy(self) -> None:
        """Test each organization role inherits from the next stronger one."""
        schema = default_registry().get_schema("organization")
        for weaker, stronger in zip(OrganizationRole.HIERARCHY, OrganizationRole.HIERARCHY[1:]):
            assert schema.relations[weaker].referenced_relations == (stronger,)

    def test_no_relation_grants_unknown_permission(self) -> None:
        """Test grantedBy lists only reference declared relations."""
        for schema in BUILTIN_SCHEMAS:
            for perm in schema.permissions.values():
                for relation in perm.granted_by:
                    assert relation in schema.relations
