"""Built-in namespace schemas for the attendance/event platform.

Defines:
- ``Namespaces``: resource type names.
- ``OrganizationRole``: tenant role hierarchy within an organization.
- Nine ``NamespaceSchema`` constants and ``BUILTIN_SCHEMAS``.
- ``default_registry()``: validated registry over the built-ins.

Cross-namespace access flows through parent links: a project, client, event,
invoice, campaign, report or timesheet links to its organization via
``parent_organization``; documents, events and timesheets link to a project via
``parent_project``; projects link to a client via ``linked_client``.
"""

from __future__ import annotations

from functools import lru_cache

from .models import (
    NamespaceSchema,
    computed_userset,
    direct,
    granted_by,
    inherits_from,
    intersection_of,
    union_of,
)
from .registry import SchemaRegistry


class Namespaces:
    """Resource type names."""

    ORGANIZATION = "organization"
    PROJECT = "project"
    CLIENT = "client"
    EVENT = "event"
    DOCUMENT = "document"
    INVOICE = "invoice"
    CAMPAIGN = "campaign"
    REPORT = "report"
    TIMESHEET = "timesheet"

    ALL = frozenset({
        "organization", "project", "client", "event", "document",
        "invoice", "campaign", "report", "timesheet",
    })


class OrganizationRole:
    """Tenant roles on an organization.

    Hierarchy: ``owner`` > ``admin`` > ``manager`` > ``member``.
    A higher role holds every lower role. ``viewer`` sits outside the
    hierarchy and only grants read access.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"

    HIERARCHY = ("member", "manager", "admin", "owner")


# ── Organization ────────────────────────────────────────

ORGANIZATION = NamespaceSchema(
    name=Namespaces.ORGANIZATION,
    description="Tenant organization",
    relations={
        "owner": direct("Organization owner"),
        "admin": inherits_from("owner", description="Administrator"),
        "manager": inherits_from("admin", description="Team manager"),
        "member": inherits_from("manager", description="Regular member"),
        "viewer": direct("Read-only guest"),
    },
    permissions={
        "view": granted_by("owner", "admin", "manager", "member", "viewer", description="View the organization"),
        "edit": granted_by("owner", "admin", description="Edit organization details"),
        "delete": granted_by("owner", description="Delete the organization"),
        "manage_members": granted_by("owner", "admin", description="Add, remove and change member roles"),
        "invite_users": granted_by("owner", "admin", "manager", description="Send invitations"),
        "manage_settings": granted_by("owner", "admin", description="Change presence and notification settings"),
        "manage_billing": granted_by("owner", description="Manage subscription and invoices"),
        "view_analytics": granted_by("owner", "admin", "manager", description="View attendance analytics"),
    },
)


# ── Project ─────────────────────────────────────────────

PROJECT = NamespaceSchema(
    name=Namespaces.PROJECT,
    description="Project within an organization, optionally linked to a client",
    relations={
        "owner": direct("Project owner"),
        "editor": direct("Project contributor"),
        "viewer": direct("Read-only access"),
        "parent_organization": computed_userset("member", Namespaces.ORGANIZATION),
        "organization_admin": computed_userset("admin", Namespaces.ORGANIZATION, link="parent_organization"),
        "client_owner": computed_userset("owner", Namespaces.CLIENT, link="linked_client"),
    },
    permissions={
        "view": granted_by(
            "owner", "editor", "viewer", "parent_organization", "organization_admin", "client_owner",
        ),
        "edit": granted_by("owner", "editor", "organization_admin"),
        "delete": granted_by("owner", "organization_admin"),
        "manage_members": granted_by("owner", "organization_admin"),
        "log_time": granted_by("owner", "editor"),
    },
)


# ── Client ──────────────────────────────────────────────

CLIENT = NamespaceSchema(
    name=Namespaces.CLIENT,
    description="Customer account managed by an organization",
    relations={
        "owner": direct("Account owner"),
        "assigned_to": direct("Account manager assigned to the client"),
        "viewer": direct("Read-only access"),
        "parent_organization": computed_userset("member", Namespaces.ORGANIZATION),
        "organization_admin": computed_userset("admin", Namespaces.ORGANIZATION, link="parent_organization"),
    },
    permissions={
        "view": granted_by("owner", "assigned_to", "viewer", "parent_organization"),
        "edit": granted_by("owner", "assigned_to", "organization_admin"),
        "delete": granted_by("owner"),
        "manage_contacts": granted_by("owner", "assigned_to"),
    },
)


# ── Event ───────────────────────────────────────────────

EVENT = NamespaceSchema(
    name=Namespaces.EVENT,
    description="Scheduled event with attendance tracking",
    relations={
        "organizer": direct("Event organizer"),
        "co_organizer": inherits_from("organizer", description="Co-organizer; organizers are co-organizers"),
        "participant": direct("Invited participant"),
        "parent_organization": computed_userset("member", Namespaces.ORGANIZATION),
        "organization_manager": computed_userset(
            "manager", Namespaces.ORGANIZATION, link="parent_organization"
        ),
        "project_editor": computed_userset("editor", Namespaces.PROJECT, link="parent_project"),
    },
    permissions={
        "view": granted_by("organizer", "co_organizer", "participant", "parent_organization", "project_editor"),
        "edit": granted_by("organizer", "co_organizer", "organization_manager", "project_editor"),
        "delete": granted_by("organizer", "organization_manager"),
        "manage_participants": granted_by("organizer", "co_organizer", "organization_manager"),
        "mark_attendance": granted_by("organizer", "co_organizer", "organization_manager"),
        "check_in": granted_by("participant"),
    },
)


# ── Document ────────────────────────────────────────────

DOCUMENT = NamespaceSchema(
    name=Namespaces.DOCUMENT,
    description="File attached to a project",
    relations={
        "owner": direct("Uploader"),
        "editor": inherits_from("owner"),
        "viewer": inherits_from("editor"),
        "parent_project": computed_userset("viewer", Namespaces.PROJECT),
        "project_editor": computed_userset("editor", Namespaces.PROJECT, link="parent_project"),
    },
    permissions={
        "view": granted_by("owner", "editor", "viewer", "parent_project", "project_editor"),
        "edit": granted_by("owner", "editor", "project_editor"),
        "delete": granted_by("owner"),
        "share": granted_by("owner", "editor"),
    },
)


# ── Invoice ─────────────────────────────────────────────

INVOICE = NamespaceSchema(
    name=Namespaces.INVOICE,
    description="Billing document issued by an organization",
    relations={
        "issuer": direct("Who issued the invoice"),
        "approver": direct("Designated approver"),
        "viewer": direct("Read-only access"),
        "parent_organization": computed_userset("member", Namespaces.ORGANIZATION),
        "organization_admin": computed_userset("admin", Namespaces.ORGANIZATION, link="parent_organization"),
        "verified_approver": intersection_of(
            "approver", "parent_organization", description="Approver who is still a member of the organization"
        ),
    },
    permissions={
        "view": granted_by("issuer", "approver", "viewer", "organization_admin"),
        "edit": granted_by("issuer", "organization_admin"),
        "approve": granted_by("verified_approver"),
        "pay": granted_by("organization_admin"),
        "delete": granted_by("organization_admin"),
    },
)


# ── Campaign ────────────────────────────────────────────

CAMPAIGN = NamespaceSchema(
    name=Namespaces.CAMPAIGN,
    description="Email/notification campaign",
    relations={
        "owner": direct("Campaign owner"),
        "editor": inherits_from("owner"),
        "viewer": direct("Read-only access"),
        "parent_organization": computed_userset("member", Namespaces.ORGANIZATION),
        "organization_manager": computed_userset(
            "manager", Namespaces.ORGANIZATION, link="parent_organization"
        ),
        "publisher": union_of("editor", "organization_manager", description="May send the campaign"),
    },
    permissions={
        "view": granted_by("owner", "editor", "viewer", "parent_organization"),
        "edit": granted_by("owner", "editor"),
        "send": granted_by("publisher"),
        "delete": granted_by("owner"),
    },
)


# ── Report ──────────────────────────────────────────────

REPORT = NamespaceSchema(
    name=Namespaces.REPORT,
    description="Generated attendance report",
    relations={
        "owner": direct("Report author"),
        "recipient": direct("Scheduled recipient"),
        "viewer": direct("Read-only access"),
        "organization_manager": computed_userset(
            "manager", Namespaces.ORGANIZATION, link="parent_organization"
        ),
    },
    permissions={
        "view": granted_by("owner", "recipient", "viewer", "organization_manager"),
        "edit": granted_by("owner"),
        "schedule": granted_by("owner", "organization_manager"),
        "export": granted_by("owner", "recipient", "organization_manager"),
        "delete": granted_by("owner"),
    },
)


# ── Timesheet ───────────────────────────────────────────

TIMESHEET = NamespaceSchema(
    name=Namespaces.TIMESHEET,
    description="Employee timesheet for a period",
    relations={
        "employee": direct("Timesheet owner"),
        "manager": direct("Direct line manager"),
        "organization_manager": computed_userset(
            "manager", Namespaces.ORGANIZATION, link="parent_organization"
        ),
        "organization_admin": computed_userset("admin", Namespaces.ORGANIZATION, link="parent_organization"),
        "project_owner": computed_userset("owner", Namespaces.PROJECT, link="parent_project"),
        "reviewer": union_of("manager", "organization_manager", "project_owner"),
    },
    permissions={
        "view": granted_by("employee", "manager", "organization_manager", "organization_admin", "project_owner"),
        "edit": granted_by("employee"),
        "submit": granted_by("employee"),
        "approve": granted_by("reviewer"),
        "reject": granted_by("reviewer"),
        "delete": granted_by("organization_admin"),
    },
)


BUILTIN_SCHEMAS: tuple[NamespaceSchema, ...] = (
    ORGANIZATION,
    PROJECT,
    CLIENT,
    EVENT,
    DOCUMENT,
    INVOICE,
    CAMPAIGN,
    REPORT,
    TIMESHEET,
)


@lru_cache(maxsize=1)
def default_registry() -> SchemaRegistry:
    """Build (once) and return the registry over ``BUILTIN_SCHEMAS``."""
    return SchemaRegistry.build(BUILTIN_SCHEMAS)


__all__ = [
    "BUILTIN_SCHEMAS",
    "CAMPAIGN",
    "CLIENT",
    "DOCUMENT",
    "EVENT",
    "INVOICE",
    "Namespaces",
    "ORGANIZATION",
    "OrganizationRole",
    "PROJECT",
    "REPORT",
    "TIMESHEET",
    "default_registry",
]
