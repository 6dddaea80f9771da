"""Capability registry with metadata for UI and validation.

All capabilities are defined here with labels, descriptions, and categories,
together with the static role → capability table consumed by the
capability gate. Routes never check roles directly.

ADMIN: always holds every registered capability.
"""

from dataclasses import dataclass
from enum import Enum

from app.db.enums import Role


class CapabilityCategory(str, Enum):
    """Capability categories for UI grouping."""
    REQUESTS = "Investigation Requests"
    INVESTIGATORS = "Investigators"
    MODERATION = "Moderation"
    SITE = "Site"


class Capability(str, Enum):
    """Capability keys checked by the gate."""
    REQUEST_CREATE = "investigation.request.create"
    REQUEST_READ = "investigation.request.read"
    REQUESTS_MANAGE = "investigation.requests.manage"
    INVESTIGATOR_PROFILE_READ = "investigator.profile.read"
    INVESTIGATORS_MODERATE = "investigators.moderate"
    CUSTOMERS_MODERATE = "customers.moderate"
    AUDIT_READ = "audit.read"
    SITE_CONTENT_MANAGE = "site.content.manage"


@dataclass(frozen=True)
class CapabilityDef:
    """Capability definition with metadata."""
    key: Capability
    label: str
    description: str
    category: CapabilityCategory


# =============================================================================
# Capability Registry
# =============================================================================

CAPABILITY_REGISTRY: dict[Capability, CapabilityDef] = {
    Capability.REQUEST_CREATE: CapabilityDef(
        Capability.REQUEST_CREATE, "Create Requests",
        "Submit a new investigation request", CapabilityCategory.REQUESTS
    ),
    Capability.REQUEST_READ: CapabilityDef(
        Capability.REQUEST_READ, "View Requests",
        "See own or assigned investigation requests", CapabilityCategory.REQUESTS
    ),
    Capability.REQUESTS_MANAGE: CapabilityDef(
        Capability.REQUESTS_MANAGE, "Manage Requests",
        "Assign, match, cancel and complete any request", CapabilityCategory.MODERATION
    ),
    Capability.INVESTIGATOR_PROFILE_READ: CapabilityDef(
        Capability.INVESTIGATOR_PROFILE_READ, "View Investigator Profile",
        "Read investigator profile details", CapabilityCategory.INVESTIGATORS
    ),
    Capability.INVESTIGATORS_MODERATE: CapabilityDef(
        Capability.INVESTIGATORS_MODERATE, "Moderate Investigators",
        "Approve, reject and delete investigator accounts", CapabilityCategory.MODERATION
    ),
    Capability.CUSTOMERS_MODERATE: CapabilityDef(
        Capability.CUSTOMERS_MODERATE, "Moderate Customers",
        "Delete customer accounts", CapabilityCategory.MODERATION
    ),
    Capability.AUDIT_READ: CapabilityDef(
        Capability.AUDIT_READ, "View Audit Log",
        "Access the moderation audit trail", CapabilityCategory.MODERATION
    ),
    Capability.SITE_CONTENT_MANAGE: CapabilityDef(
        Capability.SITE_CONTENT_MANAGE, "Manage Site Content",
        "Edit banners and scenarios", CapabilityCategory.SITE
    ),
}


# =============================================================================
# Role Capabilities
# =============================================================================

ROLE_CAPABILITIES: dict[Role, frozenset[str]] = {
    Role.CUSTOMER: frozenset({
        Capability.REQUEST_CREATE.value,
        Capability.REQUEST_READ.value,
    }),
    Role.INVESTIGATOR: frozenset({
        Capability.REQUEST_READ.value,
        Capability.INVESTIGATOR_PROFILE_READ.value,
    }),
    Role.ADMIN: frozenset(c.value for c in CAPABILITY_REGISTRY),  # All capabilities
}

MODERATION_CAPABILITIES = frozenset({
    Capability.INVESTIGATORS_MODERATE.value,
    Capability.CUSTOMERS_MODERATE.value,
    Capability.REQUESTS_MANAGE.value,
})


# =============================================================================
# Helper Functions
# =============================================================================

def get_all_capabilities() -> list[CapabilityDef]:
    """Get all capabilities sorted by category."""
    return sorted(CAPABILITY_REGISTRY.values(), key=lambda c: (c.category.value, c.key.value))


def is_valid_capability(key: str) -> bool:
    """Check if capability key exists."""
    return key in Capability._value2member_map_


def get_role_capabilities(role: Role | str) -> frozenset[str]:
    """Get the capability set for a role (empty for unknown roles)."""
    if not isinstance(role, Role):
        if not Role.has_value(role):
            return frozenset()
        role = Role(role)
    return ROLE_CAPABILITIES.get(role, frozenset())


def has_capability(role: Role | str, capability: str) -> bool:
    return capability in get_role_capabilities(role)
