"""Centralized RBAC policies for API resources."""

from dataclasses import dataclass

from app.core.permissions import Capability as C


@dataclass(frozen=True)
class ResourcePolicy:
    """Default capability + per-action overrides for a resource."""

    default: C | None
    actions: dict[str, C]


POLICIES: dict[str, ResourcePolicy] = {
    "investigators": ResourcePolicy(
        default=C.INVESTIGATORS_MODERATE,
        actions={
            "approve": C.INVESTIGATORS_MODERATE,
            "reject": C.INVESTIGATORS_MODERATE,
            "delete": C.INVESTIGATORS_MODERATE,
        },
    ),
    "customers": ResourcePolicy(
        default=C.CUSTOMERS_MODERATE,
        actions={"delete": C.CUSTOMERS_MODERATE},
    ),
    "admin_requests": ResourcePolicy(
        default=C.REQUESTS_MANAGE,
        actions={
            "assign": C.REQUESTS_MANAGE,
            "propose_match": C.REQUESTS_MANAGE,
            "cancel": C.REQUESTS_MANAGE,
            "complete": C.REQUESTS_MANAGE,
        },
    ),
    "investigation_requests": ResourcePolicy(
        default=C.REQUEST_READ,
        actions={"create": C.REQUEST_CREATE},
    ),
    "audit": ResourcePolicy(default=C.AUDIT_READ, actions={}),
}


def get_policy(resource: str) -> ResourcePolicy:
    """Fetch a resource policy or raise KeyError."""
    return POLICIES[resource]
