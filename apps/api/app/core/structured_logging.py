"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    actor_id: int | None = None,
    target_type: str | None = None,
    target_id: int | None = None,
    action: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (ids only, never emails or names)."""
    context: dict[str, Any] = {}
    if actor_id is not None:
        context["actor_id"] = actor_id
    if target_type:
        context["target_type"] = target_type
    if target_id is not None:
        context["target_id"] = target_id
    if action:
        context["action"] = action
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
