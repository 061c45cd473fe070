# valuation/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Set

from valuation.core.types import ActorRole


@dataclass(frozen=True)
class Principal:
    username: str
    client_id: str
    role: ActorRole
    display_name: str


# --- Core action constants ---
ACTION_CREATE_VALUATION = "CREATE_VALUATION"
ACTION_UPLOAD_ATTACHMENT = "UPLOAD_ATTACHMENT"
ACTION_MANAGE_OPTIONS = "MANAGE_OPTIONS"
ACTION_VIEW_ALL_VALUATIONS = "VIEW_ALL_VALUATIONS"


def allowed_actions(role: ActorRole) -> Set[str]:
    """
    Pure RBAC: which status-independent actions a role may attempt.
    Status-dependent rules (edit / approve) live in status_policy.
    """

    if role == ActorRole.user:
        return {ACTION_CREATE_VALUATION, ACTION_UPLOAD_ATTACHMENT}

    if role == ActorRole.manager:
        return {
            ACTION_CREATE_VALUATION,
            ACTION_UPLOAD_ATTACHMENT,
            ACTION_MANAGE_OPTIONS,
            ACTION_VIEW_ALL_VALUATIONS,
        }

    if role == ActorRole.admin:
        return {
            ACTION_CREATE_VALUATION,
            ACTION_UPLOAD_ATTACHMENT,
            ACTION_MANAGE_OPTIONS,
            ACTION_VIEW_ALL_VALUATIONS,
        }

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise PermissionError(
            f"Role {principal.role.value} not permitted for action {action}."
        )
