# valuation/policies/status_policy.py
from __future__ import annotations

from typing import Optional, Union

from valuation.core.status_graph import (
    APPROVABLE_STATUSES,
    APPROVER_ROLES,
    EDITABLE_STATUSES,
)
from valuation.core.types import ActorRole, ValuationStatus

RoleLike = Union[ActorRole, str, None]
StatusLike = Union[ValuationStatus, str, None]


def _role(raw: RoleLike) -> Optional[ActorRole]:
    if raw is None:
        return None
    try:
        return ActorRole(raw)
    except ValueError:
        return None


def _status(raw: StatusLike) -> Optional[ValuationStatus]:
    if raw is None:
        return None
    try:
        return ValuationStatus(raw)
    except ValueError:
        return None


def can_edit(role: RoleLike, status: StatusLike) -> bool:
    """
    True iff the role may edit (and therefore save) a record in this status.
    Anonymous callers and unknown roles/statuses never edit.
    """
    r, s = _role(role), _status(status)
    if r is None or s is None:
        return False
    return s in EDITABLE_STATUSES.get(r, frozenset())


def can_approve(role: RoleLike, status: StatusLike) -> bool:
    """True iff the role may approve / reject / request rework in this status."""
    r, s = _role(role), _status(status)
    if r is None or s is None:
        return False
    return r in APPROVER_ROLES and s in APPROVABLE_STATUSES


def require_edit(role: RoleLike, status: StatusLike) -> None:
    if not can_edit(role, status):
        raise PermissionError(
            f"Role {_label(role)} may not edit a valuation in status {_label(status, 'unknown')}."
        )


def require_approve(role: RoleLike, status: StatusLike) -> None:
    if not can_approve(role, status):
        raise PermissionError(
            f"Role {_label(role)} may not review a valuation in status {_label(status, 'unknown')}."
        )


def _label(raw, missing: str = "anonymous") -> str:
    if raw is None:
        return missing
    return getattr(raw, "value", str(raw))
