from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
from starlette.requests import Request

from valuation.models.audit_log import AuditLogRecord
from valuation.policies.rbac import Principal


class AuditAction:
    # Record lifecycle
    VALUATION_CREATED = "VALUATION_CREATED"
    VALUATION_SAVED = "VALUATION_SAVED"

    # Manager review
    VALUATION_APPROVED = "VALUATION_APPROVED"
    VALUATION_REJECTED = "VALUATION_REJECTED"
    VALUATION_REWORK_REQUESTED = "VALUATION_REWORK_REQUESTED"

    # Attachments / options
    ATTACHMENT_UPLOADED = "ATTACHMENT_UPLOADED"
    OPTION_ADDED = "OPTION_ADDED"


def canonical_dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def _payload_hash(payload: Dict[str, Any]) -> str:
    return hashlib.sha256(canonical_dumps(payload).encode("utf-8")).hexdigest()


def audit_event(
    db: Session,
    *,
    request: Request,
    principal: Principal,
    record_id: Optional[str],
    action: str,
    payload_summary: Dict[str, Any],
    status: str = "ok",
) -> AuditLogRecord:
    """
    Append-only audit record insert.

    payload_summary MUST be safe: field names and counts, never client contact data.
    """
    rid = getattr(request.state, "request_id", None) or "missing"

    row = AuditLogRecord(
        request_id=rid,
        route=str(request.url.path),
        method=request.method,
        actor_username=principal.username,
        actor_role=principal.role.value,
        client_id=principal.client_id,
        record_id=str(record_id) if record_id else None,
        action=action,
        status=status,
        payload_hash=_payload_hash(payload_summary),
        payload_summary_json=payload_summary,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
