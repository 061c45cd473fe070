# valuation/services/valuation_repository.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from valuation.core.errors import NotFoundError, UpstreamError
from valuation.core.record import (
    Attachment,
    LocalAttachment,
    PersistedAttachment,
    ValuationRecord,
)
from valuation.core.types import AttachmentCategory, ValuationStatus
from valuation.models.valuation_report import ValuationReport
from valuation.policies.rbac import ACTION_VIEW_ALL_VALUATIONS, Principal, allowed_actions
from valuation.services.field_calculator import recompute_derived

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


def parse_record_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise ValueError("Valuation id must be a UUID.")


# ─────────────────────────────────────────────
# ROW <-> RECORD MAPPING
# ─────────────────────────────────────────────


def _attachment_to_json(att: PersistedAttachment) -> Dict[str, Any]:
    return {"url": att.url, "fileName": att.file_name, "size": att.size, "label": att.label}


def _attachments_to_json(attachments: Mapping[AttachmentCategory, tuple]) -> Dict[str, List[Dict[str, Any]]]:
    out: Dict[str, List[Dict[str, Any]]] = {}
    for category, items in attachments.items():
        for att in items:
            if isinstance(att, LocalAttachment):
                raise ValueError("Attachments must be uploaded before the record is persisted.")
        out[AttachmentCategory(category).value] = [_attachment_to_json(a) for a in items]
    return out


def _attachments_from_json(raw: Optional[Dict[str, Any]]) -> Dict[AttachmentCategory, tuple]:
    out: Dict[AttachmentCategory, tuple] = {}
    for category, items in (raw or {}).items():
        parsed: List[Attachment] = [
            PersistedAttachment(
                url=item["url"],
                file_name=item.get("fileName") or "",
                size=int(item.get("size") or 0),
                label=item.get("label"),
            )
            for item in items or []
            if item.get("url")
        ]
        out[AttachmentCategory(category)] = tuple(parsed)
    return out


def to_record(row: ValuationReport) -> ValuationRecord:
    return ValuationRecord(
        id=str(row.id),
        client_id=row.client_id,
        created_by=row.created_by,
        status=ValuationStatus(row.status),
        fields={k: "" if v is None else str(v) for k, v in (row.fields_json or {}).items()},
        attachments=_attachments_from_json(row.attachments_json),
        manager_feedback=row.manager_feedback or "",
        last_updated_by=row.last_updated_by,
        last_updated_by_role=row.last_updated_by_role,
        last_updated_at=row.last_updated_at,
        created_at=row.created_at,
        persisted=True,
    )


class ValuationRepository:
    """
    SQLAlchemy-backed store for valuation records.

    Guarantees:
    - Derived fields are recomputed on every write
    - A record carrying un-uploaded attachments is never written
    - Reads are scoped to the principal's client; plain users see only their own records
    """

    def _scoped(self, principal: Principal):
        stmt = select(ValuationReport).where(ValuationReport.client_id == principal.client_id)
        if ACTION_VIEW_ALL_VALUATIONS not in allowed_actions(principal.role):
            stmt = stmt.where(ValuationReport.created_by == principal.username)
        return stmt

    def _get_row(self, db: Session, record_id: str, principal: Principal) -> ValuationReport:
        rid = parse_record_id(record_id)
        row = db.execute(self._scoped(principal).where(ValuationReport.id == rid)).scalar_one_or_none()
        if not row:
            raise NotFoundError("Valuation not found.")
        return row

    def fetch_by_id(self, db: Session, record_id: str, principal: Principal) -> ValuationRecord:
        return to_record(self._get_row(db, record_id, principal))

    def create(
        self,
        db: Session,
        *,
        principal: Principal,
        fields: Optional[Mapping[str, str]] = None,
    ) -> ValuationRecord:
        draft = recompute_derived(
            ValuationRecord(
                id=str(uuid.uuid4()),
                client_id=principal.client_id,
                created_by=principal.username,
                status=ValuationStatus.pending,
                fields=dict(fields or {}),
            )
        )
        now = _now()
        row = ValuationReport(
            id=uuid.UUID(draft.id),
            client_id=draft.client_id,
            created_by=draft.created_by,
            status=draft.status.value,
            fields_json=dict(draft.fields),
            attachments_json={},
            manager_feedback="",
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info("valuation created", extra={"record_id": draft.id, "client_id": draft.client_id})
        return to_record(row)

    def persist(self, db: Session, record: ValuationRecord, principal: Principal) -> ValuationRecord:
        attachments_json = _attachments_to_json(record.attachments)
        record = recompute_derived(record)

        row = self._get_row(db, record.id, principal)
        row.status = record.status.value
        row.fields_json = dict(record.fields)
        row.attachments_json = attachments_json
        row.manager_feedback = record.manager_feedback or ""
        row.last_updated_by = record.last_updated_by
        row.last_updated_by_role = record.last_updated_by_role
        row.last_updated_at = record.last_updated_at
        row.updated_at = _now()

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("valuation persist failed", extra={"record_id": record.id})
            raise UpstreamError(f"Could not save valuation: {e}") from e
        db.refresh(row)
        logger.info(
            "valuation persisted",
            extra={"record_id": record.id, "status": row.status, "actor": principal.username},
        )
        return to_record(row)

    def list(
        self,
        db: Session,
        *,
        principal: Principal,
        status: Optional[ValuationStatus] = None,
        limit: int = 100,
    ) -> List[ValuationRecord]:
        stmt = self._scoped(principal)
        if status is not None:
            stmt = stmt.where(ValuationReport.status == ValuationStatus(status).value)
        stmt = stmt.order_by(ValuationReport.created_at.desc()).limit(limit)
        return [to_record(r) for r in db.execute(stmt).scalars().all()]

    def count_by_status(self, db: Session, *, principal: Principal) -> Dict[str, int]:
        scoped = self._scoped(principal).subquery()
        rows = db.execute(
            select(scoped.c.status, func.count()).group_by(scoped.c.status)
        ).all()

        counts = {s.value: 0 for s in ValuationStatus}
        for status, n in rows:
            if status in counts:
                counts[status] = int(n)
        return counts
