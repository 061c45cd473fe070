from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from valuation.core.record import (
    Attachment,
    LocalAttachment,
    PersistedAttachment,
    ValuationRecord,
)
from valuation.core.types import AttachmentCategory, ValuationStatus
from valuation.policies.rbac import Principal
from valuation.policies.status_policy import can_approve, can_edit
from valuation.services.field_calculator import format_number


def _as_field_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (int, float)):
        return format_number(float(value))
    return str(value)


class FieldChangesMixin(BaseModel):
    # JSON object order is the order edits are applied in
    fields: Dict[str, Any] = Field(default_factory=dict)

    def changes(self) -> List[Tuple[str, str]]:
        return [(key, _as_field_value(value)) for key, value in self.fields.items()]


# ─────────────────────────────────────────────
# REQUESTS
# ─────────────────────────────────────────────


class ValuationCreateRequest(FieldChangesMixin):
    pass


class RecalculateRequest(FieldChangesMixin):
    pass


class AttachmentIn(BaseModel):
    """Either an already-stored reference (url) or an inline file (dataBase64)."""

    fileName: str = Field(..., min_length=1, max_length=255)
    url: Optional[str] = None
    size: int = Field(0, ge=0)
    dataBase64: Optional[str] = None
    contentType: str = "application/octet-stream"
    label: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_source(self):
        if bool(self.url) == bool(self.dataBase64):
            raise ValueError("Attachment needs exactly one of url or dataBase64.")
        return self

    def to_attachment(self) -> Attachment:
        if self.url:
            return PersistedAttachment(url=self.url, file_name=self.fileName, size=self.size, label=self.label)
        try:
            blob = base64.b64decode(self.dataBase64, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError(f"{self.fileName}: dataBase64 is not valid base64.")
        return LocalAttachment(blob=blob, file_name=self.fileName, content_type=self.contentType, label=self.label)


class ValuationSaveRequest(FieldChangesMixin):
    # a category present here replaces the stored list for that category
    attachments: Dict[AttachmentCategory, List[AttachmentIn]] = Field(default_factory=dict)

    def attachment_changes(self) -> Dict[AttachmentCategory, Tuple[Attachment, ...]]:
        return {
            category: tuple(item.to_attachment() for item in items)
            for category, items in self.attachments.items()
        }


class ManagerActionRequest(FieldChangesMixin):
    action: str = Field(..., description="approve | reject | rework")
    feedback: Optional[str] = Field(None, max_length=4000)


class ReportPreviewRequest(FieldChangesMixin):
    id: Optional[str] = None
    status: ValuationStatus = ValuationStatus.pending
    attachments: Dict[AttachmentCategory, List[AttachmentIn]] = Field(default_factory=dict)


# ─────────────────────────────────────────────
# RESPONSES
# ─────────────────────────────────────────────


class AttachmentOut(BaseModel):
    url: Optional[str] = None
    fileName: str
    size: int = 0
    label: Optional[str] = None
    uploaded: bool = True


class RecordPermissions(BaseModel):
    canEdit: bool
    canApprove: bool


class ValuationResponse(BaseModel):
    id: str
    clientId: str
    createdBy: str
    status: ValuationStatus
    fields: Dict[str, str]
    attachments: Dict[str, List[AttachmentOut]]
    managerFeedback: str = ""
    lastUpdatedBy: Optional[str] = None
    lastUpdatedByRole: Optional[str] = None
    lastUpdatedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    persisted: bool = True
    permissions: RecordPermissions

    @classmethod
    def from_record(cls, record: ValuationRecord, principal: Principal) -> "ValuationResponse":
        attachments = {
            category.value: [
                AttachmentOut(
                    url=getattr(a, "url", None),
                    fileName=a.file_name,
                    size=a.size,
                    label=a.label,
                    uploaded=isinstance(a, PersistedAttachment),
                )
                for a in items
            ]
            for category, items in record.attachments.items()
        }
        return cls(
            id=record.id,
            clientId=record.client_id,
            createdBy=record.created_by,
            status=record.status,
            fields=dict(record.fields),
            attachments=attachments,
            managerFeedback=record.manager_feedback,
            lastUpdatedBy=record.last_updated_by,
            lastUpdatedByRole=record.last_updated_by_role,
            lastUpdatedAt=record.last_updated_at,
            createdAt=record.created_at,
            persisted=record.persisted,
            permissions=RecordPermissions(
                canEdit=can_edit(principal.role, record.status),
                canApprove=can_approve(principal.role, record.status),
            ),
        )


class ValuationListItem(BaseModel):
    id: str
    status: ValuationStatus
    clientName: str = ""
    bankName: str = ""
    city: str = ""
    createdBy: str
    lastUpdatedBy: Optional[str] = None
    lastUpdatedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class ValuationListResponse(BaseModel):
    items: List[ValuationListItem]
    count: int


class ValuationSummaryResponse(BaseModel):
    counts: Dict[str, int]
    total: int


class UploadResponse(BaseModel):
    category: AttachmentCategory
    attachments: List[AttachmentOut]
