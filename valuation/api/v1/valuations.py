# valuation/api/v1/valuations.py
from __future__ import annotations

from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from valuation.core.auth_deps import get_current_principal
from valuation.core.errors import FormValidationError, NotFoundError, UpstreamError
from valuation.core.record import LocalAttachment, ValuationRecord
from valuation.core.types import AttachmentCategory, ManagerAction, ValuationStatus
from valuation.db.session import get_db
from valuation.policies.rbac import Principal
from valuation.schemas.valuations import (
    AttachmentOut,
    ManagerActionRequest,
    RecalculateRequest,
    ReportPreviewRequest,
    UploadResponse,
    ValuationCreateRequest,
    ValuationListItem,
    ValuationListResponse,
    ValuationResponse,
    ValuationSaveRequest,
    ValuationSummaryResponse,
)
from valuation.services.attachment_store import AttachmentStore, get_attachment_store
from valuation.services.audit_service import AuditAction, audit_event
from valuation.services.field_calculator import apply_field_changes, recompute_derived
from valuation.services.report_service import RenderedReport, ReportService
from valuation.services.valuation_repository import ValuationRepository
from valuation.services.valuation_workflow import ValuationWorkflowService

router = APIRouter(prefix="/valuations", tags=["valuations"])

_REVIEW_AUDIT_ACTIONS = {
    ManagerAction.approve: AuditAction.VALUATION_APPROVED,
    ManagerAction.reject: AuditAction.VALUATION_REJECTED,
    ManagerAction.rework: AuditAction.VALUATION_REWORK_REQUESTED,
}


def _raise_http(e: Exception) -> NoReturn:
    if isinstance(e, PermissionError):
        raise HTTPException(status_code=403, detail=str(e))
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, FormValidationError):
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    if isinstance(e, UpstreamError):
        raise HTTPException(status_code=502, detail=str(e))
    if isinstance(e, ValueError):
        raise HTTPException(status_code=400, detail=str(e))
    raise e


def get_workflow(store: AttachmentStore = Depends(get_attachment_store)) -> ValuationWorkflowService:
    return ValuationWorkflowService(store=store)


def _choice(record: ValuationRecord, key: str, custom_key: str) -> str:
    value = record.get(key)
    return record.get(custom_key) if value.strip().lower() == "other" else value


def _list_item(record: ValuationRecord) -> ValuationListItem:
    return ValuationListItem(
        id=record.id,
        status=record.status,
        clientName=record.get("clientName"),
        bankName=_choice(record, "bankName", "customBankName"),
        city=_choice(record, "city", "customCity"),
        createdBy=record.created_by,
        lastUpdatedBy=record.last_updated_by,
        lastUpdatedAt=record.last_updated_at,
        createdAt=record.created_at,
    )


def _pdf(report: RenderedReport) -> Response:
    return Response(
        content=report.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )


# ─────────────────────────────────────────────
# COLLECTION
# ─────────────────────────────────────────────


@router.post("", response_model=ValuationResponse)
async def create_valuation(
    req: ValuationCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    workflow: ValuationWorkflowService = Depends(get_workflow),
):
    try:
        record = workflow.create(db, principal=principal, changes=req.changes())
    except (PermissionError, ValueError) as e:
        _raise_http(e)

    audit_event(
        db,
        request=request,
        principal=principal,
        record_id=record.id,
        action=AuditAction.VALUATION_CREATED,
        payload_summary={"field_keys": sorted(req.fields.keys())},
    )
    return ValuationResponse.from_record(record, principal)


@router.get("", response_model=ValuationListResponse)
async def list_valuations(
    status: Optional[ValuationStatus] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    records = ValuationRepository().list(db, principal=principal, status=status, limit=limit)
    items = [_list_item(r) for r in records]
    return ValuationListResponse(items=items, count=len(items))


@router.get("/summary", response_model=ValuationSummaryResponse)
async def valuation_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    counts = ValuationRepository().count_by_status(db, principal=principal)
    return ValuationSummaryResponse(counts=counts, total=sum(counts.values()))


@router.post("/report-preview")
async def report_preview(
    req: ReportPreviewRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    PDF for the form currently on screen.
    When the id belongs to a stored record the stored data is rendered instead.
    """
    try:
        draft = ValuationRecord(
            id=req.id or "unsaved",
            client_id=principal.client_id,
            created_by=principal.username,
            status=req.status,
            attachments={c: tuple(a.to_attachment() for a in items) for c, items in req.attachments.items()},
        )
        draft = recompute_derived(apply_field_changes(draft, req.changes(), skip_derived=True))
        report = ReportService().generate_for(db, record_id=req.id, principal=principal, fallback=draft)
    except (PermissionError, LookupError, ValueError, UpstreamError) as e:
        _raise_http(e)
    return _pdf(report)


# ─────────────────────────────────────────────
# SINGLE RECORD
# ─────────────────────────────────────────────


@router.get("/{valuation_id}", response_model=ValuationResponse)
async def get_valuation(
    valuation_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        record = ValuationRepository().fetch_by_id(db, valuation_id, principal)
    except (LookupError, ValueError) as e:
        _raise_http(e)
    return ValuationResponse.from_record(record, principal)


@router.post("/{valuation_id}/recalculate", response_model=ValuationResponse)
async def recalculate_valuation(
    valuation_id: str,
    req: RecalculateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    workflow: ValuationWorkflowService = Depends(get_workflow),
):
    try:
        record = workflow.recalculate(db, record_id=valuation_id, changes=req.changes(), principal=principal)
    except (LookupError, ValueError) as e:
        _raise_http(e)
    return ValuationResponse.from_record(record, principal)


@router.put("/{valuation_id}", response_model=ValuationResponse)
async def save_valuation(
    valuation_id: str,
    req: ValuationSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    workflow: ValuationWorkflowService = Depends(get_workflow),
):
    try:
        record = workflow.save(
            db,
            record_id=valuation_id,
            changes=req.changes(),
            attachments=req.attachment_changes(),
            principal=principal,
        )
    except (PermissionError, LookupError, ValueError, UpstreamError) as e:
        _raise_http(e)

    audit_event(
        db,
        request=request,
        principal=principal,
        record_id=record.id,
        action=AuditAction.VALUATION_SAVED,
        payload_summary={
            "status": record.status.value,
            "field_keys": sorted(req.fields.keys()),
            "attachment_categories": sorted(c.value for c in req.attachments),
        },
    )
    return ValuationResponse.from_record(record, principal)


@router.post("/{valuation_id}/manager-action", response_model=ValuationResponse)
async def manager_action(
    valuation_id: str,
    req: ManagerActionRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    workflow: ValuationWorkflowService = Depends(get_workflow),
):
    try:
        record = workflow.manager_action(
            db,
            record_id=valuation_id,
            action=req.action,
            feedback=req.feedback,
            changes=req.changes(),
            principal=principal,
        )
    except (PermissionError, LookupError, ValueError, UpstreamError) as e:
        _raise_http(e)

    summary = {"status": record.status.value, "has_feedback": bool(record.manager_feedback)}
    if req.fields:
        # only approve accepts fields, so these were applied
        summary["field_keys"] = sorted(req.fields.keys())
    audit_event(
        db,
        request=request,
        principal=principal,
        record_id=record.id,
        action=_REVIEW_AUDIT_ACTIONS[ManagerAction(req.action)],
        payload_summary=summary,
    )
    return ValuationResponse.from_record(record, principal)


@router.post("/{valuation_id}/attachments/{category}", response_model=UploadResponse)
async def upload_attachments(
    valuation_id: str,
    category: AttachmentCategory,
    request: Request,
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    workflow: ValuationWorkflowService = Depends(get_workflow),
):
    limit = workflow.store.max_bytes
    local = []
    for f in files:
        # one byte past the cap marks an oversize file
        blob = await f.read(limit + 1)
        if len(blob) > limit:
            raise HTTPException(status_code=400, detail=f"{f.filename or 'file'} exceeds the {limit} byte upload limit.")
        local.append(
            LocalAttachment(
                blob=blob,
                file_name=f.filename or "file",
                content_type=f.content_type or "application/octet-stream",
            )
        )
    try:
        uploaded = workflow.upload_attachments(
            db,
            record_id=valuation_id,
            category=category,
            files=local,
            principal=principal,
        )
    except (PermissionError, LookupError, ValueError, UpstreamError) as e:
        _raise_http(e)

    audit_event(
        db,
        request=request,
        principal=principal,
        record_id=valuation_id,
        action=AuditAction.ATTACHMENT_UPLOADED,
        payload_summary={"category": category.value, "count": len(uploaded)},
    )
    return UploadResponse(
        category=category,
        attachments=[
            AttachmentOut(url=a.url, fileName=a.file_name, size=a.size, label=a.label) for a in uploaded
        ],
    )


@router.get("/{valuation_id}/report")
async def download_report(
    valuation_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        report = ReportService().generate_for(db, record_id=valuation_id, principal=principal)
    except (LookupError, ValueError, UpstreamError) as e:
        _raise_http(e)
    return _pdf(report)
