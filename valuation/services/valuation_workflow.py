# valuation/services/valuation_workflow.py
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from valuation.core.errors import UpstreamError
from valuation.core.record import (
    SINGLE_ATTACHMENT_CATEGORIES,
    Attachment,
    LocalAttachment,
    PersistedAttachment,
    ValuationRecord,
)
from valuation.core.types import AttachmentCategory, ManagerAction
from valuation.policies.rbac import (
    ACTION_CREATE_VALUATION,
    ACTION_UPLOAD_ATTACHMENT,
    Principal,
    require_action,
)
from valuation.policies.status_policy import require_approve, require_edit
from valuation.services.attachment_store import AttachmentStore
from valuation.services.field_calculator import apply_field_changes, recompute_derived
from valuation.services.form_validation import require_valid_form
from valuation.services.status_machine import ValuationStatusMachine, parse_action
from valuation.services.valuation_repository import ValuationRepository

logger = logging.getLogger(__name__)

FieldChanges = Iterable[Tuple[str, str]]
AttachmentChanges = Mapping[AttachmentCategory, Sequence[Attachment]]


class ValuationWorkflowService:
    """
    Orchestrates one editing session against the stored record.

    Save order:
      permission -> calculator -> validation -> uploads -> on-progress -> persist

    Nothing is written when a step fails; the caller keeps its local edits and may retry.
    """

    def __init__(
        self,
        *,
        store: AttachmentStore,
        repository: Optional[ValuationRepository] = None,
        machine: Optional[ValuationStatusMachine] = None,
    ):
        self.store = store
        self.repository = repository or ValuationRepository()
        self.machine = machine or ValuationStatusMachine()

    def _require_own_urls(self, record: ValuationRecord, items: Sequence[Attachment]) -> None:
        """A submitted URL must already be on the record or live under this record's upload prefix."""
        known = {a.url for group in record.attachments.values() for a in group if isinstance(a, PersistedAttachment)}
        prefix = f"{self.store.public_base_url}/{record.id}/"
        for att in items:
            if isinstance(att, PersistedAttachment) and att.url not in known and not att.url.startswith(prefix):
                raise ValueError(f"Attachment URL does not belong to this valuation: {att.url}")

    def create(
        self,
        db: Session,
        *,
        principal: Principal,
        changes: FieldChanges = (),
    ) -> ValuationRecord:
        require_action(principal, ACTION_CREATE_VALUATION)
        draft = apply_field_changes(
            ValuationRecord(id="draft", client_id=principal.client_id, created_by=principal.username),
            changes,
            skip_derived=True,
        )
        return self.repository.create(db, principal=principal, fields=draft.fields)

    def recalculate(
        self,
        db: Session,
        *,
        record_id: str,
        changes: FieldChanges,
        principal: Principal,
    ) -> ValuationRecord:
        """Preview of field edits against the stored record; nothing is persisted."""
        record = self.repository.fetch_by_id(db, record_id, principal)
        return apply_field_changes(record, changes)

    def save(
        self,
        db: Session,
        *,
        record_id: str,
        changes: FieldChanges = (),
        attachments: Optional[AttachmentChanges] = None,
        principal: Principal,
    ) -> ValuationRecord:
        record = self.repository.fetch_by_id(db, record_id, principal)
        require_edit(principal.role, record.status)

        # client-sent calculated values are discarded and rebuilt from inputs
        record = recompute_derived(apply_field_changes(record, changes, skip_derived=True))
        require_valid_form(record.fields)

        for category, items in (attachments or {}).items():
            self._require_own_urls(record, items)
            record = record.with_attachments(category, tuple(items))
        if record.has_pending_attachments:
            require_action(principal, ACTION_UPLOAD_ATTACHMENT)
            record = self.store.resolve(record)

        record = self.machine.apply_save(record, principal)
        saved = self.repository.persist(db, record, principal)
        logger.info(
            "valuation saved",
            extra={"record_id": saved.id, "status": saved.status.value, "actor": principal.username},
        )
        return saved

    def manager_action(
        self,
        db: Session,
        *,
        record_id: str,
        action: str,
        feedback: Optional[str] = None,
        changes: FieldChanges = (),
        principal: Principal,
    ) -> ValuationRecord:
        """
        Approve, reject or request rework.

        Only approve may carry field edits; they go through a full save first,
        so they are committed even if the approval write that follows fails
        (the record is then left in on-progress with the edits applied).
        """
        action = parse_action(action)
        changes = list(changes)
        if changes and action != ManagerAction.approve:
            raise ValueError(f"Field changes cannot be submitted with {action.value}; save them first.")

        record = self.repository.fetch_by_id(db, record_id, principal)
        require_approve(principal.role, record.status)

        if changes:
            record = self.save(db, record_id=record_id, changes=changes, principal=principal)

        record = self.machine.apply_manager_action(record, action, feedback, principal)
        try:
            reviewed = self.repository.persist(db, record, principal)
        except UpstreamError:
            if changes:
                logger.error(
                    "approval failed after review edits were saved",
                    extra={"record_id": record.id, "actor": principal.username},
                )
            raise
        logger.info(
            "manager action applied",
            extra={"record_id": reviewed.id, "action": action.value, "actor": principal.username},
        )
        return reviewed

    def upload_attachments(
        self,
        db: Session,
        *,
        record_id: str,
        category: AttachmentCategory,
        files: Sequence[LocalAttachment],
        principal: Principal,
    ) -> List[PersistedAttachment]:
        """Upload only; the URLs join the record on its next save."""
        require_action(principal, ACTION_UPLOAD_ATTACHMENT)
        record = self.repository.fetch_by_id(db, record_id, principal)
        require_edit(principal.role, record.status)
        if not files:
            raise ValueError("No files to upload.")
        category = AttachmentCategory(category)
        if category in SINGLE_ATTACHMENT_CATEGORIES and len(files) > 1:
            raise ValueError(f"Category {category.value} holds a single attachment.")
        return self.store.upload(files, record.id, category)
