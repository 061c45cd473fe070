# valuation/core/record.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from valuation.core.types import AttachmentCategory, ValuationStatus


@dataclass(frozen=True)
class LocalAttachment:
    """Attachment picked by the client but not uploaded yet."""

    blob: bytes
    file_name: str
    content_type: str = "application/octet-stream"
    label: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.blob)


@dataclass(frozen=True)
class PersistedAttachment:
    """Attachment already stored; only its URL travels with the record."""

    url: str
    file_name: str
    size: int = 0
    label: Optional[str] = None


Attachment = Union[LocalAttachment, PersistedAttachment]

# single-slot categories
SINGLE_ATTACHMENT_CATEGORIES = frozenset({AttachmentCategory.bank})


def _freeze(values: Mapping) -> Mapping:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class ValuationRecord:
    """
    Immutable snapshot of a valuation report.

    Every change goes through a pure function returning a new instance
    (see field_calculator / status_machine); nothing mutates a record in place.
    """

    id: str
    client_id: str
    created_by: str
    status: ValuationStatus = ValuationStatus.pending
    fields: Mapping[str, str] = field(default_factory=dict)
    attachments: Mapping[AttachmentCategory, Tuple[Attachment, ...]] = field(default_factory=dict)
    manager_feedback: str = ""
    last_updated_by: Optional[str] = None
    last_updated_by_role: Optional[str] = None
    last_updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    persisted: bool = False

    def __post_init__(self) -> None:
        attachments: Dict[AttachmentCategory, Tuple[Attachment, ...]] = {}
        for category, items in dict(self.attachments).items():
            category = AttachmentCategory(category)
            items = tuple(items)
            if category in SINGLE_ATTACHMENT_CATEGORIES and len(items) > 1:
                raise ValueError(f"Category {category.value} holds a single attachment.")
            attachments[category] = items
        object.__setattr__(self, "status", ValuationStatus(self.status))
        object.__setattr__(self, "fields", _freeze(self.fields))
        object.__setattr__(self, "attachments", _freeze(attachments))

    def get(self, key: str, default: str = "") -> str:
        value = self.fields.get(key)
        return default if value is None else value

    def with_fields(self, updates: Mapping[str, str]) -> "ValuationRecord":
        merged = dict(self.fields)
        merged.update(updates)
        return replace(self, fields=merged)

    def with_attachments(
        self, category: AttachmentCategory, items: Tuple[Attachment, ...]
    ) -> "ValuationRecord":
        merged = dict(self.attachments)
        merged[AttachmentCategory(category)] = tuple(items)
        return replace(self, attachments=merged)

    def pending_attachments(self) -> Dict[AttachmentCategory, Tuple[LocalAttachment, ...]]:
        pending = {}
        for category, items in self.attachments.items():
            local = tuple(a for a in items if isinstance(a, LocalAttachment))
            if local:
                pending[category] = local
        return pending

    @property
    def has_pending_attachments(self) -> bool:
        return bool(self.pending_attachments())
