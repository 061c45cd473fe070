# valuation/services/attachment_store.py
from __future__ import annotations

import logging
import os
import re
import uuid
from pathlib import Path
from typing import List, Sequence

from valuation.core.config import get_settings
from valuation.core.errors import UpstreamError
from valuation.core.record import LocalAttachment, PersistedAttachment, ValuationRecord
from valuation.core.types import AttachmentCategory

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_name(name: str) -> str:
    cleaned = _UNSAFE.sub("_", os.path.basename(name or "")).strip("._")
    return cleaned or "file"


class AttachmentStore:
    """
    Filesystem attachment store.

    Layout: <root>/<record_id>/<category>/<uuid>_<file name>
    URL:    <public_base_url>/<record_id>/<category>/<uuid>_<file name>
    """

    def __init__(self, root: str, public_base_url: str, max_bytes: int):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    def upload(
        self,
        files: Sequence[LocalAttachment],
        record_id: str,
        category: AttachmentCategory,
    ) -> List[PersistedAttachment]:
        """Store every file of one category; all-or-nothing from the caller's view."""
        category = AttachmentCategory(category)
        for f in files:
            if f.size > self.max_bytes:
                raise ValueError(f"{f.file_name} exceeds the {self.max_bytes} byte upload limit.")

        target_dir = self.root / str(record_id) / category.value
        written: List[Path] = []
        uploaded: List[PersistedAttachment] = []
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            for f in files:
                stored_name = f"{uuid.uuid4().hex}_{_safe_name(f.file_name)}"
                path = target_dir / stored_name
                path.write_bytes(f.blob)
                written.append(path)
                uploaded.append(
                    PersistedAttachment(
                        url=f"{self.public_base_url}/{record_id}/{category.value}/{stored_name}",
                        file_name=f.file_name,
                        size=f.size,
                        label=f.label,
                    )
                )
        except OSError as e:
            for path in written:
                path.unlink(missing_ok=True)
            logger.error(
                "attachment upload failed",
                extra={"record_id": str(record_id), "category": category.value},
            )
            raise UpstreamError(f"Could not store {category.value} attachments: {e}") from e

        logger.info(
            "attachments uploaded",
            extra={"record_id": str(record_id), "category": category.value, "count": len(uploaded)},
        )
        return uploaded

    def resolve(self, record: ValuationRecord) -> ValuationRecord:
        """
        Upload every pending local attachment and swap it for its URL.
        Order inside each category is preserved.
        Returns a record with persisted references only.
        """
        resolved = record
        for category, items in record.attachments.items():
            local = [a for a in items if isinstance(a, LocalAttachment)]
            if not local:
                continue
            uploaded = iter(self.upload(local, record.id, category))
            merged = tuple(next(uploaded) if isinstance(a, LocalAttachment) else a for a in items)
            resolved = resolved.with_attachments(category, merged)
        return resolved


def get_attachment_store() -> AttachmentStore:
    settings = get_settings()
    return AttachmentStore(
        root=settings.upload_dir,
        public_base_url=settings.upload_public_base_url,
        max_bytes=settings.max_upload_bytes,
    )
