from pathlib import Path

import pytest

from valuation.core.errors import UpstreamError
from valuation.core.record import LocalAttachment, PersistedAttachment, ValuationRecord
from valuation.core.types import AttachmentCategory
from valuation.services.attachment_store import AttachmentStore


def test_upload_writes_files_and_returns_urls(store, tmp_path):
    out = store.upload(
        [LocalAttachment(blob=b"jpegdata", file_name="front view.jpg", content_type="image/jpeg")],
        "rec-1",
        AttachmentCategory.property,
    )

    assert len(out) == 1
    att = out[0]
    assert att.url.startswith("/uploads/rec-1/property/")
    assert att.url.endswith("_front_view.jpg")
    assert att.file_name == "front view.jpg"
    assert att.size == 8

    stored = tmp_path / "uploads" / "rec-1" / "property" / att.url.rsplit("/", 1)[1]
    assert stored.read_bytes() == b"jpegdata"


def test_upload_rejects_oversized_file(tmp_path):
    small = AttachmentStore(root=str(tmp_path), public_base_url="/u", max_bytes=4)
    with pytest.raises(ValueError):
        small.upload([LocalAttachment(blob=b"12345", file_name="a.png")], "rec-1", "area")
    assert not any(Path(tmp_path).rglob("*.png"))


def test_storage_failure_is_upstream_error(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    broken = AttachmentStore(root=str(blocker), public_base_url="/u", max_bytes=1024)

    with pytest.raises(UpstreamError):
        broken.upload([LocalAttachment(blob=b"x", file_name="a.pdf")], "rec-1", "documents")


def test_resolve_keeps_order_and_existing_urls(store):
    kept = PersistedAttachment(url="/uploads/rec-1/property/old.jpg", file_name="old.jpg", size=3)
    record = ValuationRecord(
        id="rec-1",
        client_id="bank-a",
        created_by="user",
        attachments={
            "property": (
                LocalAttachment(blob=b"a", file_name="one.jpg"),
                kept,
                LocalAttachment(blob=b"bb", file_name="two.jpg"),
            )
        },
    )
    assert record.has_pending_attachments

    resolved = store.resolve(record)
    items = resolved.attachments[AttachmentCategory.property]

    assert [a.file_name for a in items] == ["one.jpg", "old.jpg", "two.jpg"]
    assert all(isinstance(a, PersistedAttachment) for a in items)
    assert items[1] is kept
    assert not resolved.has_pending_attachments
    # original record still holds the local blobs
    assert record.has_pending_attachments


def test_resolve_without_pending_returns_same_record(store):
    record = ValuationRecord(id="rec-1", client_id="bank-a", created_by="user")
    assert store.resolve(record) is record


def test_bank_category_holds_one_attachment():
    with pytest.raises(ValueError):
        ValuationRecord(
            id="rec-1",
            client_id="bank-a",
            created_by="user",
            attachments={
                "bank": (
                    PersistedAttachment(url="/u/1", file_name="a.jpg"),
                    PersistedAttachment(url="/u/2", file_name="b.jpg"),
                )
            },
        )
