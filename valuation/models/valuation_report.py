# valuation/models/valuation_report.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from valuation.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class ValuationReport(Base):
    """
    Stored valuation report.

    fields_json holds the flat form (logical key -> string value),
    derived values included and always recomputed before write.
    attachments_json holds persisted URL references only.
    """

    __tablename__ = "valuation_reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    client_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="pending")

    fields_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    attachments_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    manager_feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_updated_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    last_updated_by_role: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_valuation_reports_client_status", "client_id", "status"),
        Index("ix_valuation_reports_client_creator", "client_id", "created_by"),
    )
