# valuation/services/report_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from valuation.core.errors import NotFoundError
from valuation.core.record import ValuationRecord
from valuation.policies.rbac import Principal
from valuation.services.report_renderer import ReportRenderer
from valuation.services.valuation_repository import ValuationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedReport:
    content: bytes
    record_id: str
    from_unsaved_data: bool

    @property
    def filename(self) -> str:
        return f"valuation-{self.record_id}.pdf"


class ReportService:
    """
    Report download.

    The PDF is always rendered from a fresh read of the stored record.
    Local (unsaved) data is used only for a record that has never been persisted.
    """

    def __init__(
        self,
        repository: Optional[ValuationRepository] = None,
        renderer: Optional[ReportRenderer] = None,
    ):
        self.repository = repository or ValuationRepository()
        self.renderer = renderer or ReportRenderer()

    def generate_for(
        self,
        db: Session,
        *,
        record_id: Optional[str],
        principal: Principal,
        fallback: Optional[ValuationRecord] = None,
    ) -> RenderedReport:
        if record_id:
            try:
                stored = self.repository.fetch_by_id(db, record_id, principal)
            except (NotFoundError, ValueError):
                if fallback is None or fallback.persisted:
                    raise
            else:
                return RenderedReport(self.renderer.generate(stored), stored.id, False)

        if fallback is None:
            raise NotFoundError("Valuation not found. Save the form before downloading the report.")

        logger.warning(
            "rendering report from unsaved data",
            extra={"record_id": fallback.id, "actor": principal.username},
        )
        return RenderedReport(self.renderer.generate(fallback), fallback.id, True)
