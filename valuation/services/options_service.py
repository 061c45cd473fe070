# valuation/services/options_service.py
from __future__ import annotations

from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from valuation.core.config import Settings, get_settings
from valuation.core.types import OptionCategory
from valuation.models.valuation_option import ValuationOption


def _defaults(settings: Settings) -> Dict[OptionCategory, List[str]]:
    return {
        OptionCategory.banks: settings.default_banks,
        OptionCategory.cities: settings.default_cities,
        OptionCategory.dsas: settings.default_dsas,
        OptionCategory.engineers: settings.default_engineers,
    }


class OptionsProvider:
    """Dropdown values: configured defaults first, then the client's custom entries."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def get_options(self, db: Session, *, client_id: str, category: OptionCategory) -> List[str]:
        category = OptionCategory(category)
        custom = db.execute(
            select(ValuationOption.value)
            .where(ValuationOption.client_id == client_id, ValuationOption.category == category.value)
            .order_by(ValuationOption.value.asc())
        ).scalars().all()

        out: List[str] = []
        seen = set()
        for value in list(_defaults(self.settings)[category]) + list(custom):
            key = value.strip().lower()
            if key and key not in seen:
                seen.add(key)
                out.append(value.strip())
        return out

    def add_option(
        self,
        db: Session,
        *,
        client_id: str,
        category: OptionCategory,
        value: str,
        created_by: str,
    ) -> List[str]:
        category = OptionCategory(category)
        value = (value or "").strip()
        if not value:
            raise ValueError("Option value is required.")
        if value.lower() == "other":
            raise ValueError("'other' is reserved for free-text entry.")

        existing = {v.lower() for v in self.get_options(db, client_id=client_id, category=category)}
        if value.lower() not in existing:
            db.add(
                ValuationOption(
                    client_id=client_id,
                    category=category.value,
                    value=value,
                    created_by=created_by,
                )
            )
            db.commit()
        return self.get_options(db, client_id=client_id, category=category)
