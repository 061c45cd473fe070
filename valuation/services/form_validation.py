# valuation/services/form_validation.py
from __future__ import annotations

import math
import re
from typing import List, Mapping, Optional

from valuation.core.errors import FormValidationError

OTHER = "other"


def _text(fields: Mapping[str, str], key: str) -> str:
    return (fields.get(key) or "").strip()


def _choice(fields: Mapping[str, str], key: str, custom_key: str) -> str:
    # "other" in a dropdown means the free-text companion field carries the value
    value = _text(fields, key)
    if value.lower() == OTHER:
        return _text(fields, custom_key)
    return value


def _coordinate(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def validate_form(fields: Mapping[str, str]) -> List[str]:
    """Collect every violation; an empty list means the form may be saved."""
    errors: List[str] = []

    if not _text(fields, "clientName"):
        errors.append("Client Name is required")

    mobile = _text(fields, "mobileNumber")
    if not mobile:
        errors.append("Mobile Number is required")
    elif len(re.sub(r"\D", "", mobile)) != 10:
        errors.append("Mobile Number must be 10 digits")

    if not _text(fields, "address"):
        errors.append("Address is required")

    if not _choice(fields, "bankName", "customBankName"):
        errors.append("Bank Name is required")
    if not _choice(fields, "city", "customCity"):
        errors.append("City is required")
    if not _choice(fields, "dsa", "customDsa"):
        errors.append("Market Applications / DSA (Sales Agent) is required")
    if not _choice(fields, "engineerName", "customEngineerName"):
        errors.append("Engineer Name is required")

    if _text(fields, "payment").lower() == "yes" and not _text(fields, "collectedBy"):
        errors.append("Collected By name is required when payment is collected")

    latitude = _text(fields, "latitude")
    if latitude:
        lat = _coordinate(latitude)
        if lat is None or not -90 <= lat <= 90:
            errors.append("Latitude must be a valid number between -90 and 90")

    longitude = _text(fields, "longitude")
    if longitude:
        lng = _coordinate(longitude)
        if lng is None or not -180 <= lng <= 180:
            errors.append("Longitude must be a valid number between -180 and 180")

    return errors


def require_valid_form(fields: Mapping[str, str]) -> None:
    errors = validate_form(fields)
    if errors:
        raise FormValidationError(errors)
