# valuation/services/field_calculator.py
from __future__ import annotations

import math
import re
from typing import Dict, Iterable, Mapping, Tuple

from valuation.core.line_items import (
    AGGREGATE_RATIOS,
    CONSTRUCTION_COST_PREFIX,
    CONSTRUCTION_SECTIONS,
    DERIVED_KEYS,
    LINE_ITEM_INPUT_KEYS,
    LINE_ITEMS,
    ROUNDING_STEP,
    LineItem,
    construction_key,
)
from valuation.core.record import ValuationRecord

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(raw) -> float:
    """
    Permissive numeric parse: the leading float literal of the value, else 0.
    "12", "12.5 sq.ft" and " 3e2" parse; "", None, "abc" and "nan" give 0.
    """
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw) if math.isfinite(raw) else 0.0
    m = _LEADING_NUMBER.match(str(raw))
    if not m:
        return 0.0
    value = float(m.group(1))
    return value if math.isfinite(value) else 0.0


def format_number(value: float) -> str:
    """Shortest string form; integral values carry no decimal point."""
    if not math.isfinite(value):
        return ""
    if value == int(value):
        return str(int(value))
    return repr(value)


def _derived(value: float) -> str:
    # zero is stored as an empty string, never "0"
    return "" if value == 0 else format_number(value)


def round_to_step(total: float, step: int = ROUNDING_STEP) -> int:
    """Nearest multiple of step; exact halves round up (500 -> 1000)."""
    return int(math.floor(total / step + 0.5)) * step


# ─────────────────────────────────────────────
# LINE ITEMS + AGGREGATES
# ─────────────────────────────────────────────


def _line_item_value(fields: Mapping[str, str], item: LineItem) -> str:
    qty = parse_number(fields.get(item.quantity_key))
    rate = parse_number(fields.get(item.rate_key))
    return _derived(qty * rate)


def _aggregates(fields: Mapping[str, str]) -> Dict[str, str]:
    total = sum(parse_number(fields.get(item.value_key)) for item in LINE_ITEMS)
    rounded = round_to_step(total)
    if rounded == 0:
        return {key: "" for key in AGGREGATE_RATIOS}
    return {key: format_number(rounded * ratio) for key, ratio in AGGREGATE_RATIOS.items()}


def valuation_total(record: ValuationRecord) -> Tuple[float, int]:
    """(raw sum of estimated values, rounded total)."""
    total = sum(parse_number(record.get(item.value_key)) for item in LINE_ITEMS)
    return total, round_to_step(total)


# ─────────────────────────────────────────────
# CONSTRUCTION COST ANALYSIS
# ─────────────────────────────────────────────


def is_construction_key(field_key: str) -> bool:
    return field_key.startswith(CONSTRUCTION_COST_PREFIX + ".")


def _construction_section_value(fields: Mapping[str, str], section: str) -> str:
    area = parse_number(fields.get(construction_key(section, "areaSMT")))
    rate = parse_number(fields.get(construction_key(section, "ratePerSYD")))
    return _derived(area * rate)


def _construction_totals(fields: Mapping[str, str]) -> Dict[str, str]:
    total_value = 0.0
    total_smt = 0.0
    total_syd = 0.0
    last_rate = 0.0
    for section in CONSTRUCTION_SECTIONS:
        total_value += parse_number(fields.get(construction_key(section, "value")))
        total_smt += parse_number(fields.get(construction_key(section, "areaSMT")))
        total_syd += parse_number(fields.get(construction_key(section, "areaSYD")))
        rate = parse_number(fields.get(construction_key(section, "ratePerSYD")))
        if rate > 0:
            last_rate = rate

    return {
        construction_key("total", "totalValue"): _derived(total_value),
        construction_key("total", "roundedValue"): _derived(round_to_step(total_value)),
        construction_key("total", "areaSMT"): _derived(total_smt),
        construction_key("total", "areaSYD"): _derived(total_syd),
        construction_key("total", "ratePerSYD"): _derived(last_rate),
    }


def on_construction_cost_change(record: ValuationRecord, field_key: str, new_value: str) -> ValuationRecord:
    if field_key in DERIVED_KEYS:
        raise ValueError(f"{field_key} is calculated and cannot be edited.")

    fields = dict(record.fields)
    fields[field_key] = new_value

    parts = field_key.split(".")
    if len(parts) == 3 and parts[1] in CONSTRUCTION_SECTIONS and parts[2] in {"areaSMT", "ratePerSYD"}:
        fields[construction_key(parts[1], "value")] = _construction_section_value(fields, parts[1])

    fields.update(_construction_totals(fields))
    return record.with_fields(fields)


# ─────────────────────────────────────────────
# ENTRY POINTS
# ─────────────────────────────────────────────


def on_field_change(record: ValuationRecord, field_key: str, new_value: str) -> ValuationRecord:
    """
    Apply one raw field edit and bring every dependent field up to date.

    Pure and idempotent: the input record is untouched, and re-applying the
    same (field_key, new_value) to the result changes nothing.
    Calculated keys (line item values, aggregates, construction totals) are
    read-only and raise ValueError.
    """
    if field_key in DERIVED_KEYS:
        raise ValueError(f"{field_key} is calculated and cannot be edited.")

    new_value = "" if new_value is None else str(new_value)
    if is_construction_key(field_key):
        return on_construction_cost_change(record, field_key, new_value)

    fields = dict(record.fields)
    fields[field_key] = new_value

    item = LINE_ITEM_INPUT_KEYS.get(field_key)
    if item is not None:
        fields[item.value_key] = _line_item_value(fields, item)
        fields.update(_aggregates(fields))

    return record.with_fields(fields)


def apply_field_changes(
    record: ValuationRecord,
    changes: Iterable[Tuple[str, str]],
    *,
    skip_derived: bool = False,
) -> ValuationRecord:
    """Fold a sequence of edits through on_field_change, in order."""
    for key, value in changes:
        if skip_derived and key in DERIVED_KEYS:
            continue
        record = on_field_change(record, key, value)
    return record


def recompute_derived(record: ValuationRecord) -> ValuationRecord:
    """
    Recompute every calculated field from its inputs.
    Run before persisting so stale values never reach storage.
    """
    fields = dict(record.fields)
    for item in LINE_ITEMS:
        fields[item.value_key] = _line_item_value(fields, item)
    fields.update(_aggregates(fields))

    if any(is_construction_key(k) for k in fields):
        for section in CONSTRUCTION_SECTIONS:
            fields[construction_key(section, "value")] = _construction_section_value(fields, section)
        fields.update(_construction_totals(fields))

    if fields == dict(record.fields):
        return record
    return record.with_fields(fields)
