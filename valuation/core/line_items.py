# valuation/core/line_items.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple


@dataclass(frozen=True)
class LineItem:
    quantity_key: str
    rate_key: str
    value_key: str
    label: str


def _item(name: str, label: str) -> LineItem:
    return LineItem(quantity_key=f"{name}Qty", rate_key=f"{name}Rate", value_key=name, label=label)


# Fixed valuation line items, in report order.
LINE_ITEMS: Tuple[LineItem, ...] = (
    _item("presentValue", "Present value of the flat"),
    _item("wardrobes", "Wardrobes"),
    _item("showcases", "Showcases"),
    _item("kitchenArrangements", "Kitchen arrangements"),
    _item("superfineFinish", "Superfine finish"),
    _item("interiorDecorations", "Interior decorations"),
    _item("electricityDeposits", "Electricity deposits / fittings"),
    _item("collapsibleGates", "Collapsible gates / grill works"),
    _item("potentialValue", "Potential value, if any"),
    _item("otherItems", "Other items"),
)

FAIR_MARKET_VALUE = "fairMarketValue"
REALIZABLE_VALUE = "realizableValue"
DISTRESS_VALUE = "distressValue"
INSURABLE_VALUE = "insurableValue"

# aggregate key -> multiplier applied to the rounded total
AGGREGATE_RATIOS: Dict[str, float] = {
    FAIR_MARKET_VALUE: 1.0,
    REALIZABLE_VALUE: 0.9,
    DISTRESS_VALUE: 0.8,
    INSURABLE_VALUE: 0.35,
}

ROUNDING_STEP = 1000

LINE_ITEM_INPUT_KEYS: Dict[str, LineItem] = {
    **{item.quantity_key: item for item in LINE_ITEMS},
    **{item.rate_key: item for item in LINE_ITEMS},
}


# ─────────────────────────────────────────────
# Construction cost analysis
# ─────────────────────────────────────────────

CONSTRUCTION_COST_PREFIX = "constructionCost"

CONSTRUCTION_SECTIONS: Tuple[str, ...] = (
    "securityRoom",
    "laboursQuarter",
    "storeRoom",
    "galleryRoom",
    "ffLaboursQuarter",
    "gfRoom",
    "gfWashRoom",
    "office1",
    "washRoom",
    "shed",
    "office2",
    "shed1",
    "shed2Unit1",
    "shed2Unit2",
    "shed3",
    "openShed",
    "godown",
    "shed3Unit1",
    "shed3Unit2",
    "shed3Unit3",
)


def construction_key(section: str, part: str) -> str:
    return f"{CONSTRUCTION_COST_PREFIX}.{section}.{part}"


CONSTRUCTION_TOTAL_KEYS: Tuple[str, ...] = tuple(
    construction_key("total", part)
    for part in ("totalValue", "roundedValue", "areaSMT", "areaSYD", "ratePerSYD")
)

DERIVED_KEYS: FrozenSet[str] = frozenset(
    [item.value_key for item in LINE_ITEMS]
    + list(AGGREGATE_RATIOS)
    + [construction_key(section, "value") for section in CONSTRUCTION_SECTIONS]
    + list(CONSTRUCTION_TOTAL_KEYS)
)
