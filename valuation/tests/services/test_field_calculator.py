import pytest

from valuation.core.line_items import AGGREGATE_RATIOS, LINE_ITEMS, construction_key
from valuation.core.record import ValuationRecord
from valuation.services.field_calculator import (
    apply_field_changes,
    format_number,
    on_field_change,
    parse_number,
    recompute_derived,
    round_to_step,
)


def blank_record(**fields):
    return ValuationRecord(id="r1", client_id="bank-a", created_by="user", fields=fields)


def aggregates(record):
    return {key: record.get(key) for key in AGGREGATE_RATIOS}


def test_single_line_item_drives_all_aggregates():
    r = blank_record()
    r = on_field_change(r, "presentValueQty", "10")
    r = on_field_change(r, "presentValueRate", "500")

    assert r.get("presentValue") == "5000"
    assert aggregates(r) == {
        "fairMarketValue": "5000",
        "realizableValue": "4500",
        "distressValue": "4000",
        "insurableValue": "1750",
    }


def test_empty_inputs_leave_every_derived_field_blank():
    r = recompute_derived(blank_record())

    for item in LINE_ITEMS:
        assert r.get(item.value_key) == ""
    assert set(aggregates(r).values()) == {""}

    r = on_field_change(r, "wardrobesQty", "")
    assert r.get("wardrobes") == ""
    assert r.get("fairMarketValue") == ""


def test_half_boundary_rounds_up():
    assert round_to_step(500) == 1000
    assert round_to_step(499.99) == 0
    assert round_to_step(1500) == 2000
    assert round_to_step(2499) == 2000

    r = blank_record()
    r = apply_field_changes(r, [("showcasesQty", "1"), ("showcasesRate", "500")])
    assert r.get("showcases") == "500"
    assert r.get("fairMarketValue") == "1000"
    assert r.get("insurableValue") == "350"


def test_total_sums_every_line_item():
    r = apply_field_changes(
        blank_record(),
        [
            ("presentValueQty", "1000"),
            ("presentValueRate", "2450"),
            ("wardrobesQty", "2"),
            ("wardrobesRate", "15000"),
            ("otherItemsQty", "1"),
            ("otherItemsRate", "1234"),
        ],
    )
    # 2,450,000 + 30,000 + 1,234 = 2,481,234 -> 2,481,000
    assert r.get("fairMarketValue") == "2481000"
    assert r.get("realizableValue") == format_number(2481000 * 0.9)
    assert r.get("distressValue") == format_number(2481000 * 0.8)
    assert r.get("insurableValue") == format_number(2481000 * 0.35)


def test_on_field_change_is_idempotent():
    r = apply_field_changes(blank_record(), [("kitchenArrangementsQty", "3"), ("kitchenArrangementsRate", "7000")])
    once = on_field_change(r, "kitchenArrangementsRate", "7500")
    twice = on_field_change(once, "kitchenArrangementsRate", "7500")
    assert once == twice
    assert once.get("kitchenArrangements") == "22500"


def test_input_record_is_not_mutated():
    r = blank_record(presentValueQty="2")
    updated = on_field_change(r, "presentValueRate", "100")
    assert r.get("presentValueRate") == ""
    assert r.get("presentValue") == ""
    assert updated.get("presentValue") == "200"


def test_garbage_numbers_degrade_to_zero():
    r = apply_field_changes(blank_record(), [("superfineFinishQty", "abc"), ("superfineFinishRate", "900")])
    assert r.get("superfineFinish") == ""
    assert r.get("fairMarketValue") == ""

    r = on_field_change(r, "superfineFinishQty", "12.5 sq.ft")
    assert r.get("superfineFinish") == "11250"


def test_non_numeric_fields_do_not_touch_aggregates():
    r = apply_field_changes(blank_record(), [("presentValueQty", "1"), ("presentValueRate", "999")])
    before = aggregates(r)
    r = on_field_change(r, "clientName", "Ramesh Patel")
    assert aggregates(r) == before
    assert r.get("clientName") == "Ramesh Patel"


def test_calculated_keys_are_read_only():
    with pytest.raises(ValueError):
        on_field_change(blank_record(), "fairMarketValue", "100")
    with pytest.raises(ValueError):
        on_field_change(blank_record(), "presentValue", "100")


def test_apply_field_changes_can_skip_calculated_keys():
    r = apply_field_changes(
        blank_record(),
        [("presentValueQty", "2"), ("presentValueRate", "1000"), ("fairMarketValue", "999999")],
        skip_derived=True,
    )
    assert r.get("fairMarketValue") == "2000"


def test_recompute_derived_fixes_stale_values():
    stale = blank_record(presentValueQty="3", presentValueRate="1000", presentValue="1", fairMarketValue="1")
    fixed = recompute_derived(stale)
    assert fixed.get("presentValue") == "3000"
    assert fixed.get("fairMarketValue") == "3000"
    assert recompute_derived(fixed) is fixed


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12", 12.0),
        (" 3e2", 300.0),
        ("-4.5", -4.5),
        (".5", 0.5),
        ("", 0.0),
        (None, 0.0),
        ("abc", 0.0),
        ("nan", 0.0),
        ("Infinity", 0.0),
        (7, 7.0),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_format_number():
    assert format_number(5000.0) == "5000"
    assert format_number(12.5) == "12.5"
    assert format_number(float("inf")) == ""


def test_construction_section_value_and_totals():
    r = blank_record()
    r = on_field_change(r, construction_key("office1", "areaSMT"), "20")
    r = on_field_change(r, construction_key("office1", "areaSYD"), "23.92")
    r = on_field_change(r, construction_key("office1", "ratePerSYD"), "1500")
    r = on_field_change(r, construction_key("shed", "areaSMT"), "100")
    r = on_field_change(r, construction_key("shed", "ratePerSYD"), "800")

    assert r.get(construction_key("office1", "value")) == "30000"
    assert r.get(construction_key("shed", "value")) == "80000"
    assert r.get(construction_key("total", "totalValue")) == "110000"
    assert r.get(construction_key("total", "roundedValue")) == "110000"
    assert r.get(construction_key("total", "areaSMT")) == "120"
    assert r.get(construction_key("total", "areaSYD")) == "23.92"
    # line item aggregates are independent of the construction sheet
    assert r.get("fairMarketValue") == ""


def test_construction_totals_are_read_only():
    with pytest.raises(ValueError):
        on_field_change(blank_record(), construction_key("total", "totalValue"), "1")
    with pytest.raises(ValueError):
        on_field_change(blank_record(), construction_key("shed", "value"), "1")
