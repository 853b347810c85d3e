from __future__ import annotations

from decimal import Decimal

from gst_invoicer.services.calculator import (
    InvoiceTotals,
    TaxConfiguration,
    build_line_item,
    calculate_totals,
    to_decimal,
)


def _items(*pairs):
    return [build_line_item(f"item {idx}", qty, rate) for idx, (qty, rate) in enumerate(pairs)]


def test_single_rate_totals():
    totals = calculate_totals(_items((2, 100), (1, 50)), TaxConfiguration.single(18))

    assert totals.subtotal == Decimal("250")
    assert totals.gst_amount == Decimal("45")
    assert totals.igst_amount == totals.sgst_amount == totals.cgst_amount == 0
    assert totals.total_tax == Decimal("45")
    assert totals.total == Decimal("295")


def test_split_rate_totals():
    totals = calculate_totals(_items((1, 1000)), TaxConfiguration.split(igst_rate=18, sgst_rate=0, cgst_rate=0))

    assert totals.subtotal == Decimal("1000")
    assert totals.igst_amount == Decimal("180")
    assert totals.gst_amount == 0
    assert totals.total == Decimal("1180")


def test_split_mode_sums_every_component():
    totals = calculate_totals(_items((3, "33.33")), TaxConfiguration.split(igst_rate=5, sgst_rate=9, cgst_rate=9))

    assert totals.total_tax == totals.igst_amount + totals.sgst_amount + totals.cgst_amount
    assert totals.total == totals.subtotal + totals.total_tax


def test_empty_items_are_all_zero():
    for config in (TaxConfiguration.single(18), TaxConfiguration.split(18, 9, 9)):
        totals = calculate_totals([], config)
        assert totals == InvoiceTotals()
        assert totals.total == 0


def test_line_amount_is_quantity_times_rate():
    items = _items(("2.5", "40.10"), (3, "0.1"))
    totals = calculate_totals(items, TaxConfiguration.single(0))

    assert [item.amount for item in items] == [Decimal("100.250"), Decimal("0.3")]
    assert totals.subtotal == sum(item.amount for item in items)


def test_recompute_is_idempotent():
    items = _items((2, 100), (1, 50))
    config = TaxConfiguration.single(18)

    assert calculate_totals(items, config) == calculate_totals(items, config)


def test_changed_quantity_matches_fresh_calculation():
    items = _items((2, 100), (1, 50))
    config = TaxConfiguration.single(12)

    edited = [items[0].with_quantity(5), items[1]]
    fresh = _items((5, 100), (1, 50))

    assert edited[0].amount == Decimal("500")
    assert calculate_totals(edited, config) == calculate_totals(fresh, config)


def test_with_rate_returns_new_item():
    item = build_line_item("Consulting", 2, 100)
    repriced = item.with_rate("150")

    assert item.amount == Decimal("200")
    assert repriced.amount == Decimal("300")


def test_item_order_does_not_matter():
    config = TaxConfiguration.split(igst_rate=0, sgst_rate=9, cgst_rate=9)
    items = _items((1, "10.55"), (4, "2.25"), (7, 3))

    assert calculate_totals(items, config) == calculate_totals(list(reversed(items)), config)


def test_rounded_snapshot_keeps_identities():
    totals = calculate_totals(_items((3, "33.335")), TaxConfiguration.split(igst_rate=0, sgst_rate="2.5", cgst_rate="2.5"))
    snapshot = totals.rounded()

    assert snapshot.subtotal == Decimal("100.01")
    assert snapshot.sgst_amount == Decimal("2.50")
    assert snapshot.cgst_amount == Decimal("2.50")
    assert snapshot.total_tax == snapshot.igst_amount + snapshot.sgst_amount + snapshot.cgst_amount
    assert snapshot.total == snapshot.subtotal + snapshot.total_tax


def test_rounding_is_half_up():
    totals = calculate_totals(_items((1, "0.125")), TaxConfiguration.single(0)).rounded()
    assert totals.subtotal == Decimal("0.13")


def test_blank_and_malformed_inputs_count_as_zero():
    assert to_decimal(None) == 0
    assert to_decimal("") == 0
    assert to_decimal("  ") == 0
    assert to_decimal("abc") == 0
    assert to_decimal("nan") == 0
    assert to_decimal("1,250.50") == Decimal("1250.50")
    assert to_decimal(0.1) == Decimal("0.1")

    item = build_line_item("Blank", "", None)
    assert item.amount == 0


def test_negative_values_propagate():
    totals = calculate_totals(_items((-1, 100)), TaxConfiguration.single(18))
    assert totals.subtotal == Decimal("-100")
    assert totals.total == Decimal("-118")


def test_place_of_supply_same_state_splits_cgst_sgst():
    config = TaxConfiguration.for_place_of_supply(18, "Maharashtra", " maharashtra ")

    assert config.is_split
    assert config.cgst_rate == config.sgst_rate == Decimal("9")
    assert config.igst_rate == 0


def test_place_of_supply_other_state_is_igst():
    config = TaxConfiguration.for_place_of_supply(18, "Maharashtra", "Karnataka")

    assert config.is_split
    assert config.igst_rate == Decimal("18")
    assert config.cgst_rate == config.sgst_rate == 0


def test_place_of_supply_unknown_state_is_single_rate():
    config = TaxConfiguration.for_place_of_supply(18, None, "Karnataka")

    assert not config.is_split
    assert config.gst_rate == Decimal("18")
