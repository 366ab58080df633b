"""Line item price reconciliation."""

import pytest
from pydantic import ValidationError

from orderdesk.pricing import reconciler
from orderdesk.pricing.rates import GST_RATES, coerce_number
from orderdesk.schemas.order import (
    LineUpdate,
    SetGstRate,
    SetMrpOrDiscount,
    SetQuantity,
    SetSellingPrice,
)
from tests.conftest import make_product


def base_line(tax, gst=18, mrp=118.0, price=118.0, quantity=1):
    product = make_product(gst=gst, mrp=mrp, price=price)
    return reconciler.new_line(product, product.variants[0], quantity, tax)


class TestConversions:
    @pytest.mark.parametrize("rate", GST_RATES)
    @pytest.mark.parametrize("selling_price", [0.0, 1.0, 99.99, 118.0, 12345.67])
    def test_inclusive_round_trip(self, rate, selling_price):
        unit_price = reconciler.to_pre_tax(selling_price, rate)
        assert reconciler.to_inclusive(unit_price, rate) == pytest.approx(selling_price, abs=1e-6)

    @pytest.mark.parametrize("value, expected", [(-5, 0), (0, 0), (42.5, 42.5), (100, 100), (150, 100)])
    def test_discount_clamp(self, value, expected):
        assert reconciler.clamp_discount(value) == expected

    def test_zero_mrp_gives_zero_discount(self):
        assert reconciler.derive_discount_rate(0.0, 50.0) == 0.0

    def test_markup_is_not_a_negative_discount(self):
        assert reconciler.derive_discount_rate(100.0, 120.0) == 0.0

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", float("nan")])
    def test_malformed_numbers_are_zero(self, value):
        assert coerce_number(value) == 0.0

    def test_numeric_strings_are_parsed(self):
        assert coerce_number("1,250.50") == 1250.5


class TestNewLine:
    def test_catalog_prices(self, local_tax):
        line = base_line(local_tax)
        assert line.unit_price == pytest.approx(100.0)
        assert line.selling_price == pytest.approx(118.0)
        assert line.discount_rate == pytest.approx(0.0, abs=1e-9)
        assert line.gst_amount == pytest.approx(18.0)
        assert line.final_item_price == pytest.approx(118.0)
        assert line.variant_name == "Red / M"

    def test_selling_price_falls_back_to_mrp(self, local_tax):
        product = make_product(mrp=236.0, price=None)
        line = reconciler.new_line(product, product.variants[0], 1, local_tax)
        assert line.selling_price == pytest.approx(236.0)

    def test_unsupported_product_rate_becomes_zero(self, local_tax):
        product = make_product(gst=7)
        line = reconciler.new_line(product, product.variants[0], 1, local_tax)
        assert line.gst_tax_rate == 0.0
        assert line.unit_price == pytest.approx(118.0)


class TestEdits:
    def test_discount_scenario(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetMrpOrDiscount(discount_rate=10), local_tax)
        assert line.unit_price == pytest.approx(90.0)
        assert line.selling_price == pytest.approx(106.2)
        assert line.discount_amount == pytest.approx(10.0)
        assert line.gst_amount == pytest.approx(16.2)
        assert line.final_item_price == pytest.approx(106.2)

    def test_selling_price_derives_discount(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetSellingPrice(selling_price=94.4), local_tax)
        assert line.unit_price == pytest.approx(80.0)
        assert line.discount_rate == pytest.approx(20.0)
        assert line.mrp == 118.0

    def test_selling_price_above_mrp(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetSellingPrice(selling_price=130), local_tax)
        assert line.discount_rate == 0.0
        assert line.discount_amount == 0.0
        assert line.final_item_price == pytest.approx(130.0)

    def test_selling_price_with_zero_mrp(self, local_tax):
        line = base_line(local_tax, mrp=0.0, price=0.0)
        line = reconciler.reconcile(line, SetSellingPrice(selling_price=59), local_tax)
        assert line.discount_rate == 0.0
        assert line.unit_price == pytest.approx(50.0)

    def test_new_mrp_keeps_discount(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetMrpOrDiscount(discount_rate=10), local_tax)
        line = reconciler.reconcile(line, SetMrpOrDiscount(mrp=236), local_tax)
        assert line.discount_rate == pytest.approx(10.0)
        assert line.unit_price == pytest.approx(180.0)
        assert line.selling_price == pytest.approx(212.4)

    @pytest.mark.parametrize("rate, stored", [(150, 100.0), (-20, 0.0)])
    def test_out_of_range_discount_is_clamped(self, local_tax, rate, stored):
        line = reconciler.reconcile(base_line(local_tax), SetMrpOrDiscount(discount_rate=rate), local_tax)
        assert line.discount_rate == stored
        assert 0.0 <= line.unit_price <= 100.0 + 1e-9

    def test_quantity_keeps_inclusive_price(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetQuantity(quantity=3), local_tax)
        assert line.selling_price == pytest.approx(118.0)
        assert line.unit_price == pytest.approx(100.0)
        assert line.gst_amount == pytest.approx(54.0)
        assert line.final_item_price == pytest.approx(354.0)

    def test_quantity_below_one(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetQuantity(quantity=0), local_tax)
        assert line.quantity == 1

    def test_gst_rate_change_keeps_pre_tax_price(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetGstRate(gst_tax_rate=12), local_tax)
        assert line.gst_tax_rate == 12.0
        assert line.unit_price == pytest.approx(100.0)
        assert line.selling_price == pytest.approx(112.0)
        pre_tax_mrp = 118.0 / 1.12
        assert line.discount_rate == pytest.approx((pre_tax_mrp - 100.0) / pre_tax_mrp * 100)
        assert line.gst_amount == pytest.approx(12.0)

    def test_unsupported_gst_rate_rejected(self):
        with pytest.raises(ValidationError, match="GST rate must be one of"):
            SetGstRate(gst_tax_rate=7)

    def test_malformed_selling_price_is_zero(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetSellingPrice(selling_price="abc"), local_tax)
        assert line.selling_price == 0.0
        assert line.discount_rate == 100.0

    def test_edits_return_new_lines(self, local_tax):
        original = base_line(local_tax)
        reconciler.reconcile(original, SetQuantity(quantity=5), local_tax)
        assert original.quantity == 1

    def test_unknown_edit(self, local_tax):
        with pytest.raises(TypeError):
            reconciler.reconcile(base_line(local_tax), object(), local_tax)


class TestInvariants:
    @pytest.mark.parametrize("edit", [
        SetSellingPrice(selling_price=99.5),
        SetMrpOrDiscount(mrp=300, discount_rate=12.5),
        SetQuantity(quantity=4),
        SetGstRate(gst_tax_rate=5),
        SetGstRate(gst_tax_rate=0),
    ])
    def test_invariants_hold_after_edit(self, local_tax, interstate_tax, edit):
        for tax in (local_tax, interstate_tax):
            line = reconciler.reconcile(base_line(tax, quantity=2), edit, tax)
            rate = line.gst_tax_rate
            assert line.unit_price == pytest.approx(line.selling_price / (1 + rate / 100))
            assert line.gst_amount == pytest.approx(line.unit_price * line.quantity * rate / 100)
            assert line.final_item_price == pytest.approx(line.unit_price * line.quantity + line.gst_amount)
            assert line.sgst_amount == line.cgst_amount
            assert line.igst_amount + line.cgst_amount + line.sgst_amount == pytest.approx(line.gst_amount)


class TestTaxSplit:
    def test_same_state(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetMrpOrDiscount(discount_rate=10), local_tax)
        assert line.igst_amount == 0.0
        assert line.cgst_amount == pytest.approx(8.1)
        assert line.sgst_amount == pytest.approx(8.1)

    def test_other_state(self, interstate_tax):
        line = reconciler.reconcile(base_line(interstate_tax), SetMrpOrDiscount(discount_rate=10), interstate_tax)
        assert line.igst_amount == pytest.approx(16.2)
        assert line.cgst_amount == 0.0
        assert line.sgst_amount == 0.0

    def test_resplit_moves_tax(self, local_tax, interstate_tax):
        line = base_line(local_tax)
        moved = reconciler.resplit(line, interstate_tax)
        assert moved.igst_amount == pytest.approx(line.gst_amount)
        assert moved.unit_price == line.unit_price


class TestPartialUpdates:
    def kinds(self, **fields):
        return [edit.kind for edit in reconciler.edits_from_update(LineUpdate(**fields))]

    def test_selling_price_only(self):
        assert self.kinds(selling_price=100) == ["selling_price"]

    def test_discount_wins_over_selling_price(self):
        assert self.kinds(selling_price=100, discount_rate=5) == ["mrp_or_discount"]

    def test_mrp_wins_over_selling_price(self):
        assert self.kinds(selling_price=100, mrp=200) == ["mrp_or_discount"]

    def test_rate_and_quantity_come_first(self):
        assert self.kinds(gst_tax_rate=12, quantity=2, selling_price=50) == ["gst_rate", "quantity", "selling_price"]

    def test_empty_update(self):
        assert self.kinds() == []

    def test_apply_update(self, local_tax):
        line = reconciler.apply_update(base_line(local_tax), LineUpdate(selling_price=118, mrp=236), local_tax)
        assert line.mrp == 236.0
        assert line.discount_rate == 0.0
        assert line.unit_price == pytest.approx(200.0)
        assert line.selling_price == pytest.approx(236.0)

    def test_mrp_with_selling_price_keeps_edited_discount(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetMrpOrDiscount(discount_rate=10), local_tax)
        line = reconciler.apply_update(line, LineUpdate(selling_price=50, mrp=236), local_tax)
        assert line.discount_rate == pytest.approx(10.0)
        assert line.unit_price == pytest.approx(180.0)
        assert line.selling_price == pytest.approx(212.4)


class TestMerge:
    def test_duplicate_add_keeps_edited_price(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax, quantity=2), SetMrpOrDiscount(discount_rate=10), local_tax)
        merged = reconciler.merge_duplicate(line, 3, local_tax)
        assert merged.quantity == 5
        assert merged.unit_price == line.unit_price
        assert merged.mrp == line.mrp
        assert merged.selling_price == pytest.approx(106.2)
        assert merged.final_item_price == pytest.approx(531.0)
        assert merged.discount_amount == pytest.approx(50.0)


class TestRounding:
    def test_rounded_copy(self, local_tax):
        line = reconciler.reconcile(base_line(local_tax), SetSellingPrice(selling_price=99.999), local_tax)
        shown = reconciler.rounded(line)
        assert shown.selling_price == 100.0
        assert shown.unit_price == round(line.unit_price, 2)
        assert line.selling_price == 99.999
