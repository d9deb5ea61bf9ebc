"""
Tests para el cálculo de montos (pricing)

Cubren las fórmulas por línea, la agregación de la factura, el descuento
global y la identidad net_amount = subtotal - discount + gst_amount.
"""

import pytest
from decimal import Decimal

from billing.modules.pricing.calculator import (
    calculate_bill, calculate_line, check_net_identity, to_money
)


class TestCalculateLine:

    def test_reference_line(self):
        """rate=100, qty=2, sin descuento, GST 18%"""
        line = calculate_line(rate=Decimal("100"), quantity=Decimal("2"), discount_perc=Decimal("0"), gst_perc=Decimal("18"))
        assert line.base_amount == Decimal("200.00")
        assert line.taxable_amount == Decimal("200.00")
        assert line.line_gst == Decimal("36.00")
        assert line.line_total == Decimal("236.00")

    def test_line_discount_applies_before_tax(self):
        line = calculate_line(rate="250", quantity="3", discount_perc="10", gst_perc="12")
        assert line.base_amount == Decimal("750.00")
        assert line.discount_amount == Decimal("75.00")
        assert line.taxable_amount == Decimal("675.00")
        assert line.line_gst == Decimal("81.00")
        assert line.line_total == Decimal("756.00")

    def test_default_gst_when_unspecified(self):
        line = calculate_line(rate="10", quantity="1")
        assert line.gst_perc == Decimal("18")
        assert line.line_gst == Decimal("1.80")

    def test_explicit_zero_gst_is_kept(self):
        line = calculate_line(rate="10", quantity="1", gst_perc="0")
        assert line.gst_perc == Decimal("0")
        assert line.line_total == Decimal("10.00")

    def test_custom_default_gst(self):
        line = calculate_line(rate="100", quantity="1", default_gst_perc=Decimal("5"))
        assert line.line_gst == Decimal("5.00")

    def test_float_inputs_do_not_leak_binary_error(self):
        line = calculate_line(rate=0.1, quantity=3, gst_perc=0)
        assert line.taxable_amount == Decimal("0.30")

    def test_rounding_half_up(self):
        # 33.33 * 18% = 5.9994 -> 6.00
        line = calculate_line(rate="33.33", quantity="1", gst_perc="18")
        assert line.line_gst == Decimal("6.00")
        # 0.125 -> 0.13
        line = calculate_line(rate="0.125", quantity="1", gst_perc="0")
        assert line.taxable_amount == Decimal("0.13")

    def test_line_total_matches_closed_formula(self):
        """lineTotal == rate*qty*(1-d/100)*(1+g/100) dentro del redondeo"""
        for rate, qty, disc, gst in [
            ("19.99", "3", "7.5", "18"),
            ("1234.56", "0.5", "0", "28"),
            ("5", "17", "100", "12"),
            ("0.99", "250", "33.33", "5"),
        ]:
            line = calculate_line(rate=rate, quantity=qty, discount_perc=disc, gst_perc=gst)
            expected = (
                Decimal(rate) * Decimal(qty)
                * (1 - Decimal(disc) / 100)
                * (1 + Decimal(gst) / 100)
            )
            assert abs(line.line_total - expected) <= Decimal("0.02")

    @pytest.mark.parametrize("kwargs", [
        {"rate": "-1", "quantity": "1"},
        {"rate": "1", "quantity": "0"},
        {"rate": "1", "quantity": "-2"},
        {"rate": "1", "quantity": "1", "discount_perc": "101"},
        {"rate": "1", "quantity": "1", "discount_perc": "-1"},
        {"rate": "1", "quantity": "1", "gst_perc": "-5"},
        {"rate": "abc", "quantity": "1"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            calculate_line(**kwargs)


class TestCalculateBill:

    def test_reference_bill(self):
        totals = calculate_bill([calculate_line("100", "2", "0", "18")])
        assert totals.subtotal == Decimal("200.00")
        assert totals.gst_amount == Decimal("36.00")
        assert totals.discount == Decimal("0.00")
        assert totals.net_amount == Decimal("236.00")

    def test_overall_discount_only_on_subtotal(self):
        totals = calculate_bill([calculate_line("100", "2", "0", "18")], overall_discount_perc="10")
        assert totals.discount == Decimal("20.00")
        # El GST no se reduce con el descuento global
        assert totals.gst_amount == Decimal("36.00")
        assert totals.net_amount == Decimal("216.00")

    def test_multiple_lines(self):
        lines = [
            calculate_line("100", "2", "0", "18"),
            calculate_line("45.50", "4", "5", "12"),
        ]
        totals = calculate_bill(lines, overall_discount_perc="2.5")
        assert totals.subtotal == Decimal("372.90")
        assert totals.gst_amount == Decimal("56.75")
        assert totals.discount == Decimal("9.32")
        assert totals.net_amount == Decimal("420.33")

    def test_net_identity_holds_exactly(self):
        cases = [
            ([("33.33", "3", "7", "18"), ("0.01", "1", "0", "28")], "12.5"),
            ([("999.99", "1.5", "15", "5")], "3.33"),
            ([("1", "1", "0", "0")], "100"),
            ([("12.34", "7", "0", "18"), ("56.78", "2", "50", "12"), ("0.5", "9", "1", "5")], "0"),
        ]
        for raw_lines, overall in cases:
            totals = calculate_bill([calculate_line(*args) for args in raw_lines], overall)
            assert totals.net_amount == totals.subtotal - totals.discount + totals.gst_amount
            assert check_net_identity(totals.subtotal, totals.discount, totals.gst_amount, totals.net_amount)

    def test_empty_bill_rejected(self):
        with pytest.raises(ValueError):
            calculate_bill([])

    def test_invalid_overall_discount(self):
        with pytest.raises(ValueError):
            calculate_bill([calculate_line("1", "1")], overall_discount_perc="150")


def test_to_money():
    assert to_money("1.005") == Decimal("1.01")
    assert to_money(Decimal("2")) == Decimal("2.00")
