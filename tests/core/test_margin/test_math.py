"""Tests for bitoro/core/margin/math.py: decimal context and rounding helpers."""

from decimal import Decimal as D, localcontext

import pytest

from bitoro.core.margin.clock import fixed_clock, system_clock
from bitoro.core.margin.math import (
    DIV_DECIMAL_PLACES,
    MARGIN_CONTEXT,
    div,
    margin_context,
    round_down,
    to_decimal,
)


class TestToDecimal:
    def test_int(self):
        assert to_decimal("x", 3) == D(3)

    def test_str(self):
        assert to_decimal("x", "0.0001") == D("0.0001")

    def test_decimal_passthrough(self):
        v = D("1.5")
        assert to_decimal("x", v) is v

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_decimal("x", 1.5)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal("x", True)

    def test_bad_string(self):
        with pytest.raises(ValueError):
            to_decimal("x", "abc")

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            to_decimal("x", D("NaN"))


class TestDiv:
    def test_exact(self):
        assert div(D(1), D(4)) == D("0.25")

    def test_rounds_half_up_at_20_places(self):
        # 2/3 = 0.666...; the 21st digit rounds the 20th up
        assert div(D(2), D(3)) == D("0.66666666666666666667")
        assert div(D(2), D(3)).as_tuple().exponent == -DIV_DECIMAL_PLACES

    def test_one_third_truncates(self):
        assert div(D(1), D(3)) == D("0.33333333333333333333")

    def test_negative(self):
        assert div(D(-2), D(3)) == D("-0.66666666666666666667")


class TestRoundDown:
    def test_truncates(self):
        assert round_down(D("0.0000399"), 5) == D("0.00003")

    def test_negative_toward_zero(self):
        assert round_down(D("-0.0000399"), 5) == D("-0.00003")


class TestMarginContext:
    def test_context_applied_and_restored(self):
        @margin_context
        def prec():
            from decimal import getcontext
            return getcontext().prec

        with localcontext() as ctx:
            ctx.prec = 10
            assert prec() == MARGIN_CONTEXT.prec
            assert ctx.prec == 10

    def test_division_by_zero_traps(self):
        @margin_context
        def bad():
            return D(1) / D(0)

        with pytest.raises(ArithmeticError):
            bad()


class TestClock:
    def test_fixed_clock(self):
        assert fixed_clock(42)() == 42

    def test_fixed_clock_rejects_negative(self):
        with pytest.raises(ValueError):
            fixed_clock(-1)

    def test_system_clock_is_int(self):
        assert isinstance(system_clock(), int)
