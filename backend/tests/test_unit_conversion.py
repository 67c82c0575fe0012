"""Tests for unit conversion between weight, volume and count units."""

import logging
from decimal import Decimal

import pytest

from inventory_engine.core.exceptions import UnitConversionError
from inventory_engine.services.unit_conversion import (
    UnitCategory,
    are_units_compatible,
    convert_or_fallback,
    convert_units,
    convert_units_strict,
    get_unit_category,
)


class TestConvertUnits:
    def test_kg_to_g(self):
        assert convert_units(1, "kg", "g") == Decimal("1000")

    def test_g_to_kg(self):
        assert convert_units(1000, "g", "kg") == Decimal("1")

    def test_pound_to_ounce(self):
        result = convert_units(1, "lb", "oz")
        assert float(result) == pytest.approx(16.0, rel=1e-4)

    def test_tablespoon_to_ml(self):
        assert convert_units(2, "tbsp", "ml") == Decimal("29.5736")

    def test_dozen_to_each(self):
        assert convert_units(2, "dozen", "each") == Decimal("24")

    def test_case_and_whitespace_insensitive(self):
        assert convert_units(1, "  KG ", "G") == Decimal("1000")

    def test_same_unit_returns_input_unchanged(self):
        assert convert_units(Decimal("3.3333"), "oz", "OZ") == Decimal("3.3333")

    def test_round_trip(self):
        there = convert_units(Decimal("2.5"), "gal", "l")
        back = convert_units(there, "l", "gal")
        assert float(back) == pytest.approx(2.5)

    def test_incompatible_categories(self):
        assert convert_units(5, "g", "ml") is None

    def test_unknown_unit(self):
        assert convert_units(5, "handful", "g") is None
        assert convert_units(5, "g", "handful") is None

    def test_same_unknown_unit_is_still_unknown(self):
        assert convert_units(5, "handful", "handful") is None

    def test_missing_unit(self):
        assert convert_units(5, None, "g") is None
        assert convert_units(5, "", "g") is None

    def test_accepts_floats_and_strings(self):
        assert convert_units(0.5, "kg", "g") == Decimal("500")
        assert convert_units("0.25", "l", "ml") == Decimal("250")


class TestUnitQueries:
    def test_get_unit_category(self):
        assert get_unit_category("lbs") == UnitCategory.WEIGHT
        assert get_unit_category("Fl Oz") == UnitCategory.VOLUME
        assert get_unit_category("portion") == UnitCategory.COUNT
        assert get_unit_category("pinch") is None

    def test_are_units_compatible(self):
        assert are_units_compatible("kg", "oz") is True
        assert are_units_compatible("cup", "ml") is True
        assert are_units_compatible("cup", "kg") is False
        assert are_units_compatible("pinch", "pinch") is False


class TestStrictConversion:
    def test_returns_value_when_compatible(self):
        assert convert_units_strict(1, "l", "ml") == Decimal("1000")

    def test_raises_on_incompatible(self):
        with pytest.raises(UnitConversionError) as exc_info:
            convert_units_strict(2, "cups", "kg", item_name="Flour")
        assert exc_info.value.from_unit == "cups"
        assert exc_info.value.to_unit == "kg"
        assert "Flour" in str(exc_info.value)


class TestConvertOrFallback:
    def test_converts_when_possible(self):
        qty, fell_back = convert_or_fallback(1, "kg", "g")
        assert qty == Decimal("1000")
        assert fell_back is False

    def test_missing_unit_is_not_a_fallback(self, caplog):
        with caplog.at_level(logging.WARNING):
            qty, fell_back = convert_or_fallback(3, None, "oz")
        assert qty == Decimal("3")
        assert fell_back is False
        assert "degraded_accuracy" not in caplog.text

    def test_incompatible_units_use_raw_quantity_and_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            qty, fell_back = convert_or_fallback(2, "cups", "kg", context="Flour")
        assert qty == Decimal("2")
        assert fell_back is True
        assert "degraded_accuracy" in caplog.text
        assert "'cups' to 'kg'" in caplog.text
        assert "Flour" in caplog.text
