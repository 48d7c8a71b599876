"""
Tests for free-text technical data parsers and slug helpers.

Tests cover:
- Price range parsing (RD$ ranges, single prices, garbage)
- Unit-suffixed numeric fields (cc, Nm, L, kg, HP)
- Lenient int/bool coercion used by CSV import
- Slugs, color folders and phone normalization
"""

import pytest

from api.models.user import normalize_phone
from shared.parsers import (
    PriceRange,
    format_price,
    format_price_range,
    parse_bool,
    parse_engine_size,
    parse_fuel_capacity,
    parse_horsepower,
    parse_int,
    parse_price_range,
    parse_torque,
    parse_weight,
)
from shared.slug import (
    color_slug,
    create_motorcycle_slug,
    format_colors,
    generate_unique_slug,
    humanize_slug,
    parse_colors,
    slugify,
)


# =============================================================================
# Price Ranges
# =============================================================================


class TestParsePriceRange:
    def test_currency_range(self):
        assert parse_price_range("RD$50,000 - RD$75,000") == PriceRange(50000.0, 75000.0)

    def test_compact_range(self):
        assert parse_price_range("$50000-75000") == PriceRange(50000.0, 75000.0)

    def test_single_price(self):
        assert parse_price_range("RD$125,000") == PriceRange(125000.0, 125000.0)

    @pytest.mark.parametrize("value", [None, "", "   ", "consultar"])
    def test_no_number_returns_none(self, value):
        assert parse_price_range(value) is None

    def test_format_price_range(self):
        assert format_price_range(PriceRange(50000, 75000)) == "RD$50,000 - RD$75,000"
        assert format_price_range(PriceRange(9000, 9000)) == "RD$9,000"
        assert format_price_range(None) == "N/A"

    def test_format_price_other_currency(self):
        assert format_price(1500, "USD") == "USD 1,500"


# =============================================================================
# Numeric Specification Fields
# =============================================================================


class TestParseSpecs:
    def test_engine_size(self):
        assert parse_engine_size("150cc") == 150.0
        assert parse_engine_size("150 cm³") == 150.0
        assert parse_engine_size("1500") == 1500.0

    def test_torque(self):
        assert parse_torque("15 Nm") == 15.0
        assert parse_torque("13.5N·m") == 13.5

    def test_fuel_capacity(self):
        assert parse_fuel_capacity("12 Litros") == 12.0
        assert parse_fuel_capacity("14.5 L") == 14.5
        assert parse_fuel_capacity("12 liters") == 12.0

    def test_weight_with_thousands_separator(self):
        assert parse_weight("1,250 kg") == 1250.0
        assert parse_weight("150 kilos") == 150.0

    def test_horsepower(self):
        assert parse_horsepower("18.76 BHP") == 18.76
        assert parse_horsepower("110 CV") == 110.0

    def test_blank_is_none(self):
        assert parse_engine_size(None) is None
        assert parse_weight("") is None
        assert parse_torque("n/a") is None


class TestCoercion:
    def test_parse_int(self):
        assert parse_int("2024") == 2024
        assert parse_int(7) == 7
        assert parse_int(7.9) == 7
        assert parse_int("") is None
        assert parse_int("abc") is None

    def test_parse_int_digits_only(self):
        assert parse_int("160 cc", digits_only=True) == 160
        assert parse_int("cc", digits_only=True) is None

    @pytest.mark.parametrize("value", ["1", "true", "YES", "si", "Sí", "on", True])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "no", "", None, False, "maybe"])
    def test_falsy(self, value):
        assert parse_bool(value) is False


# =============================================================================
# Slugs
# =============================================================================


class TestSlugs:
    def test_slugify(self):
        assert slugify("Harley-Davidson Fat Boy") == "harley-davidson-fat-boy"
        assert slugify("Motocicletas Económicas") == "motocicletas-economicas"

    def test_slugify_empty_gets_unique_item_slug(self):
        slug = slugify("¡¡!!")
        assert slug.startswith("item-")
        assert slug != slugify("¡¡!!")

    def test_color_slug(self):
        assert color_slug("Rojo Metálico") == "rojo-metalico"
        assert color_slug(None) == ""

    def test_humanize_slug(self):
        assert humanize_slug("yamaha-mt-07") == "Yamaha Mt 07"

    def test_generate_unique_slug(self):
        assert generate_unique_slug("Honda CB190R", []) == "honda-cb190r"
        taken = ["honda-cb190r", "honda-cb190r-1"]
        assert generate_unique_slug("Honda CB190R", taken) == "honda-cb190r-2"

    def test_create_motorcycle_slug(self):
        assert create_motorcycle_slug("Yamaha", "MT-07") == "yamaha-mt-07"

    def test_parse_and_format_colors(self):
        colors = parse_colors("rojo, AZUL | negro mate")
        assert colors == ["Rojo", "Azul", "Negro Mate"]
        assert format_colors(colors) == "Rojo, Azul, Negro Mate"
        assert format_colors([]) == "N/A"


# =============================================================================
# Phone Numbers
# =============================================================================


class TestNormalizePhone:
    def test_local_number_gets_country_code(self):
        assert normalize_phone("809-555-1234") == "+18095551234"

    def test_international_number_kept(self):
        assert normalize_phone("+34 612 345 678") == "+34612345678"

    def test_blank_is_none(self):
        assert normalize_phone(None) is None
        assert normalize_phone("  ") is None

    def test_invalid_number_raises(self):
        with pytest.raises(ValueError):
            normalize_phone("12")
