"""Tests for the glass catalog and pricing."""

import pytest

from glassvoice.schemas.order_schema import GlassType
from glassvoice.tools.catalog import (
    GLASS_CATALOG,
    calculate_price,
    coerce_glass_type,
    list_glass_types,
    type_multiplier,
)


class TestCalculatePrice:
    def test_tempered_small_pane(self):
        assert calculate_price(GlassType.TEMPERED, 500, 300, 10) == (11.25, 112.5)

    def test_tempered_standard_window(self):
        assert calculate_price(GlassType.TEMPERED, 1200, 800, 5) == (72.0, 360.0)

    def test_float_has_no_markup(self):
        assert calculate_price(GlassType.FLOAT, 1000, 1000, 1) == (50.0, 50.0)

    def test_laminated_multiplier(self):
        assert calculate_price(GlassType.LAMINATED, 1000, 500, 4) == (45.0, 180.0)

    def test_custom_base_price(self):
        assert calculate_price(GlassType.FLOAT, 1000, 1000, 2, base_price=80.0) == (80.0, 160.0)

    def test_total_uses_rounded_unit_price(self):
        unit, total = calculate_price(GlassType.INSULATED, 333, 333, 3)
        assert total == round(unit * 3, 2)


class TestTypeMultiplier:
    @pytest.mark.parametrize(
        "glass_type,expected",
        [
            (GlassType.FLOAT, 1.0),
            (GlassType.TEMPERED, 1.5),
            (GlassType.LAMINATED, 1.8),
            (GlassType.INSULATED, 2.2),
            (GlassType.FROSTED, 1.0),
        ],
    )
    def test_multipliers(self, glass_type, expected):
        assert type_multiplier(glass_type) == expected

    def test_unknown_type_defaults(self):
        assert type_multiplier(None) == 1.0


class TestCoerceGlassType:
    def test_enum_passthrough(self):
        assert coerce_glass_type(GlassType.LOW_E) is GlassType.LOW_E

    def test_enum_value(self):
        assert coerce_glass_type("TEMPERED") is GlassType.TEMPERED

    def test_spoken_alias(self):
        assert coerce_glass_type("double glazed") is GlassType.INSULATED

    def test_lower_case_value_with_underscore(self):
        assert coerce_glass_type("low_e") is GlassType.LOW_E

    def test_unknown(self):
        assert coerce_glass_type("unobtainium") is None

    def test_none(self):
        assert coerce_glass_type(None) is None


class TestCatalogListing:
    def test_every_type_listed(self):
        assert len(list_glass_types()) == len(GlassType)

    def test_catalog_covers_every_type(self):
        assert set(GLASS_CATALOG) == set(GlassType)
