"""
Tests for the code registry and catalog loading.

Run with: pytest test_code_registry.py -v
"""

import json
from decimal import Decimal

import pytest

from hospital_billing import Code, CodeRegistry, CodeType, UnknownCodeError, create_default_code_registry
from hospital_billing.exceptions import DuplicateCodeError
from hospital_billing.records import JsonCatalogSource


@pytest.fixture
def registry():
    return CodeRegistry([
        Code("CONS-GP", "General practitioner consultation", Decimal("40.00"), CodeType.SERVICE, "CONSULTATION"),
        Code("I10", "Essential (primary) hypertension", Decimal("45.00"), CodeType.DIAGNOSTIC),
        Code("0DTJ4ZZ", "Resection of appendix", Decimal("4200.00"), CodeType.PROCEDURE),
    ])


class TestCode:
    """Test Code normalisation and validation."""

    def test_identifier_normalised(self):
        """Test that identifiers are stripped and upper-cased."""
        code = Code("  ward-icu ", "ICU", Decimal("2000"), CodeType.SERVICE, "ward")
        assert code.code_id == "WARD-ICU"
        assert code.category == "WARD"

    def test_default_category_from_type(self):
        """Test that the category defaults from the code type."""
        assert Code("I10", "x", Decimal("1"), CodeType.DIAGNOSTIC).category == "DIAGNOSIS"
        assert Code("0DTJ4ZZ", "x", Decimal("1"), CodeType.PROCEDURE).category == "PROCEDURE"
        assert Code("CONS-GP", "x", Decimal("1"), "SERVICE").category == "SERVICE"

    def test_price_accepts_strings_and_floats(self):
        """Test that unit prices are converted to Decimal without binary noise."""
        assert Code("A", "x", "12.50", CodeType.SERVICE).unit_price == Decimal("12.50")
        assert Code("B", "x", 0.1, CodeType.SERVICE).unit_price == Decimal("0.1")

    def test_negative_price_rejected(self):
        """Test that a negative unit price is rejected."""
        with pytest.raises(ValueError, match="cannot be negative"):
            Code("BAD", "x", Decimal("-1"), CodeType.SERVICE)

    def test_empty_identifier_rejected(self):
        """Test that an empty identifier is rejected."""
        with pytest.raises(ValueError, match="cannot be empty"):
            Code("  ", "x", Decimal("1"), CodeType.SERVICE)

    def test_code_is_immutable(self):
        """Test that a loaded code cannot be changed."""
        code = Code("I10", "x", Decimal("1"), CodeType.DIAGNOSTIC)
        with pytest.raises(AttributeError):
            code.unit_price = Decimal("0")

    def test_from_dict(self):
        """Test building a code from a catalog entry."""
        code = Code.from_dict({
            "code": "bw03zzz",
            "description": "Plain radiography of chest",
            "unit_price": "110.00",
            "code_type": "PROCEDURE",
            "category": "IMAGING",
        })
        assert code.code_id == "BW03ZZZ"
        assert code.code_type == CodeType.PROCEDURE
        assert code.unit_price == Decimal("110.00")


class TestCodeRegistry:
    """Test registry lookups."""

    def test_lookup(self, registry):
        """Test resolving a known code."""
        code = registry.lookup("I10")
        assert code.description == "Essential (primary) hypertension"
        assert code.unit_price == Decimal("45.00")

    def test_lookup_case_insensitive(self, registry):
        """Test that lookups ignore case and surrounding whitespace."""
        assert registry.lookup(" cons-gp ").code_id == "CONS-GP"

    def test_unknown_code(self, registry):
        """Test that an unknown code raises rather than defaulting."""
        with pytest.raises(UnknownCodeError, match="Z99.9") as exc_info:
            registry.lookup("Z99.9")
        assert exc_info.value.code_id == "Z99.9"

    def test_unknown_code_is_value_error(self, registry):
        """Test that registry errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            registry.lookup("NOPE")

    def test_get_code_returns_none(self, registry):
        """Test the Optional accessor."""
        assert registry.get_code("NOPE") is None
        assert registry.get_code("") is None

    def test_non_string_identifier(self, registry):
        """Test that a non-string identifier is treated as an unknown code."""
        assert registry.get_code(123) is None
        assert registry.get_code(None) is None
        with pytest.raises(UnknownCodeError):
            registry.lookup(123)

    def test_duplicate_codes_rejected(self):
        """Test that duplicate identifiers in a catalog are rejected."""
        with pytest.raises(DuplicateCodeError):
            CodeRegistry([
                Code("I10", "first", Decimal("1"), CodeType.DIAGNOSTIC),
                Code("i10", "second", Decimal("2"), CodeType.DIAGNOSTIC),
            ])

    def test_container_protocol(self, registry):
        """Test len, membership and iteration."""
        assert len(registry) == 3
        assert "I10" in registry
        assert "NOPE" not in registry
        assert {code.code_id for code in registry} == {"CONS-GP", "I10", "0DTJ4ZZ"}

    def test_codes_by_type(self, registry):
        """Test filtering by code type."""
        procedures = registry.codes_by_type(CodeType.PROCEDURE)
        assert [code.code_id for code in procedures] == ["0DTJ4ZZ"]

    def test_registry_is_read_only(self, registry):
        """Test that the backing table cannot be modified."""
        with pytest.raises(TypeError):
            registry._codes["NEW"] = registry.lookup("I10")


class TestCatalogLoading:
    """Test loading catalogs from disk and default data."""

    def test_from_directory(self, tmp_path):
        """Test loading codes.json from a data directory."""
        (tmp_path / "codes.json").write_text(json.dumps([
            {"code": "WARD-GEN-A", "description": "General ward A", "unit_price": "500.00",
             "code_type": "SERVICE", "category": "WARD"},
            {"code": "J18.9", "description": "Pneumonia", "unit_price": 85, "code_type": "DIAGNOSTIC"},
        ]))
        registry = CodeRegistry.from_directory(tmp_path)
        assert len(registry) == 2
        assert registry.lookup("J18.9").unit_price == Decimal("85")
        assert registry.lookup("J18.9").category == "DIAGNOSIS"

    def test_from_source(self, tmp_path):
        """Test loading through a catalog source."""
        (tmp_path / "codes.json").write_text(json.dumps([
            {"code": "CONS-GP", "description": "GP", "unit_price": "40.00", "code_type": "SERVICE"},
        ]))
        registry = CodeRegistry.from_source(JsonCatalogSource(tmp_path))
        assert registry.lookup("CONS-GP").unit_price == Decimal("40.00")

    def test_default_registry_ward_rates(self):
        """Test the sample catalog's ward day rates."""
        registry = create_default_code_registry()
        assert registry.lookup("WARD-ICU").unit_price == Decimal("2000.00")
        assert registry.lookup("WARD-LAB-A").unit_price == Decimal("1500.00")
        assert registry.lookup("WARD-GEN-C").unit_price == Decimal("150.00")
        assert registry.lookup("WARD-DS-SEATER").unit_price == Decimal("300.00")
        assert all(code.category == "WARD" for code in registry if code.code_id.startswith("WARD-"))

    def test_shipped_catalog_matches_default(self):
        """Test that data/codes.json holds the same codes as the default catalog."""
        from pathlib import Path
        shipped = CodeRegistry.from_directory(Path(__file__).parent / "data")
        default = create_default_code_registry()
        assert {c.code_id for c in shipped} == {c.code_id for c in default}
        for code in default:
            assert shipped.lookup(code.code_id) == code


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
