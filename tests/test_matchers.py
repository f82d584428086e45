"""
Tests for the identity / tax notice matchers.
"""

import pytest

from twoddoc.errors import CircuitEncodingError, MissingFieldError
from twoddoc.models import CircuitField, FieldMatcher
from twoddoc.modules.matchers import (
    FIELD_TYPE_NUMERIC,
    FIELD_TYPE_PATTERN,
    MATCHER_FIELD_WIDTH,
    MatcherThresholds,
    id_matchers,
    split_declarant_name,
    taxes_matchers,
)
from twoddoc.modules.zones import GS
from twoddoc.parser import TwoDDocParser


@pytest.fixture
def parse_signed(signer):
    parser = TwoDDocParser(trust_store=signer.trust_store)
    return parser.parse


@pytest.fixture
def identity(parse_signed, identity_payload):
    return parse_signed(identity_payload)


@pytest.fixture
def taxes(parse_signed, taxes_payload):
    return parse_signed(taxes_payload)


class TestIdMatchers:

    def test_multiple_profile(self, identity):
        matchers = id_matchers(identity)
        assert sorted(matchers) == ["id_first_name", "id_last_name"]

        first = matchers["id_first_name"]
        assert isinstance(first, FieldMatcher)
        assert first.field_type == FIELD_TYPE_PATTERN
        assert first.tdd_field_id == "60"
        # Only the first given name is matched
        assert first.pattern.storage.rstrip(b"\x00") == b"JEAN"
        assert len(first.pattern.storage) == MATCHER_FIELD_WIDTH

    def test_pattern_has_no_separator(self, identity):
        last = id_matchers(identity)["id_last_name"]
        assert last.pattern.length == len("DUPONT")

    def test_tenant_profile(self, identity):
        matchers = id_matchers(identity, profile="tenant")
        assert isinstance(matchers["id_last_name"], CircuitField)
        assert matchers["id_last_name"].storage.rstrip(b"\x00") == b"DUPONT"

    def test_missing_name(self, parse_signed, make_payload):
        document = parse_signed(make_payload(f"62DUPONT{GS}68M"))
        with pytest.raises(MissingFieldError) as excinfo:
            id_matchers(document)
        assert excinfo.value.field_id == "60"

    def test_unknown_profile(self, identity):
        with pytest.raises(ValueError):
            id_matchers(identity, profile="landlord")


class TestTaxesMatchers:

    def test_multiple_profile(self, taxes):
        matchers = taxes_matchers(taxes)
        assert matchers["taxes_first_name"].pattern.storage.rstrip(b"\x00") == b"JEAN"
        assert matchers["taxes_last_name"].pattern.storage.rstrip(b"\x00") == b"DUPONT"

        revenue = matchers["taxes_base_revenue"]
        assert revenue.tdd_field_id == "41"
        assert revenue.field_type == FIELD_TYPE_NUMERIC
        assert revenue.value == 300
        assert revenue.inequality == 1
        assert revenue.pattern is None

        year = matchers["taxes_year"]
        assert year.tdd_field_id == "45"
        assert year.value == 2023
        assert year.inequality == 0

    def test_custom_thresholds(self, taxes):
        thresholds = MatcherThresholds(min_revenue=25000, tax_year=2024)
        matchers = taxes_matchers(taxes, thresholds=thresholds)
        assert matchers["taxes_base_revenue"].value == 25000
        assert matchers["taxes_year"].value == 2024

    def test_tenant_profile(self, taxes):
        matchers = taxes_matchers(taxes, profile="tenant")
        assert matchers["taxes_base_revenue"] == 300
        assert matchers["taxes_year"] == 2023
        assert matchers["taxes_last_name"].storage.rstrip(b"\x00") == b"DUPONT"

    def test_missing_year(self, parse_signed, make_payload):
        document = parse_signed(make_payload(f"46DUPONT JEAN{GS}4135000", perimeter="FI"))
        with pytest.raises(MissingFieldError):
            taxes_matchers(document)

    def test_missing_declarant(self, parse_signed, make_payload):
        document = parse_signed(make_payload("452023", perimeter="FI"))
        with pytest.raises(MissingFieldError):
            taxes_matchers(document)


class TestMatcherSerialization:

    def test_pattern_matcher(self, identity):
        result = id_matchers(identity)["id_last_name"].to_dict()
        assert result["pattern"]["_is_some"] == 1
        assert result["pattern"]["_value"]["len"] == 6
        assert result["value"] == {"_is_some": 0, "_value": 0}
        assert result["inequality"] == {"_is_some": 0, "_value": 0}

    def test_numeric_matcher(self, taxes):
        result = taxes_matchers(taxes)["taxes_year"].to_dict()
        assert result["pattern"] == {
            "_is_some": 0,
            "_value": {"len": MATCHER_FIELD_WIDTH, "storage": ["0"] * MATCHER_FIELD_WIDTH},
        }
        assert result["value"] == {"_is_some": 1, "_value": 2023}
        assert result["inequality"] == {"_is_some": 1, "_value": 0}


class TestSplitDeclarantName:

    @pytest.mark.parametrize("full_name, expected", [
        ("DUPONT JEAN", ("DUPONT", "JEAN")),
        ("DUPONT  JEAN PIERRE", ("DUPONT", "JEAN")),
    ])
    def test_split(self, full_name, expected):
        assert split_declarant_name(full_name) == expected

    def test_single_word(self):
        with pytest.raises(CircuitEncodingError):
            split_declarant_name("DUPONT")
