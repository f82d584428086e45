"""
Cross-document field matchers.

The proof links an identity document and a tax notice: the names must be
the same on both, the reference income must pass a threshold and the tax
notice must be for the right year. Matchers describe those constraints in
the form the circuit reads.

Two profiles:
- "multiple": full FieldMatcher records (pattern / value / inequality)
- "tenant": bare field buffers for the names, plain integers for thresholds
"""

from dataclasses import dataclass

from twoddoc.errors import CircuitEncodingError, MissingFieldError
from twoddoc.models import DocumentResult, FieldMatcher
from twoddoc.modules.circuit import encode_field

# Width of matcher buffers (shorter than document fields)
MATCHER_FIELD_WIDTH = 15

# field_type values understood by the circuit
FIELD_TYPE_PATTERN = 1
FIELD_TYPE_NUMERIC = 2

PROFILES = ("multiple", "tenant")


@dataclass(frozen=True)
class MatcherThresholds:
    """
    Numeric constraints on the tax notice.

    Attributes:
        min_revenue: Reference income (field 41) threshold
        revenue_inequality: Comparison flag passed to the circuit for 41
        tax_year: Tax year (field 45) threshold
        year_inequality: Comparison flag passed to the circuit for 45
    """
    min_revenue: int = 300
    revenue_inequality: int = 1
    tax_year: int = 2023
    year_inequality: int = 0


def _require(document: DocumentResult, field_id: str) -> str:
    value = document.get_raw(field_id)
    if not value:
        raise MissingFieldError(field_id)
    return value


def _check_profile(profile: str) -> None:
    if profile not in PROFILES:
        raise ValueError(f"Unknown matcher profile {profile!r}, expected one of {PROFILES}")


def _pattern(field_id: str, value: str, width: int) -> FieldMatcher:
    return FieldMatcher(
        tdd_field_id=field_id,
        field_type=FIELD_TYPE_PATTERN,
        pattern=encode_field(field_id, value, width),
        width=width,
    )


def _threshold(field_id: str, value: int, inequality: int, width: int) -> FieldMatcher:
    return FieldMatcher(
        tdd_field_id=field_id,
        field_type=FIELD_TYPE_NUMERIC,
        value=value,
        inequality=inequality,
        width=width,
    )


def split_declarant_name(full_name: str) -> tuple[str, str]:
    """
    Split a declarant name (field 46, "NOM PRENOM") into (last, first).

    Raises:
        CircuitEncodingError: if the name does not hold at least two words
    """
    parts = full_name.split()
    if len(parts) < 2:
        raise CircuitEncodingError(f"Declarant name {full_name!r} has no first name")
    return parts[0], parts[1]


def id_matchers(
    document: DocumentResult,
    profile: str = "multiple",
    width: int = MATCHER_FIELD_WIDTH,
) -> dict:
    """
    Matchers for the identity document: first given name and surname.

    Example:
        >>> matchers = id_matchers(identity)
        >>> sorted(matchers)
        ['id_first_name', 'id_last_name']
    """
    _check_profile(profile)

    first_name = _require(document, "60").split("/")[0].strip()
    last_name = _require(document, "62")

    if profile == "tenant":
        return {
            "id_first_name": encode_field("60", first_name, width),
            "id_last_name": encode_field("62", last_name, width),
        }
    return {
        "id_first_name": _pattern("60", first_name, width),
        "id_last_name": _pattern("62", last_name, width),
    }


def taxes_matchers(
    document: DocumentResult,
    profile: str = "multiple",
    thresholds: MatcherThresholds | None = None,
    width: int = MATCHER_FIELD_WIDTH,
) -> dict:
    """Matchers for the tax notice: declarant name, reference income, tax year."""
    _check_profile(profile)
    thresholds = thresholds or MatcherThresholds()

    last_name, first_name = split_declarant_name(_require(document, "46"))

    if profile == "tenant":
        return {
            "taxes_first_name": encode_field("46", first_name, width),
            "taxes_last_name": encode_field("46", last_name, width),
            "taxes_base_revenue": thresholds.min_revenue,
            "taxes_year": thresholds.tax_year,
        }

    # The year must be present even though only the threshold is sent
    _require(document, "45")
    return {
        "taxes_first_name": _pattern("46", first_name, width),
        "taxes_last_name": _pattern("46", last_name, width),
        "taxes_base_revenue": _threshold("41", thresholds.min_revenue, thresholds.revenue_inequality, width),
        "taxes_year": _threshold("45", thresholds.tax_year, thresholds.year_inequality, width),
    }
