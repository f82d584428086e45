"""
Field cleaning and formatting.

Two table-driven passes per field:

1. Cleaning (raw characters -> clean string): control characters are
   stripped, then the field's CleaningRule filters characters and applies
   its own size limit, then the value is cut to the catalog bound.
2. Formatting (clean string -> display value): dispatched on the field's
   declared type. The field id is passed explicitly so that the 13-char
   grouping of fields 44/47/49 never depends on what was formatted before.

Adding a field means adding one line to CLEANING_RULES (and optionally
STRING_GROUPINGS); no branching code changes.
"""

from dataclasses import dataclass
import logging
import re

from twoddoc.catalog import get_field_definition
from twoddoc.models import FieldDefinition, Header
from twoddoc.modules.header import parse_binary_date, parse_hex_date

logger = logging.getLogger(__name__)


# Control characters except GS (0x1D), which only the tokenizer consumes
CONTROL_CHARS = re.compile(r"[\x00-\x1C\x1E-\x1F]")

CURRENCY_SUFFIX = "€"


# =============================================================================
# CLEANING RULES
# =============================================================================

@dataclass(frozen=True)
class CleaningRule:
    """
    One character-class filter.

    Attributes:
        kind: Which filter to run (see _CLEANERS)
        limit: Optional size cap applied by the filter itself
    """
    kind: str
    limit: int | None = None


def _clean_address_line(value: str) -> str:
    value = re.sub(r"[^A-Z0-9 /]", "", value.upper())
    # Slashes separate civility / name / first name: keep one space around them
    value = re.sub(r"\s*/\s*", " / ", value)
    value = re.sub(r"\s+", " ", value)
    return value.strip()


def _clean_letters_digits_slash(value: str) -> str:
    return re.sub(r"[^A-Z0-9 /]", "", value).strip()


def _clean_letters_digits(value: str) -> str:
    return re.sub(r"[^A-Z0-9]", "", value).strip()


def _clean_letters_digits_space(value: str) -> str:
    return re.sub(r"[^A-Z0-9 ]", "", value).strip()


def _clean_digits(value: str) -> str:
    return re.sub(r"[^0-9]", "", value)


def _clean_country(value: str) -> str:
    return value.upper()


def _clean_amount(value: str) -> str:
    return re.sub(r"[^0-9,-]", "", value)


def _clean_trim(value: str) -> str:
    return value.strip()


_CLEANERS = {
    "address_line": _clean_address_line,
    "letters_digits_slash": _clean_letters_digits_slash,
    "letters_digits": _clean_letters_digits,
    "letters_digits_space": _clean_letters_digits_space,
    "digits": _clean_digits,
    "country": _clean_country,
    "amount": _clean_amount,
    "trim": _clean_trim,
}

DEFAULT_RULE = CleaningRule("trim")

_NAME_LINE = CleaningRule("letters_digits_slash")

CLEANING_RULES: dict[str, CleaningRule] = {
    "10": CleaningRule("address_line"),
    # Names and address lines
    "11": _NAME_LINE, "12": _NAME_LINE, "13": _NAME_LINE, "14": _NAME_LINE,
    "15": _NAME_LINE, "16": _NAME_LINE, "17": _NAME_LINE, "20": _NAME_LINE,
    "22": _NAME_LINE, "25": _NAME_LINE, "27": _NAME_LINE, "28": _NAME_LINE,
    "29": _NAME_LINE, "2A": _NAME_LINE, "2C": _NAME_LINE,
    # Contract / customer identifiers
    "19": CleaningRule("letters_digits"),
    "1A": CleaningRule("letters_digits"),
    "1B": CleaningRule("letters_digits"),
    # Dates, postal codes, phones
    "1C": CleaningRule("digits", 8),
    "1E": CleaningRule("digits"),
    "1F": CleaningRule("digits"),
    "24": CleaningRule("digits", 5),
    "2B": CleaningRule("digits", 5),
    "26": CleaningRule("country", 2),
    "2D": CleaningRule("country", 2),
    # Amounts
    "1D": CleaningRule("amount"),
    "41": CleaningRule("amount"),
    "4V": CleaningRule("amount"),
    "4W": CleaningRule("amount"),
    "4X": CleaningRule("amount"),
    # Tax notice
    "43": CleaningRule("digits", 5),
    "44": CleaningRule("letters_digits", 13),
    "45": CleaningRule("digits", 4),
    "46": CleaningRule("letters_digits_space"),
    "47": CleaningRule("digits", 13),
    "48": CleaningRule("letters_digits_space"),
    "49": CleaningRule("digits", 13),
    "4A": CleaningRule("digits", 8),
}


def get_cleaning_rule(field_id: str) -> CleaningRule:
    return CLEANING_RULES.get(field_id, DEFAULT_RULE)


def clean_value(value: str, field_id: str) -> str:
    """
    Clean a raw field value.

    Args:
        value: Characters cut out of the message zone
        field_id: DI code, selects the rule

    Returns:
        Clean value, never longer than the field's catalog bound.
        May be empty, in which case the field is dropped.

    Example:
        >>> clean_value("75 001", "24")
        '75001'
    """
    value = CONTROL_CHARS.sub("", value)

    rule = get_cleaning_rule(field_id)
    value = _CLEANERS[rule.kind](value)
    if rule.limit is not None:
        value = value[:rule.limit]

    definition = get_field_definition(field_id)
    if definition is not None and definition.bound is not None:
        value = value[:definition.bound]
    return value


# =============================================================================
# FORMATTING
# =============================================================================

# 13-char identifiers displayed in groups, e.g. "XX XX XXXXXXX XX"
STRING_GROUPINGS: dict[str, tuple[int, ...]] = {
    "44": (2, 2, 7, 2),       # Tax notice reference
    "47": (2, 2, 3, 3, 3),    # Fiscal number, declarant 1
    "49": (2, 2, 3, 3, 3),    # Fiscal number, declarant 2
}

GROUPED_LENGTH = 13


def group_digits(value: str, groups: tuple[int, ...]) -> str:
    """Split value into space-separated chunks of the given sizes."""
    parts = []
    pos = 0
    for size in groups:
        parts.append(value[pos:pos + size])
        pos += size
    return " ".join(parts)


def iso_to_display(iso_date: str) -> str:
    """'YYYY-MM-DD' -> 'DD-MM-YYYY'."""
    year, month, day = iso_date.split("-")
    return f"{day}-{month}-{year}"


def _format_date(value: str, field_id: str, header: Header | None) -> str:
    try:
        if header is not None and header.is_binary:
            iso_date = parse_binary_date(value)
        else:
            iso_date = parse_hex_date(value)
    except (ValueError, UnicodeEncodeError):
        iso_date = None

    if iso_date is None:
        logger.warning(f"Field {field_id}: cannot decode date {value!r}, keeping raw value")
        return value
    return iso_to_display(iso_date)


def _format_formatted_date(value: str, field_id: str, header: Header | None) -> str:
    # DDMMYYYY -> DD-MM-YYYY
    if len(value) != 8 or not value.isdigit():
        return value
    return f"{value[:2]}-{value[2:4]}-{value[4:]}"


def _format_integer(value: str, field_id: str, header: Header | None) -> str:
    try:
        return str(int(value, 10))
    except ValueError:
        return value


def _format_amount(value: str, field_id: str, header: Header | None) -> str:
    return f"{value.strip()} {CURRENCY_SUFFIX}"


def _format_string(value: str, field_id: str, header: Header | None) -> str:
    groups = STRING_GROUPINGS.get(field_id)
    if groups and len(value) == GROUPED_LENGTH:
        return group_digits(value, groups)
    return value


def _format_passthrough(value: str, field_id: str, header: Header | None) -> str:
    return value


_FORMATTERS = {
    "date": _format_date,
    "formatted_date": _format_formatted_date,
    "year": _format_passthrough,
    "integer": _format_integer,
    "amount": _format_amount,
    "string": _format_string,
    "phone": _format_passthrough,
}


def format_value(
    value: str,
    field_id: str,
    definition: FieldDefinition,
    header: Header | None = None,
) -> str:
    """
    Format a clean value for display according to the field type.

    Args:
        value: Clean value (output of clean_value)
        field_id: DI code of the field being formatted
        definition: Catalog entry for field_id
        header: Document header; date fields follow its encoding

    Returns:
        Display value

    Example:
        >>> format_value("1234567890123", "47", get_field_definition("47"))
        '12 34 567 890 123'
    """
    formatter = _FORMATTERS.get(definition.type, _format_passthrough)
    return formatter(value, field_id, header)
