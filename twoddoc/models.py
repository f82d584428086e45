"""
Data structures shared by every 2D-DOC component.

Decoding side:
    Header -> RawField -> ParsedField -> DocumentResult

Circuit side:
    DocumentResult -> CircuitField / CircuitData -> CircuitInput

Every circuit structure has a to_dict() that produces the JSON shape the
proving collaborator expects (byte arrays as lists of decimal strings).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping


# Field semantic types, drive the formatter
FieldType = Literal["string", "date", "formatted_date", "year", "integer", "amount", "phone"]

# Fixed-length fields have no separator; variable ones end on GS/RS or maxLength
LengthType = Literal["fixed", "variable"]

# Version 4 headers come in two flavours
HeaderEncoding = Literal["c40", "binary"]


# =============================================================================
# DECODING
# =============================================================================

@dataclass(frozen=True)
class FieldDefinition:
    """
    Catalog entry describing one Data Identifier (DI).

    Attributes:
        name: Human-readable field name (French, as printed on documents)
        type: Semantic type, selects the formatter
        length_type: "fixed" or "variable"
        length: Exact size for fixed fields
        max_length: Upper bound for variable fields (None = unbounded)

    Example:
        >>> FieldDefinition("Code postal point de service", "string", "fixed", length=5)
    """
    name: str
    type: FieldType
    length_type: LengthType
    length: int | None = None
    max_length: int | None = None

    @property
    def bound(self) -> int | None:
        """Maximum number of characters a value may hold, if any."""
        if self.length_type == "fixed":
            return self.length
        return self.max_length


@dataclass(frozen=True)
class Header:
    """
    Parsed 2D-DOC header.

    All 2D-DOCs start with "DC" followed by a 2-digit version. The header
    size depends only on the version:
    - Version 01/02: 22 chars
    - Version 03: 24 chars (adds perimeter)
    - Version 04: 26 chars (adds country), or 19 bytes in binary encoding

    Dates are ISO strings ("YYYY-MM-DD"), None when the barcode says "no date".
    """
    raw: str
    version: int
    header_length: int
    encoding: HeaderEncoding
    ca_id: str
    cert_id: str
    issuance_date: str | None
    signature_date: str | None
    doc_type_id: str
    perimeter_id: str
    country_id: str

    @property
    def is_binary(self) -> bool:
        return self.encoding == "binary"


@dataclass(frozen=True)
class RawField:
    """
    A (DI, value, separator) triple cut out of the message zone.

    value is already cleaned (control bytes removed, per-field character
    filter applied). separator is GS when the field was terminated by one.
    """
    field_id: str
    value: str
    separator: str | None = None


@dataclass(frozen=True)
class ParsedField:
    """
    Externally visible field.

    Attributes:
        field_id: 2-char DI code (e.g. "24")
        name: Name from the catalog (e.g. "Code postal point de service")
        value: Display value, formatted according to the field type
        raw: Cleaned value before formatting (what the circuit re-encodes)
        separator: GS if the field was terminated by one, else None
    """
    field_id: str
    name: str
    value: str
    raw: str
    separator: str | None = None

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "separator": self.separator}


@dataclass(frozen=True)
class DocumentResult:
    """
    Complete result of parsing one 2D-DOC payload.

    signature_valid is False whenever the signature could not be checked,
    whatever the reason. A result is never produced for a structurally
    broken payload (parse() raises instead).

    fields and annex are read-only views: a returned result cannot be edited.
    """
    header: Header
    fields: Mapping[str, ParsedField]
    signature: str
    signature_valid: bool
    message_data: str
    annex: Mapping[str, ParsedField] | None = None

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        if self.annex is not None:
            object.__setattr__(self, "annex", MappingProxyType(dict(self.annex)))

    def get_field(self, field_id: str) -> str | None:
        """Get the formatted value of a field, or None if absent."""
        parsed = self.fields.get(field_id)
        return parsed.value if parsed else None

    def get_raw(self, field_id: str) -> str | None:
        """Get the cleaned (unformatted) value of a field, or None if absent."""
        parsed = self.fields.get(field_id)
        return parsed.raw if parsed else None

    @property
    def total_length(self) -> int:
        """Number of signed characters: header + message zone."""
        return self.header.header_length + len(self.message_data)

    def to_dict(self) -> dict:
        return {
            "header": {
                "version": self.header.version,
                "headerLength": self.header.header_length,
                "caId": self.header.ca_id,
                "certId": self.header.cert_id,
                "issuanceDate": self.header.issuance_date,
                "signatureDate": self.header.signature_date,
                "docTypeId": self.header.doc_type_id,
                "perimeterId": self.header.perimeter_id,
                "countryId": self.header.country_id,
            },
            "fields": {fid: f.to_dict() for fid, f in self.fields.items()},
            "signature": self.signature,
            "signatureValid": self.signature_valid,
            "annex": {fid: f.to_dict() for fid, f in self.annex.items()} if self.annex is not None else None,
            "messageData": self.message_data,
        }


# =============================================================================
# CIRCUIT INPUT
# =============================================================================

def _byte_strings(data: bytes) -> list[str]:
    return [str(b) for b in data]


@dataclass(frozen=True)
class CircuitField:
    """
    Fixed-width re-encoding of one field value.

    storage always has the configured width; length is the number of
    meaningful bytes (content, plus 1 if a separator byte was appended).
    """
    field_id: str
    length: int
    storage: bytes

    def data_dict(self) -> dict:
        return {"len": self.length, "storage": _byte_strings(self.storage)}

    def to_dict(self) -> dict:
        return {"id": self.field_id, "data": self.data_dict()}


@dataclass(frozen=True)
class CircuitDate:
    day: str | None
    month: str | None
    year: str | None

    def to_dict(self) -> dict:
        return {"day": self.day, "month": self.month, "year": self.year}


@dataclass(frozen=True)
class CircuitHeader:
    ca_id: str
    cert_id: str
    country_id: str
    doc_type_id: str
    perimeter_id: str
    version: int
    emit_date: CircuitDate
    sign_date: CircuitDate

    def to_dict(self) -> dict:
        return {
            "ca_id": self.ca_id,
            "cert_id": self.cert_id,
            "country_id": self.country_id,
            "doc_type_id": self.doc_type_id,
            "perimeter_id": self.perimeter_id,
            "version": self.version,
            "emit_date": self.emit_date.to_dict(),
            "sign_date": self.sign_date.to_dict(),
        }


@dataclass(frozen=True)
class CircuitData:
    """
    Circuit encoding of one document.

    Attributes:
        signature: 64 bytes r||s, s in low-S form
        total_len: header length + message length (bounds the circuit's scan)
        fields: One CircuitField per parsed field, in message order
        header: Header record
    """
    signature: bytes
    total_len: int
    fields: list[CircuitField]
    header: CircuitHeader

    def to_dict(self) -> dict:
        return {
            "signature": _byte_strings(self.signature),
            "total_len": self.total_len,
            "matrix": {
                "fields": {
                    "len": len(self.fields),
                    "storage": [f.to_dict() for f in self.fields],
                },
                "header": self.header.to_dict(),
            },
        }


@dataclass(frozen=True)
class FieldMatcher:
    """
    One cross-document constraint checked inside the circuit.

    field_type 1 compares bytes against `pattern`; field_type 2 compares
    the field's numeric value against `value` using `inequality`.
    """
    tdd_field_id: str
    field_type: int
    pattern: CircuitField | None = None
    value: int | None = None
    inequality: int | None = None
    width: int = 15

    def to_dict(self) -> dict:
        if self.pattern is not None:
            pattern = {"_is_some": 1, "_value": self.pattern.data_dict()}
        else:
            pattern = {"_is_some": 0, "_value": {"len": self.width, "storage": ["0"] * self.width}}
        return {
            "tdd_field_id": self.tdd_field_id,
            "field_type": self.field_type,
            "pattern": pattern,
            "value": {"_is_some": int(self.value is not None), "_value": self.value or 0},
            "inequality": {"_is_some": int(self.inequality is not None), "_value": self.inequality or 0},
        }


@dataclass
class CircuitInput:
    """
    Combined input for the identity + tax notice proof.

    matchers maps circuit parameter names (e.g. "id_first_name") to either
    FieldMatcher records, bare CircuitField records, or plain integers,
    depending on the matcher profile.
    """
    tdd_id: CircuitData
    tdd_taxes: CircuitData
    matchers: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        combined = {
            "tdd_id": self.tdd_id.to_dict(),
            "tdd_taxes": self.tdd_taxes.to_dict(),
        }
        for name, matcher in self.matchers.items():
            if isinstance(matcher, FieldMatcher):
                combined[name] = matcher.to_dict()
            elif isinstance(matcher, CircuitField):
                combined[name] = matcher.data_dict()
            else:
                combined[name] = matcher
        return combined
