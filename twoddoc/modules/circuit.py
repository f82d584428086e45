"""
Circuit data encoder.

Turns a parsed document into the fixed-width input of the proof circuit:
- every field value is zero-padded into a buffer of constant width,
- the signature is decoded to 64 raw bytes with s forced into low-S form,
- total_len bounds the circuit's scan over header + message bytes.

Low-S canonicalization: an ECDSA signature (r, s) is also valid as
(r, N - s). Circuits that reject malleable signatures only accept
s <= N / 2, so a high s is replaced by N - s.
"""

import binascii
import logging

from twoddoc.errors import CircuitEncodingError
from twoddoc.models import CircuitData, CircuitDate, CircuitField, CircuitHeader, DocumentResult, Header
from twoddoc.modules.signature import COMPONENT_SIZE, PAYLOAD_ENCODING, SIGNATURE_SIZE, base32_decode

logger = logging.getLogger(__name__)


# Order of the P-256 base point
P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

# Width of each field buffer in a document encoding
DOCUMENT_FIELD_WIDTH = 20


# =============================================================================
# SIGNATURE
# =============================================================================

def canonicalize_s(s: int, order: int = P256_ORDER) -> int:
    """Return s in low-S form: N - s when s > N / 2, else s unchanged."""
    if s > order // 2:
        return order - s
    return s


def canonicalize_signature(signature: bytes) -> bytes:
    """
    Rewrite the s half of a raw r || s signature in low-S form.

    Idempotent: a low-S signature is returned unchanged.

    Raises:
        CircuitEncodingError: if the signature is not 64 bytes
    """
    if len(signature) != SIGNATURE_SIZE:
        raise CircuitEncodingError(
            f"Signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}"
        )
    s = int.from_bytes(signature[COMPONENT_SIZE:], "big")
    low_s = canonicalize_s(s)
    if low_s == s:
        return bytes(signature)
    return signature[:COMPONENT_SIZE] + low_s.to_bytes(COMPONENT_SIZE, "big")


def encode_signature(signature: str) -> bytes:
    """Base32 signature zone -> 64 canonical bytes."""
    try:
        raw = base32_decode(signature)
    except binascii.Error as e:
        raise CircuitEncodingError(f"Signature is not valid base32: {e}") from e
    return canonicalize_signature(raw)


# =============================================================================
# FIELDS AND HEADER
# =============================================================================

def encode_field(
    field_id: str,
    value: str,
    width: int,
    separator: str | None = None,
) -> CircuitField:
    """
    Zero-pad a field value into a fixed-width buffer.

    Args:
        field_id: DI code
        value: Clean field value
        width: Buffer size in bytes
        separator: Appended after the value (and counted in length) if given

    Returns:
        CircuitField whose storage is exactly `width` bytes

    Raises:
        CircuitEncodingError: value (+ separator) does not fit in width

    Example:
        >>> encode_field("24", "75001", 8, "\\x1d").storage
        b'75001\\x1d\\x00\\x00'
    """
    try:
        content = value.encode(PAYLOAD_ENCODING)
        if separator:
            content += separator.encode(PAYLOAD_ENCODING)
    except UnicodeEncodeError as e:
        raise CircuitEncodingError(f"Field {field_id} has non-byte characters: {e}") from e

    if len(content) > width:
        raise CircuitEncodingError(
            f"Field {field_id} needs {len(content)} bytes, circuit width is {width}"
        )
    return CircuitField(field_id=field_id, length=len(content), storage=content.ljust(width, b"\x00"))


def _split_iso(iso_date: str | None) -> CircuitDate:
    if not iso_date:
        return CircuitDate(day=None, month=None, year=None)
    year, month, day = iso_date.split("-")
    return CircuitDate(day=day, month=month, year=year)


def encode_header(header: Header) -> CircuitHeader:
    return CircuitHeader(
        ca_id=header.ca_id,
        cert_id=header.cert_id,
        country_id=header.country_id,
        doc_type_id=header.doc_type_id,
        perimeter_id=header.perimeter_id,
        version=header.version,
        emit_date=_split_iso(header.issuance_date),
        sign_date=_split_iso(header.signature_date),
    )


# =============================================================================
# DOCUMENT
# =============================================================================

class CircuitEncoder:
    """
    Encode parsed documents for the proof circuit.

    Attributes:
        field_width: Byte width of every field buffer
    """

    def __init__(self, field_width: int = DOCUMENT_FIELD_WIDTH):
        self.field_width = field_width

    def encode(self, document: DocumentResult) -> CircuitData:
        """
        Build the circuit data of one document.

        Raises:
            CircuitEncodingError: a field does not fit, or the signature
                is not 64 bytes of base32
        """
        if not document.signature_valid:
            logger.warning(
                f"Encoding document {document.header.perimeter_id}/{document.header.doc_type_id} "
                f"whose signature did not verify"
            )

        fields = [
            encode_field(field_id, parsed.raw, self.field_width, parsed.separator)
            for field_id, parsed in document.fields.items()
        ]
        return CircuitData(
            signature=encode_signature(document.signature),
            total_len=document.total_length,
            fields=fields,
            header=encode_header(document.header),
        )
