"""
2D-DOC parser - main entry point for decoding a barcode payload.

Pipeline:
    raw string -> header -> zones -> tokenizer -> sanitizer/formatter
                                \\-> signature verifier (worker thread)

Usage:
    from twoddoc.parser import parse

    document = parse(raw_data)
    print(document.header.doc_type_id, document.signature_valid)
    print(document.get_field("24"))

Structural failures raise ParseError ("Failed to parse 2D-DOC: ...").
An invalid signature does not: it is reported as signature_valid=False.
"""

from concurrent.futures import ThreadPoolExecutor
import logging

from twoddoc.catalog import get_document_type, get_field_definition, UNKNOWN_CATEGORY
from twoddoc.errors import ParseError, TwoDDocError, UnsupportedDocumentType
from twoddoc.models import DocumentResult, Header, ParsedField
from twoddoc.modules.header import parse_header
from twoddoc.modules.sanitizer import format_value
from twoddoc.modules.signature import TrustStore, verify_document
from twoddoc.modules.tokenizer import parse_message
from twoddoc.modules.zones import FALLBACK_SIGNATURE_LENGTH, split_zones

logger = logging.getLogger(__name__)


def parse_fields(zone_data: str, header: Header) -> dict[str, ParsedField]:
    """
    Tokenize a message (or annex) zone and format every field.

    Returns:
        Dict DI -> ParsedField, in message order
    """
    parsed = {}
    for raw_field in parse_message(zone_data):
        definition = get_field_definition(raw_field.field_id)
        parsed[raw_field.field_id] = ParsedField(
            field_id=raw_field.field_id,
            name=definition.name,
            value=format_value(raw_field.value, raw_field.field_id, definition, header),
            raw=raw_field.value,
            separator=raw_field.separator,
        )
    return parsed


class TwoDDocParser:
    """
    Decode and verify 2D-DOC payloads.

    Holds no per-document state, so one instance can parse any number of
    documents, including from several threads at once.

    Attributes:
        trust_store: Issuer keys used to verify signatures
        signature_fallback_length: Signature size assumed when the payload
            has no message/signature separator

    Example:
        >>> parser = TwoDDocParser()
        >>> document = parser.parse(raw_data)
        >>> document.fields["24"].value
        '75001'
    """

    def __init__(
        self,
        trust_store: TrustStore | None = None,
        signature_fallback_length: int = FALLBACK_SIGNATURE_LENGTH,
    ):
        self.trust_store = trust_store or TrustStore()
        self.signature_fallback_length = signature_fallback_length

    def parse(self, raw_data: str) -> DocumentResult:
        """
        Parse a complete 2D-DOC payload.

        Args:
            raw_data: Decoded barcode content, one character per byte

        Returns:
            DocumentResult with header, fields, signature and its validity

        Raises:
            ParseError: missing marker, unsupported version or document type
        """
        try:
            return self._parse(raw_data)
        except TwoDDocError as e:
            logger.error(f"Error parsing 2D-DOC: {e}")
            raise ParseError(str(e)) from e

    def _parse(self, raw_data: str) -> DocumentResult:
        header = parse_header(raw_data)

        # Reject unsupported documents before doing any more work
        doc_type = get_document_type(header.perimeter_id, header.doc_type_id)
        if doc_type["category"] == UNKNOWN_CATEGORY:
            raise UnsupportedDocumentType(header.perimeter_id, header.doc_type_id)

        zones = split_zones(
            raw_data[header.header_length:],
            header.version,
            self.signature_fallback_length,
        )

        with ThreadPoolExecutor(max_workers=1) as executor:
            verification = executor.submit(
                verify_document, header, zones.message, zones.signature, self.trust_store
            )

            fields = parse_fields(zones.message, header)
            annex = parse_fields(zones.annex, header) if zones.annex is not None else None

            try:
                signature_valid = verification.result()
            except Exception as e:
                logger.error(f"Error verifying signature: {e}")
                signature_valid = False

        logger.info(
            f"Parsed 2D-DOC v{header.version} ({doc_type['name']}): "
            f"{len(fields)} fields, signature {'valid' if signature_valid else 'INVALID'}"
        )

        return DocumentResult(
            header=header,
            fields=fields,
            signature=zones.signature,
            signature_valid=signature_valid,
            message_data=zones.message,
            annex=annex,
        )


def parse(raw_data: str, trust_store: TrustStore | None = None) -> DocumentResult:
    """Parse one payload with a default-configured TwoDDocParser."""
    return TwoDDocParser(trust_store=trust_store).parse(raw_data)
