"""
Tests for the circuit data encoder.
"""

import base64

import pytest

from twoddoc.catalog import FIELD_CATALOG
from twoddoc.errors import CircuitEncodingError
from twoddoc.models import CircuitDate
from twoddoc.modules.circuit import (
    DOCUMENT_FIELD_WIDTH,
    P256_ORDER,
    CircuitEncoder,
    canonicalize_s,
    canonicalize_signature,
    encode_field,
    encode_header,
    encode_signature,
)
from twoddoc.modules.zones import GS
from twoddoc.parser import TwoDDocParser


HALF_ORDER = P256_ORDER // 2


def raw_signature(r: int, s: int) -> bytes:
    return r.to_bytes(32, "big") + s.to_bytes(32, "big")


# =============================================================================
# TEST low-S canonicalization
# =============================================================================

class TestCanonicalize:

    @pytest.mark.parametrize("s", [1, 12345, HALF_ORDER])
    def test_low_s_unchanged(self, s):
        assert canonicalize_s(s) == s

    @pytest.mark.parametrize("s", [HALF_ORDER + 1, P256_ORDER - 1])
    def test_high_s_flipped(self, s):
        assert canonicalize_s(s) == P256_ORDER - s
        assert canonicalize_s(s) <= HALF_ORDER

    def test_signature_high_s_replaced(self):
        signature = raw_signature(7, P256_ORDER - 5)
        canonical = canonicalize_signature(signature)
        assert canonical[:32] == signature[:32]
        assert int.from_bytes(canonical[32:], "big") == 5

    def test_idempotent(self):
        signature = raw_signature(7, P256_ORDER - 5)
        once = canonicalize_signature(signature)
        assert canonicalize_signature(once) == once

    @pytest.mark.parametrize("size", [0, 63, 65])
    def test_wrong_size(self, size):
        with pytest.raises(CircuitEncodingError):
            canonicalize_signature(b"\x01" * size)


class TestEncodeSignature:

    def test_base32_zone(self, signer):
        raw = signer.sign_raw("DATA", high_s=True)
        zone = base64.b32encode(raw).decode().rstrip("=")

        encoded = encode_signature(zone)
        assert len(encoded) == 64
        assert encoded[:32] == raw[:32]
        assert int.from_bytes(encoded[32:], "big") == P256_ORDER - int.from_bytes(raw[32:], "big")

    def test_invalid_base32(self):
        with pytest.raises(CircuitEncodingError):
            encode_signature("A")

    def test_too_short(self):
        with pytest.raises(CircuitEncodingError):
            encode_signature("AAAAAAAA")


# =============================================================================
# TEST fields and header
# =============================================================================

class TestEncodeField:

    def test_zero_padding(self):
        field = encode_field("24", "75001", 8)
        assert field.storage == b"75001\x00\x00\x00"
        assert field.length == 5

    def test_separator_counted(self):
        field = encode_field("62", "DUPONT", 10, GS)
        assert field.storage == b"DUPONT\x1d\x00\x00\x00"
        assert field.length == 7

    def test_exact_fit(self):
        assert encode_field("62", "A" * 20, 20).storage == b"A" * 20

    def test_overflow(self):
        with pytest.raises(CircuitEncodingError, match="circuit width is 20"):
            encode_field("18", "X" * 21, 20)

    def test_separator_overflow(self):
        with pytest.raises(CircuitEncodingError):
            encode_field("62", "A" * 20, 20, GS)

    def test_latin1_bytes(self):
        field = encode_field("25", "SÈTE", 6)
        assert field.storage == b"S\xc8TE\x00\x00"

    def test_non_latin1_rejected(self):
        with pytest.raises(CircuitEncodingError):
            encode_field("41", "100 €", 10)

    def test_fields_wider_than_default_width(self):
        # Values up to these catalog bounds cannot always be encoded at 20 bytes
        too_wide = sorted(
            field_id for field_id, definition in FIELD_CATALOG.items()
            if definition.bound is None or definition.bound >= DOCUMENT_FIELD_WIDTH
        )
        assert "46" in too_wide
        assert "62" in too_wide  # 20 chars + separator
        for field_id in too_wide:
            with pytest.raises(CircuitEncodingError):
                encode_field(field_id, "X" * DOCUMENT_FIELD_WIDTH, DOCUMENT_FIELD_WIDTH, GS)

    def test_to_dict(self):
        field = encode_field("24", "75", 4)
        assert field.to_dict() == {
            "id": "24",
            "data": {"len": 2, "storage": ["55", "53", "0", "0"]},
        }


class TestEncodeHeader:

    def test_dates_split(self, text_header):
        header = TwoDDocParser().parse(text_header() + "2475001").header
        encoded = encode_header(header)
        assert encoded.emit_date == CircuitDate(day="15", month="01", year="2024")
        assert encoded.sign_date == CircuitDate(day="16", month="01", year="2024")
        assert encoded.version == 4
        assert encoded.perimeter_id == "ID"

    def test_missing_dates(self, text_header):
        header = TwoDDocParser().parse(text_header(issued=None, signed=None) + "2475001").header
        encoded = encode_header(header)
        assert encoded.emit_date == CircuitDate(day=None, month=None, year=None)
        assert encoded.to_dict()["emit_date"] == {"day": None, "month": None, "year": None}


# =============================================================================
# TEST CircuitEncoder
# =============================================================================

class TestCircuitEncoder:

    def test_encode_document(self, signer, identity_payload, identity_message):
        document = TwoDDocParser(trust_store=signer.trust_store).parse(identity_payload)
        data = CircuitEncoder().encode(document)

        assert data.total_len == 26 + len(identity_message)
        assert [f.field_id for f in data.fields] == ["60", "62", "68", "69"]
        assert all(len(f.storage) == DOCUMENT_FIELD_WIDTH for f in data.fields)
        # Raw value, not the display value, with its separator
        assert data.fields[1].storage.rstrip(b"\x00") == b"DUPONT\x1d"
        assert data.fields[3].storage.rstrip(b"\x00") == b"01021990"

    def test_signature_in_low_s_form(self, signer, make_payload, identity_message):
        payload = make_payload(identity_message, high_s=True)
        document = TwoDDocParser(trust_store=signer.trust_store).parse(payload)
        assert document.signature_valid

        data = CircuitEncoder().encode(document)
        assert int.from_bytes(data.signature[32:], "big") <= HALF_ORDER

    def test_to_dict_shape(self, signer, identity_payload):
        document = TwoDDocParser(trust_store=signer.trust_store).parse(identity_payload)
        result = CircuitEncoder().encode(document).to_dict()

        assert len(result["signature"]) == 64
        assert all(isinstance(b, str) for b in result["signature"])
        assert result["matrix"]["fields"]["len"] == 4
        assert result["matrix"]["fields"]["storage"][0]["id"] == "60"
        assert result["matrix"]["header"]["cert_id"] == "0001"

    def test_narrow_width_overflows(self, signer, identity_payload):
        document = TwoDDocParser(trust_store=signer.trust_store).parse(identity_payload)
        with pytest.raises(CircuitEncodingError):
            CircuitEncoder(field_width=4).encode(document)

    def test_invalid_signature_still_encoded(self, signer, make_payload, identity_message, caplog):
        payload = make_payload(identity_message, tamper=True)
        document = TwoDDocParser(trust_store=signer.trust_store).parse(payload)
        assert not document.signature_valid

        data = CircuitEncoder().encode(document)
        assert len(data.signature) == 64
        assert "did not verify" in caplog.text
