"""
Shared fixtures: a throwaway issuer key and a payload builder.

Payloads are signed for real with a P-256 key generated per test session,
and the key is injected through a TrustStore, so signature checks exercise
the same code path as production barcodes.
"""

import base64
from datetime import date

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from twoddoc.modules.circuit import P256_ORDER
from twoddoc.modules.header import date_to_hex_date
from twoddoc.modules.signature import TrustStore
from twoddoc.modules.zones import GS, US

ISSUED = date(2024, 1, 15)
SIGNED = date(2024, 1, 16)

IDENTITY_MESSAGE = f"60JEAN/PIERRE{GS}62DUPONT{GS}68M6901021990"
TAXES_MESSAGE = f"46DUPONT JEAN{GS}4520234135000{GS}4712345678901234424B7485896006"


def build_text_header(
    version: int = 4,
    ca_id: str = "FR05",
    cert_id: str = "0001",
    issued: date | None = ISSUED,
    signed: date | None = SIGNED,
    doc_type: str = "01",
    perimeter: str = "ID",
    country: str = "FR",
) -> str:
    """Build a C40/text header for any version 1-4."""
    header = (
        f"DC{version:02d}{ca_id}{cert_id}"
        f"{date_to_hex_date(issued) if issued else 'FFFF'}"
        f"{date_to_hex_date(signed) if signed else 'FFFF'}"
        f"{doc_type}"
    )
    if version >= 3:
        header += perimeter
    if version == 4:
        header += country
    return header


class Signer:
    """Test issuer: signs header + message like a 2D-DOC producer."""

    def __init__(self):
        self.private_key = ec.generate_private_key(ec.SECP256R1())
        self.public_key = self.private_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )
        self.trust_store = TrustStore(default=self.public_key)

    def sign_raw(self, data: str, high_s: bool = False) -> bytes:
        """Raw r || s signature; high_s forces s above N / 2 (still valid)."""
        der = self.private_key.sign(data.encode("latin-1"), ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        low = s <= P256_ORDER // 2
        if high_s == low:
            s = P256_ORDER - s
        return r.to_bytes(32, "big") + s.to_bytes(32, "big")

    def sign(self, data: str, high_s: bool = False) -> str:
        """Base32 signature zone, without padding."""
        return base64.b32encode(self.sign_raw(data, high_s)).decode("ascii").rstrip("=")


@pytest.fixture(scope="session")
def signer() -> Signer:
    return Signer()


@pytest.fixture
def make_payload(signer):
    """
    Factory building a signed payload.

    Example:
        payload = make_payload("2475001", perimeter="JD", doc_type="01")
    """
    def _make(
        message: str,
        separator: str = US,
        high_s: bool = False,
        annex: str | None = None,
        tamper: bool = False,
        **header_args,
    ) -> str:
        header = build_text_header(**header_args)
        signature = signer.sign(header + message, high_s=high_s)
        if tamper:
            message = message.replace("DUPONT", "DURAND")
        payload = f"{header}{message}{separator}{signature}"
        if annex is not None:
            payload += f"{GS}{annex}"
        return payload

    return _make


@pytest.fixture
def identity_payload(make_payload) -> str:
    return make_payload(IDENTITY_MESSAGE, perimeter="ID", doc_type="01")


@pytest.fixture
def taxes_payload(make_payload) -> str:
    return make_payload(TAXES_MESSAGE, perimeter="FI", doc_type="01")


@pytest.fixture
def text_header():
    """Factory for C40/text headers (see build_text_header)."""
    return build_text_header


@pytest.fixture
def identity_message() -> str:
    return IDENTITY_MESSAGE


@pytest.fixture
def taxes_message() -> str:
    return TAXES_MESSAGE
