"""
2D-DOC signature verification.

The signature zone is the base32 encoding of a raw 64-byte ECDSA P-256
signature (r || s) over the exact header + message characters. It is
checked against the issuer public key selected by (CA id, certificate id).

A failed check never raises: it is logged and reported as False, the
document is still returned to the caller.
"""

import base64
import binascii
import logging
import re

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from twoddoc.models import Header

logger = logging.getLogger(__name__)


# Payload characters are bytes decoded as Latin-1: one character, one byte
PAYLOAD_ENCODING = "latin-1"

# Raw P-256 signature: 32 bytes r + 32 bytes s
SIGNATURE_SIZE = 64
COMPONENT_SIZE = 32

# Issuer key for certificate FR05, uncompressed point (0x04 || X || Y)
EMBEDDED_PUBLIC_KEY = bytes([
    4, 86, 124, 231, 161, 237, 241, 19, 151, 249, 180, 23, 75, 231, 182, 210,
    24, 149, 175, 22, 174, 33, 206, 199, 55, 32, 217, 16, 36, 44, 187, 134,
    46, 18, 244, 129, 207, 135, 240, 110, 88, 51, 62, 197, 158, 146, 187, 108,
    126, 124, 14, 99, 123, 64, 57, 25, 180, 8, 183, 66, 113, 16, 119, 203, 128,
])


# =============================================================================
# BASE32
# =============================================================================

def base32_decode(text: str) -> bytes:
    """
    Decode a 2D-DOC base32 signature.

    Lenient like barcode readers: case is ignored, padding and characters
    outside the base32 alphabet are dropped, then padding is restored.

    Raises:
        binascii.Error: if the remaining characters are not valid base32
    """
    cleaned = re.sub(r"[^A-Z2-7]", "", text.upper())
    pad = (-len(cleaned)) % 8
    return base64.b32decode(cleaned + "=" * pad)


# =============================================================================
# TRUST ANCHORS
# =============================================================================

class TrustStore:
    """
    Issuer public keys indexed by (CA id, certificate id).

    Lookups that match no entry fall back to the default key. The default
    store trusts only the embedded FR05 key.

    Example:
        >>> store = TrustStore({("FR05", "0001"): key_bytes})
        >>> store.key_for("FR05", "0001") == key_bytes
        True
    """

    def __init__(
        self,
        anchors: dict[tuple[str, str], bytes] | None = None,
        default: bytes | None = EMBEDDED_PUBLIC_KEY,
    ):
        self.anchors = dict(anchors or {})
        self.default = default

    def add(self, ca_id: str, cert_id: str, public_key: bytes) -> None:
        self.anchors[(ca_id, cert_id)] = public_key

    def key_for(self, ca_id: str, cert_id: str) -> bytes | None:
        return self.anchors.get((ca_id, cert_id), self.default)


# =============================================================================
# VERIFICATION
# =============================================================================

def load_public_key(raw_key: bytes) -> ec.EllipticCurvePublicKey:
    """Import a 65-byte uncompressed P-256 point. Raises ValueError if invalid."""
    return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw_key)


def raw_signature_to_der(signature: bytes) -> bytes:
    """r || s (64 bytes) -> DER, the form the cryptography package verifies."""
    if len(signature) != SIGNATURE_SIZE:
        raise ValueError(f"Signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}")
    r = int.from_bytes(signature[:COMPONENT_SIZE], "big")
    s = int.from_bytes(signature[COMPONENT_SIZE:], "big")
    return encode_dss_signature(r, s)


def verify_signature(signed_data: str, signature: str, public_key: bytes) -> bool:
    """
    Verify a base32 signature over the signed characters.

    Args:
        signed_data: Header + message characters, exactly as in the barcode
        signature: Base32 signature zone
        public_key: 65-byte uncompressed P-256 issuer key

    Returns:
        True if the signature is valid, False for any failure
    """
    try:
        der_signature = raw_signature_to_der(base32_decode(signature))
        key = load_public_key(public_key)
        key.verify(der_signature, signed_data.encode(PAYLOAD_ENCODING), ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        logger.warning("Signature does not match the signed data")
        return False
    except (ValueError, binascii.Error, UnsupportedAlgorithm) as e:
        logger.warning(f"Error during signature verification: {e}")
        return False
    return True


def verify_document(
    header: Header,
    message_data: str,
    signature: str,
    trust_store: TrustStore,
) -> bool:
    """
    Verify a parsed document's signature with the matching trust anchor.

    Returns False when no key is known for the document's CA/certificate.
    """
    public_key = trust_store.key_for(header.ca_id, header.cert_id)
    if public_key is None:
        logger.warning(f"No trust anchor for CA {header.ca_id} / certificate {header.cert_id}")
        return False
    return verify_signature(header.raw + message_data, signature, public_key)
