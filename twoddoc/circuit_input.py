"""
Build the combined circuit input for an identity document + tax notice.

Usage:
    from twoddoc.circuit_input import build_circuit_data

    circuit_input = build_circuit_data(id_raw, taxes_raw)
    json.dumps(circuit_input.to_dict())
"""

from concurrent.futures import ThreadPoolExecutor
import logging

from twoddoc.models import CircuitInput
from twoddoc.modules.circuit import CircuitEncoder
from twoddoc.modules.matchers import MatcherThresholds, id_matchers, taxes_matchers
from twoddoc.parser import TwoDDocParser

logger = logging.getLogger(__name__)


def build_circuit_data(
    id_raw: str,
    taxes_raw: str,
    parser: TwoDDocParser | None = None,
    encoder: CircuitEncoder | None = None,
    profile: str = "multiple",
    thresholds: MatcherThresholds | None = None,
) -> CircuitInput:
    """
    Parse both payloads and merge their circuit encodings with the matchers.

    The two documents are independent and are parsed in parallel.

    Args:
        id_raw: Raw payload of the identity document
        taxes_raw: Raw payload of the tax notice
        parser: Parser to use (default: embedded trust anchor)
        encoder: Circuit encoder (default: 20-byte fields)
        profile: Matcher profile, "multiple" or "tenant"
        thresholds: Revenue / year constraints for the tax notice

    Returns:
        CircuitInput; to_dict() gives
        {"tdd_id", "tdd_taxes", "id_first_name", ..., "taxes_year"}

    Raises:
        ParseError: either payload is structurally invalid
        CircuitEncodingError: a field or signature does not fit the circuit.
            Several catalog fields allow more characters than the default
            20-byte width (e.g. declarant name 46, up to 38), so a valid,
            correctly signed notice can still be rejected here; pass a
            wider encoder for such documents.
        MissingFieldError: a document lacks a field the matchers need
    """
    parser = parser or TwoDDocParser()
    encoder = encoder or CircuitEncoder()

    with ThreadPoolExecutor(max_workers=2) as executor:
        id_future = executor.submit(parser.parse, id_raw)
        taxes_future = executor.submit(parser.parse, taxes_raw)
        identity = id_future.result()
        taxes = taxes_future.result()

    logger.info(
        f"Building circuit input (identity signature valid={identity.signature_valid}, "
        f"tax notice signature valid={taxes.signature_valid})"
    )

    matchers = {
        **id_matchers(identity, profile),
        **taxes_matchers(taxes, profile, thresholds),
    }
    return CircuitInput(
        tdd_id=encoder.encode(identity),
        tdd_taxes=encoder.encode(taxes),
        matchers=matchers,
    )
