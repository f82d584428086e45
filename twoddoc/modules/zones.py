"""
Split the data following the header into message, signature and annex zones.

    HEADER | MESSAGE <sep> SIGNATURE [GS ANNEX]

Versions 01-03 separate message and signature with 0x1F. Version 04
producers use 0x1C or 0x1F, so both are tried in that order. Some
producers omit the separator entirely: the signature is then assumed to be
the last 128 characters.
"""

from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


# Control characters used by 2D-DOC
FS = chr(0x1C)  # Version 4 message/signature separator
GS = chr(0x1D)  # Group Separator: ends variable-length fields, opens the annex
RS = chr(0x1E)  # Record Separator: marks a truncated field
US = chr(0x1F)  # Message/signature separator

# Signature length assumed when no separator is present (base32 chars)
FALLBACK_SIGNATURE_LENGTH = 128


@dataclass(frozen=True)
class Zones:
    message: str
    signature: str
    annex: str | None = None


def zone_separators(version: int) -> tuple[str, ...]:
    """Separators to try, in order, for a given version."""
    if version == 4:
        return (FS, US)
    return (US,)


def split_zones(
    data: str,
    version: int,
    fallback_signature_length: int = FALLBACK_SIGNATURE_LENGTH,
) -> Zones:
    """
    Split the post-header data into zones.

    Args:
        data: Everything after the header
        version: Header version (selects the separators)
        fallback_signature_length: Signature size assumed when no separator
            is found

    Returns:
        Zones(message, signature, annex). annex is only ever set for version 4.

    Example:
        >>> split_zones("2475001\\x1fSIGNATURE", 3)
        Zones(message='2475001', signature='SIGNATURE', annex=None)
    """
    for separator in zone_separators(version):
        if separator in data:
            message, signature = data.split(separator, 1)
            break
    else:
        logger.warning("No message/signature separator found, using trailing signature heuristic")
        if len(data) > fallback_signature_length:
            message = data[:-fallback_signature_length]
            signature = data[-fallback_signature_length:]
        else:
            message, signature = data, ""

    annex = None
    if version == 4 and GS in signature:
        signature, annex = signature.split(GS, 1)

    logger.debug(
        f"Zones: message={len(message)} signature={len(signature)} "
        f"annex={len(annex) if annex is not None else 0}"
    )
    return Zones(message=message, signature=signature, annex=annex)
