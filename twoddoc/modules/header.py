"""
2D-DOC header parsing.

The header is the first 19-26 characters of the barcode data. Its layout
depends on the version read at offset 2:

Version 01/02 (22 chars):
    DC VV CCCC IIII DDDD SSSS TT
    │  │  │    │    │    │    └── Document type (2)
    │  │  │    │    │    └─────── Signature date (4 hex)
    │  │  │    │    └──────────── Emission date (4 hex)
    │  │  │    └───────────────── Certificate ID (4)
    │  │  └────────────────────── CA ID (4)
    │  └───────────────────────── Version (2)
    └──────────────────────────── Marker "DC" (2)

Version 03 (24 chars): adds Perimeter (2) after document type
Version 04 (26 chars): adds Country (2) after perimeter

Version 04 binary (19 bytes):
    DC 04 PP AA CC III SSS T RR
          │  │  │  │   │   │ └── Perimeter (2)
          │  │  │  │   │   └──── Document type (1 byte)
          │  │  │  │   └──────── Signature date (3 bytes, MMDDYYYY as integer)
          │  │  │  └──────────── Emission date (3 bytes)
          │  │  └─────────────── Certificate ID (C40 pair)
          │  └────────────────── CA ID (C40 pair)
          └───────────────────── Country (C40 pair)

Hex dates are a number of days since 2000-01-01; "FFFF" means no date.
"""

from datetime import date, timedelta
import logging

from twoddoc.errors import MalformedHeader, UnsupportedVersion
from twoddoc.models import Header

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# The 2D-DOC always starts with this marker
HEADER_MARKER = "DC"

# Header sizes by version (C40/text encoding)
HEADER_SIZES = {
    1: 22,
    2: 22,
    3: 24,
    4: 26,
}

# Binary version 4 headers are shorter
BINARY_HEADER_SIZE = 19

# Reference date for hex dates: January 1, 2000
DATE_REFERENCE = date(2000, 1, 1)

# Hex date meaning "not specified"
NO_DATE = "FFFF"

# Base C40 character set (digit value -> character)
C40_CHARSET = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Defaults for fields older versions do not carry
DEFAULT_PERIMETER = "01"
DEFAULT_COUNTRY = "FR"


# =============================================================================
# DATES
# =============================================================================

def hex_date_to_date(hex_str: str) -> date | None:
    """
    Convert a 4-character hex date to a Python date.

    Args:
        hex_str: 4-character hex string (e.g., "2A5F")

    Returns:
        date object, or None if hex_str is "FFFF" or not valid hex

    Examples:
        >>> hex_date_to_date("0000")
        datetime.date(2000, 1, 1)
        >>> hex_date_to_date("FFFF") is None
        True
    """
    if hex_str.upper() == NO_DATE:
        return None

    try:
        days = int(hex_str, 16)
    except ValueError:
        return None
    return DATE_REFERENCE + timedelta(days=days)


def date_to_hex_date(value: date) -> str:
    """
    Encode a date as a 4-character hex day offset (inverse of hex_date_to_date).

    Raises:
        ValueError: if the date is before 2000-01-01 or too far in the future
    """
    days = (value - DATE_REFERENCE).days
    if not 0 <= days < 0xFFFF:
        raise ValueError(f"Date out of 2D-DOC range: {value.isoformat()}")
    return f"{days:04X}"


def parse_hex_date(hex_str: str) -> str | None:
    """Hex day offset -> ISO date string ("YYYY-MM-DD"), or None."""
    parsed = hex_date_to_date(hex_str)
    return parsed.isoformat() if parsed else None


def parse_binary_date(data: str | bytes) -> str:
    """
    Decode a 3-byte binary date to an ISO string.

    The 3 bytes form a big-endian integer whose decimal digits read MMDDYYYY:
    2 digits of month, 2 of day, 4 of year.

    Example:
        >>> parse_binary_date(bytes([0x11, 0x94, 0x18]))  # 1152024 -> 01 15 2024
        '2024-01-15'
    """
    raw = data.encode("latin-1") if isinstance(data, str) else data
    if len(raw) != 3:
        raise ValueError(f"Binary date must be 3 bytes, got {len(raw)}")

    value = int.from_bytes(raw, "big")
    month = value // 1_000_000
    day = (value % 1_000_000) // 10_000
    year = value % 10_000
    return f"{year:04d}-{month:02d}-{day:02d}"


# =============================================================================
# C40 / BINARY ENCODING
# =============================================================================

def is_binary_encoded(data: str) -> bool:
    """
    Decide whether a version 4 payload uses the binary header layout.

    This is a heuristic, not a protocol field: any character above 0x7F
    switches to binary. A C40 payload with stray high bytes would be
    misread, so every caller goes through this one predicate.
    """
    return any(ord(ch) > 0x7F for ch in data)


def decode_c40(data: str) -> str:
    """
    Decode C40 pairs: every 2 bytes hold 3 characters.

    value = (b1 << 8) | b2, then c1 = value // 1600, c2 = (value % 1600) // 40,
    c3 = value % 40, each indexing the base C40 character set.

    Raises:
        MalformedHeader: odd byte count, or a digit outside the character set
    """
    if len(data) % 2:
        raise MalformedHeader(f"C40 data must have an even length, got {len(data)}")

    result = []
    for i in range(0, len(data), 2):
        value = (ord(data[i]) << 8) | ord(data[i + 1])
        for digit in (value // 1600, (value % 1600) // 40, value % 40):
            if digit >= len(C40_CHARSET):
                raise MalformedHeader(f"Invalid C40 value {value} at offset {i}")
            result.append(C40_CHARSET[digit])
    return "".join(result)


# =============================================================================
# HEADER
# =============================================================================

def get_header_length(version: int) -> int:
    """Header size for a (text-encoded) version. Raises UnsupportedVersion."""
    try:
        return HEADER_SIZES[version]
    except KeyError:
        raise UnsupportedVersion(version) from None


def read_version(raw_data: str) -> int:
    """Read the 2-digit version following the DC marker."""
    digits = raw_data[2:4]
    # isdigit() alone accepts Latin-1 superscripts such as "²"
    if len(digits) != 2 or not (digits.isascii() and digits.isdigit()):
        raise UnsupportedVersion(digits)
    return int(digits)


def parse_header(raw_data: str) -> Header:
    """
    Parse the header from raw 2D-DOC barcode data.

    Args:
        raw_data: Complete raw barcode data string

    Returns:
        Header (header_length tells where the message zone starts)

    Raises:
        MalformedHeader: missing "DC" marker or truncated header
        UnsupportedVersion: version outside 1-4

    Example:
        >>> header = parse_header("DC0312345678000000000101" + "...")
        >>> header.version, header.header_length
        (3, 24)
    """
    if not raw_data or not raw_data.startswith(HEADER_MARKER):
        raise MalformedHeader("Invalid 2D-DOC: Missing DC marker")

    version = read_version(raw_data)
    header_length = get_header_length(version)

    if version == 4 and is_binary_encoded(raw_data):
        return _parse_binary_header(raw_data)

    if len(raw_data) < header_length:
        raise MalformedHeader(
            f"Header too short for version {version}: {len(raw_data)} < {header_length}"
        )

    logger.debug(f"Text header, version {version}, {header_length} chars")

    return Header(
        raw=raw_data[:header_length],
        version=version,
        header_length=header_length,
        encoding="c40",
        ca_id=raw_data[4:8],
        cert_id=raw_data[8:12],
        issuance_date=parse_hex_date(raw_data[12:16]),
        signature_date=parse_hex_date(raw_data[16:20]),
        doc_type_id=raw_data[20:22],
        perimeter_id=raw_data[22:24] if version >= 3 else DEFAULT_PERIMETER,
        country_id=raw_data[24:26] if version == 4 else DEFAULT_COUNTRY,
    )


def _parse_binary_header(raw_data: str) -> Header:
    if len(raw_data) < BINARY_HEADER_SIZE:
        raise MalformedHeader(
            f"Binary header too short: {len(raw_data)} < {BINARY_HEADER_SIZE}"
        )

    logger.debug("Binary version 4 header")

    try:
        issuance_date = parse_binary_date(raw_data[10:13])
        signature_date = parse_binary_date(raw_data[13:16])
    except (ValueError, UnicodeEncodeError) as e:
        raise MalformedHeader(f"Unreadable binary date: {e}") from e

    return Header(
        raw=raw_data[:BINARY_HEADER_SIZE],
        version=4,
        header_length=BINARY_HEADER_SIZE,
        encoding="binary",
        country_id=decode_c40(raw_data[4:6]).rstrip(),
        ca_id=decode_c40(raw_data[6:8]).rstrip(),
        cert_id=decode_c40(raw_data[8:10]).rstrip(),
        issuance_date=issuance_date,
        signature_date=signature_date,
        doc_type_id=f"{ord(raw_data[16]):02X}",
        perimeter_id=raw_data[17:19],
    )
