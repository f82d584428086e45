"""
Message zone tokenizer.

The message zone is a sequence of fields, each consisting of:
- DI: 2-character Data Identifier
- DATA: the value, fixed or variable length (see the catalog)
- Separator: GS after variable fields (optional once max length is reached)

Scanning rules:
- "S6" ends the message; nothing after it is read.
- Unknown 2-character sequences are skipped one character at a time until
  a known DI lines up again.
- A DI seen twice keeps its first value; the duplicate is consumed and
  dropped with a warning.
- Values that are empty once cleaned are dropped.
"""

import logging

from twoddoc.catalog import get_field_definition
from twoddoc.models import RawField
from twoddoc.modules.sanitizer import clean_value
from twoddoc.modules.zones import GS, RS

logger = logging.getLogger(__name__)


# End-of-message marker
END_OF_MESSAGE = "S6"


def _read_variable(data: str, pos: int, max_length: int | None) -> int:
    """Return the end position of a variable field starting at pos."""
    end = pos
    while end < len(data) and data[end] not in (GS, RS):
        if max_length and end - pos >= max_length:
            break
        end += 1
    return end


def parse_message(message_data: str) -> list[RawField]:
    """
    Parse a message zone into cleaned (DI, value, separator) triples.

    Args:
        message_data: Message zone (between header and signature separator)

    Returns:
        List of RawField, in message order, with unique field ids

    Example:
        >>> fields = parse_message("10JEAN DUPONT\\x1d2475001")
        >>> [(f.field_id, f.value) for f in fields]
        [('10', 'JEAN DUPONT'), ('24', '75001')]
    """
    fields = []
    seen: set[str] = set()
    pos = 0
    data_len = len(message_data)

    while pos < data_len - 1:
        field_id = message_data[pos:pos + 2]

        if field_id == END_OF_MESSAGE:
            break

        definition = get_field_definition(field_id)
        if definition is None:
            # Re-synchronize on the next character
            pos += 1
            continue

        start = pos
        pos += 2

        if definition.length_type == "fixed":
            value = message_data[pos:pos + definition.length]
            pos += len(value)
        else:
            end = _read_variable(message_data, pos, definition.max_length)
            value = message_data[pos:end]
            pos = end

        separator = None
        if pos < data_len and message_data[pos] == GS:
            separator = GS
            pos += 1

        if field_id in seen:
            logger.warning(f"Duplicate field ID {field_id} found at position {start}, skipping")
            continue

        cleaned = clean_value(value, field_id)
        if not cleaned:
            logger.debug(f"Field {field_id} is empty after cleaning, dropped")
            continue

        fields.append(RawField(field_id=field_id, value=cleaned, separator=separator))
        seen.add(field_id)

    return fields
