"""
Exceptions raised while decoding 2D-DOC barcodes.

Structural problems (bad marker, unknown version, unsupported document type)
abort the parse. They are raised inside the pipeline and wrapped into a
ParseError by the parser entry point, so callers only need to catch one type.

Duplicate fields and bad signatures are NOT exceptions: they are logged and
recorded on the result.
"""


class TwoDDocError(Exception):
    """Base class for every error raised by this package."""


class MalformedHeader(TwoDDocError):
    """The payload does not start with the DC marker, or the header is unreadable."""


class UnsupportedVersion(TwoDDocError):
    """The header announces a version outside 1-4."""

    def __init__(self, version):
        self.version = version
        super().__init__(f"Unsupported 2D-DOC version: {version}")


class UnsupportedDocumentType(TwoDDocError):
    """The (perimeter, document type) pair is not in the registry."""

    def __init__(self, perimeter_id: str | None, doc_type_id: str | None):
        self.perimeter_id = perimeter_id
        self.doc_type_id = doc_type_id
        super().__init__(
            f"Document type not supported (perimeter: {perimeter_id}, type: {doc_type_id})"
        )


class ParseError(TwoDDocError):
    """Wrapper raised by parse() for any fatal structural failure."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to parse 2D-DOC: {reason}")


class CircuitEncodingError(TwoDDocError):
    """A parsed document cannot be packed into the fixed-width circuit input."""


class MissingFieldError(TwoDDocError):
    """A matcher needs a field that the document does not carry."""

    def __init__(self, field_id: str):
        self.field_id = field_id
        super().__init__(f"Field {field_id} is required but missing from the document")
