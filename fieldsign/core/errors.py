"""Error taxonomy for the FieldSign signature system.

Adapters wrap library-specific failures into these types at their
boundary so the core never depends on sqlite3, pypdf, or httpx errors.
"""


class FieldSignError(Exception):
    """Base class for all FieldSign errors."""


class PersistenceError(FieldSignError):
    """The underlying key/value medium rejected a read or write."""


class DecodeError(FieldSignError):
    """Stored data is corrupt or cannot be parsed back into records."""


class AnnotationError(FieldSignError):
    """Embedding a signature image into a PDF failed."""


class MalformedDocumentError(AnnotationError):
    """The document bytes could not be parsed as a PDF."""


class PageIndexOutOfRangeError(AnnotationError):
    """The requested page does not exist in the document."""

    def __init__(self, page_index: int, page_count: int):
        super().__init__(
            f"Page index {page_index} out of range for document with "
            f"{page_count} page(s)"
        )
        self.page_index = page_index
        self.page_count = page_count


class InvalidImageError(AnnotationError):
    """The signature image could not be decoded as a raster image."""


class SyncError(FieldSignError):
    """The remote endpoint did not acknowledge a pushed record."""
