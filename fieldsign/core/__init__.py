"""Core domain logic for the FieldSign signature system.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .errors import (
    AnnotationError,
    DecodeError,
    FieldSignError,
    InvalidImageError,
    MalformedDocumentError,
    PageIndexOutOfRangeError,
    PersistenceError,
    SyncError,
)
from .models import (
    DocumentType,
    PdfSignatureRecord,
    Placement,
    SignatureImage,
    SignatureRecord,
    StoreStats,
    SyncState,
)

__all__ = [
    "AnnotationError",
    "DecodeError",
    "DocumentType",
    "FieldSignError",
    "InvalidImageError",
    "MalformedDocumentError",
    "PageIndexOutOfRangeError",
    "PdfSignatureRecord",
    "PersistenceError",
    "Placement",
    "SignatureImage",
    "SignatureRecord",
    "StoreStats",
    "SyncError",
    "SyncState",
]
