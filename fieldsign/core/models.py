"""Domain models for the FieldSign signature system.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class DocumentType(Enum):
    """Kind of business document a signature acknowledges."""

    INVOICE = "invoice"
    RECEIPT = "receipt"


class SyncState(Enum):
    """Sync lifecycle of a record as seen by the sync coordinator.

    Only SYNCED is persisted (as ``synced=True``). IN_FLIGHT is tracked
    in memory while a push is outstanding, so a process killed mid-push
    leaves the record PENDING and it is retried on the next trigger.
    """

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SYNCED = "synced"


@dataclass(frozen=True)
class SignatureImage:
    """An encoded raster image of a captured signature stroke."""

    data: bytes
    mime_type: str = "image/png"

    def __post_init__(self) -> None:
        """Validate image invariants on creation."""
        if not isinstance(self.data, (bytes, bytearray)):
            raise ValueError("data must be bytes")
        if not self.mime_type or not self.mime_type.startswith("image/"):
            raise ValueError(f"mime_type must be an image type, got {self.mime_type!r}")
        if isinstance(self.data, bytearray):
            object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class Placement:
    """Where a signature is drawn on a PDF page.

    Coordinates are in PDF page space (points, origin bottom-left).
    Use ``fieldsign.core.geometry.screen_to_page`` when the position
    was captured in a top-left screen coordinate space.
    """

    x: float
    y: float
    page_index: int

    def __post_init__(self) -> None:
        if isinstance(self.page_index, bool) or not isinstance(self.page_index, int):
            raise ValueError(f"page_index must be an int, got {self.page_index!r}")


@dataclass(frozen=True)
class SignatureRecord:
    """A captured signature for a business document.

    Every field is write-once except ``synced``, which flips from False
    to True exactly once. Records are frozen; marking one synced yields
    a new instance via ``as_synced``.
    """

    id: str  # UUID
    document_id: str
    document_type: DocumentType
    signature_image: SignatureImage
    created_at: datetime
    synced: bool = False

    def __post_init__(self) -> None:
        """Validate record invariants on creation or deserialization."""
        if not self.id or not self.id.strip():
            raise ValueError("id must be a non-empty string")
        if not self.document_id or not self.document_id.strip():
            raise ValueError("document_id must be a non-empty string")
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")

    def as_synced(self) -> "SignatureRecord":
        """Return a copy of this record with ``synced`` set."""
        if self.synced:
            return self
        return replace(self, synced=True)


@dataclass(frozen=True)
class PdfSignatureRecord(SignatureRecord):
    """A signature burned into a specific page of a PDF document."""

    original_document_bytes: bytes = b""
    signed_document_bytes: bytes = b""
    placement: Placement | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.placement is None:
            raise ValueError("placement is required for a PDF signature")
        if not self.signed_document_bytes:
            raise ValueError("signed_document_bytes must not be empty")


@dataclass(frozen=True)
class StoreStats:
    """Record counts for both signature sequences."""

    total_signatures: int
    unsynced_signatures: int
    total_pdf_signatures: int
    unsynced_pdf_signatures: int

    @property
    def total_unsynced(self) -> int:
        return self.unsynced_signatures + self.unsynced_pdf_signatures
