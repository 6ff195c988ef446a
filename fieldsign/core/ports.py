"""Port interfaces for the FieldSign signature system.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - KeyValueStorePort: Text-only durable storage for record sequences
   - AnnotationPort: Burn a signature image into a PDF page
   - SyncTransportPort: Push one record to the remote endpoint
   - ConnectivityPort: "Is online" query plus restored-connection events

2. **Driving Ports** (adapters/external systems call into core)
   - CapturePort: Entry point for saving captured signatures
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from .models import (
    DocumentType,
    PdfSignatureRecord,
    Placement,
    SignatureImage,
    SignatureRecord,
)

OnlineCallback: TypeAlias = Callable[[], Awaitable[None]]


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class KeyValueStorePort(ABC):
    """Port for a durable medium that only stores textual values.

    Implementations must handle:
    - Atomic replacement of a single key's value
    - Wrapping backend failures in PersistenceError
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read the value stored under a key.

        Returns:
            The stored text, or None if the key has never been written.

        Raises:
            PersistenceError: If the medium cannot be read.
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Replace the value stored under a key.

        Raises:
            PersistenceError: If the medium rejects the write.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release any resources held by the store."""


class AnnotationPort(ABC):
    """Port for embedding a signature image into a PDF document."""

    @abstractmethod
    async def annotate(
        self,
        document_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
    ) -> bytes:
        """Draw the image on a page and return the re-serialized document.

        The image is scaled uniformly to a fixed width with its
        bottom-left corner at (placement.x, placement.y) in page space.

        Returns:
            Bytes of the complete signed document.

        Raises:
            MalformedDocumentError: If document_bytes is not a readable PDF.
            PageIndexOutOfRangeError: If placement.page_index is not a page.
            InvalidImageError: If the image cannot be decoded.
        """

    @abstractmethod
    async def page_count(self, document_bytes: bytes) -> int:
        """Return the number of pages in a document.

        Raises:
            MalformedDocumentError: If document_bytes is not a readable PDF.
        """


class SyncTransportPort(ABC):
    """Port for informing the remote system of a locally created record.

    The remote endpoint must accept a record by id idempotently: pushing
    the same record twice is harmless.
    """

    @abstractmethod
    async def push_signature(self, record: SignatureRecord) -> None:
        """Push a plain signature record.

        Raises:
            SyncError: If the remote did not acknowledge the record.
        """

    @abstractmethod
    async def push_pdf_signature(self, record: PdfSignatureRecord) -> None:
        """Push a PDF signature record.

        Raises:
            SyncError: If the remote did not acknowledge the record.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release any resources held by the transport."""


class ConnectivityPort(ABC):
    """Port for the device's network reachability."""

    @abstractmethod
    def is_online(self) -> bool:
        """Return whether the device is currently online."""

    @abstractmethod
    def subscribe(self, callback: OnlineCallback) -> None:
        """Register a callback fired on each offline -> online transition."""

    @abstractmethod
    def unsubscribe(self, callback: OnlineCallback) -> None:
        """Remove a previously registered callback. Unknown callbacks are ignored."""


# ============================================================================
# DRIVING PORTS (External systems call into core)
# ============================================================================


class CapturePort(ABC):
    """Port for saving captured signatures."""

    @abstractmethod
    async def save_signature(
        self,
        document_id: str,
        document_type: DocumentType,
        image: SignatureImage,
    ) -> SignatureRecord:
        """Persist a standalone signature and trigger a sync attempt.

        Raises:
            PersistenceError: If the record could not be stored.
        """

    @abstractmethod
    async def save_pdf_signature(
        self,
        document_id: str,
        original_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
        document_type: DocumentType = DocumentType.INVOICE,
    ) -> PdfSignatureRecord:
        """Annotate a PDF, persist the record, and trigger a sync attempt.

        Raises:
            AnnotationError: If the document could not be annotated.
            PersistenceError: If the record could not be stored.
        """
