"""Save use case for captured signatures.

Persists through the RecordStore, then hands off to the SyncCoordinator.
The sync attempt is decoupled from the save: whatever happens during the
attempt, a successful save returns its record.
"""

import logging

from .models import (
    DocumentType,
    PdfSignatureRecord,
    Placement,
    SignatureImage,
    SignatureRecord,
)
from .ports import CapturePort
from .record_store import RecordStore
from .sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class CaptureService(CapturePort):
    """Implements CapturePort on top of the record store and coordinator."""

    def __init__(self, store: RecordStore, coordinator: SyncCoordinator):
        self.store = store
        self.coordinator = coordinator

    async def save_signature(
        self,
        document_id: str,
        document_type: DocumentType,
        image: SignatureImage,
    ) -> SignatureRecord:
        record = await self.store.append_signature(document_id, document_type, image)
        await self._trigger_sync(pdf=False)
        return record

    async def save_pdf_signature(
        self,
        document_id: str,
        original_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
        document_type: DocumentType = DocumentType.INVOICE,
    ) -> PdfSignatureRecord:
        record = await self.store.append_pdf_signature(
            document_id, original_bytes, image, placement, document_type
        )
        await self._trigger_sync(pdf=True)
        return record

    async def _trigger_sync(self, pdf: bool) -> None:
        """Fire a sync attempt without letting its failures reach the caller."""
        try:
            if pdf:
                await self.coordinator.attempt_pdf_sync()
            else:
                await self.coordinator.attempt_sync()
        except Exception as e:
            logger.warning(f"Post-save sync attempt failed: {e}", exc_info=True)
