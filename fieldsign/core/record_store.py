"""Append-only local store for signature records.

Two independent sequences are kept, one for plain signatures and one for
PDF-embedded signatures. Each sequence is persisted as a single JSON
array under a namespaced key of a KeyValueStorePort, and every mutation
rewrites the whole array while holding that sequence's lock.
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .codec import ByteEncoding, record_from_dict, record_to_dict
from .errors import DecodeError
from .models import (
    DocumentType,
    PdfSignatureRecord,
    Placement,
    SignatureImage,
    SignatureRecord,
    StoreStats,
)
from .ports import AnnotationPort, KeyValueStorePort

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURES_KEY = "fieldsign.signatures"
DEFAULT_PDF_SIGNATURES_KEY = "fieldsign.pdf_signatures"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    """Durable, ordered collections of signature records.

    Guarantees:
    - Insertion order is preserved and records are never deleted.
    - ``synced`` is the only field that changes after creation.
    - Appends and sync marks on the same sequence never interleave,
      so no concurrent caller can lose another caller's update.
    """

    def __init__(
        self,
        kv: KeyValueStorePort,
        annotator: AnnotationPort,
        signatures_key: str = DEFAULT_SIGNATURES_KEY,
        pdf_signatures_key: str = DEFAULT_PDF_SIGNATURES_KEY,
        byte_encoding: ByteEncoding = "int_array",
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the record store.

        Args:
            kv: Text-only persistent medium.
            annotator: Engine used to sign PDFs before they are stored.
            signatures_key: Key holding the plain-signature sequence.
            pdf_signatures_key: Key holding the PDF-signature sequence.
            byte_encoding: Storage form written for byte fields.
            clock: Source of timezone-aware capture timestamps.
        """
        if signatures_key == pdf_signatures_key:
            raise ValueError("signatures_key and pdf_signatures_key must differ")
        self.kv = kv
        self.annotator = annotator
        self.signatures_key = signatures_key
        self.pdf_signatures_key = pdf_signatures_key
        self.byte_encoding = byte_encoding
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {
            signatures_key: asyncio.Lock(),
            pdf_signatures_key: asyncio.Lock(),
        }

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    async def append_signature(
        self,
        document_id: str,
        document_type: DocumentType,
        image: SignatureImage,
    ) -> SignatureRecord:
        """Create, persist, and return a new plain signature record.

        Raises:
            ValueError: If document_id is empty.
            PersistenceError: If the medium rejects the write.
        """
        async with self._locks[self.signatures_key]:
            records = await self._load_for_mutation(self.signatures_key)
            record = SignatureRecord(
                id=str(uuid.uuid4()),
                document_id=document_id,
                document_type=document_type,
                signature_image=image,
                created_at=self._next_timestamp(records),
                synced=False,
            )
            records.append(record)
            await self._save(self.signatures_key, records)

        logger.info(
            f"Stored signature {record.id} for {document_type.value} {document_id}"
        )
        return record

    async def append_pdf_signature(
        self,
        document_id: str,
        original_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
        document_type: DocumentType = DocumentType.INVOICE,
    ) -> PdfSignatureRecord:
        """Sign a PDF, then create, persist, and return its record.

        If annotation fails the error propagates unchanged and the
        PDF-signature sequence is left untouched.

        Raises:
            ValueError: If document_id is empty.
            AnnotationError: If the PDF could not be annotated.
            PersistenceError: If the medium rejects the write.
        """
        if not document_id or not document_id.strip():
            raise ValueError("document_id must be a non-empty string")

        original_bytes = bytes(original_bytes)
        signed_bytes = await self.annotator.annotate(original_bytes, image, placement)

        async with self._locks[self.pdf_signatures_key]:
            records = await self._load_for_mutation(self.pdf_signatures_key)
            record = PdfSignatureRecord(
                id=str(uuid.uuid4()),
                document_id=document_id,
                document_type=document_type,
                signature_image=image,
                created_at=self._next_timestamp(records),
                synced=False,
                original_document_bytes=original_bytes,
                signed_document_bytes=signed_bytes,
                placement=placement,
            )
            records.append(record)
            await self._save(self.pdf_signatures_key, records)

        logger.info(
            f"Stored PDF signature {record.id} for document {document_id} "
            f"(page {placement.page_index}, {len(signed_bytes)} bytes)"
        )
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_signatures(self) -> list[SignatureRecord]:
        """Return every plain signature in insertion order."""
        return await self._list(self.signatures_key)

    async def list_pdf_signatures(self) -> list[PdfSignatureRecord]:
        """Return every PDF signature in insertion order."""
        records = await self._list(self.pdf_signatures_key)
        return [r for r in records if isinstance(r, PdfSignatureRecord)]

    async def list_unsynced_signatures(self) -> list[SignatureRecord]:
        return [r for r in await self.list_signatures() if not r.synced]

    async def list_unsynced_pdf_signatures(self) -> list[PdfSignatureRecord]:
        return [r for r in await self.list_pdf_signatures() if not r.synced]

    async def get_signature(self, record_id: str) -> SignatureRecord | None:
        for record in await self.list_signatures():
            if record.id == record_id:
                return record
        return None

    async def get_pdf_signature(self, record_id: str) -> PdfSignatureRecord | None:
        for record in await self.list_pdf_signatures():
            if record.id == record_id:
                return record
        return None

    async def get_stats(self) -> StoreStats:
        """Summary counts for reporting unsynced backlog."""
        signatures = await self.list_signatures()
        pdf_signatures = await self.list_pdf_signatures()
        return StoreStats(
            total_signatures=len(signatures),
            unsynced_signatures=sum(1 for r in signatures if not r.synced),
            total_pdf_signatures=len(pdf_signatures),
            unsynced_pdf_signatures=sum(1 for r in pdf_signatures if not r.synced),
        )

    # ------------------------------------------------------------------
    # Sync marks
    # ------------------------------------------------------------------

    async def mark_synced(self, record_id: str) -> bool:
        """Mark a plain signature as synced.

        Idempotent. Unknown ids are ignored, since sync may race with
        an external clear of the device storage.

        Returns:
            True if a record changed state, False otherwise.
        """
        return await self._mark(self.signatures_key, record_id)

    async def mark_pdf_synced(self, record_id: str) -> bool:
        """Mark a PDF signature as synced. Same contract as mark_synced."""
        return await self._mark(self.pdf_signatures_key, record_id)

    async def _mark(self, key: str, record_id: str) -> bool:
        async with self._locks[key]:
            records = await self._load_for_mutation(key)
            for index, record in enumerate(records):
                if record.id != record_id:
                    continue
                if record.synced:
                    return False
                records[index] = record.as_synced()
                await self._save(key, records)
                logger.debug(f"Marked {record_id} synced under {key}")
                return True

        logger.debug(f"No record {record_id} under {key}; nothing to mark")
        return False

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    async def _list(self, key: str) -> list[SignatureRecord]:
        """Load a sequence, treating unreadable state as empty."""
        try:
            return self._parse(await self.kv.get(key))
        except DecodeError as e:
            logger.error(f"Stored records under {key} are unreadable: {e}")
            return []

    async def _load_for_mutation(self, key: str) -> list[SignatureRecord]:
        """Load a sequence before rewriting it.

        Unreadable state is moved aside to a backup key and replaced by an
        empty sequence, so it is backed up exactly once.
        """
        raw = await self.kv.get(key)
        if raw is None:
            return []
        try:
            return self._parse(raw)
        except DecodeError as e:
            backup_key = f"{key}.corrupt.{self._clock():%Y%m%dT%H%M%S%fZ}"
            await self.kv.set(backup_key, raw)
            await self._save(key, [])
            logger.warning(
                f"Stored records under {key} are unreadable ({e}); "
                f"moved to {backup_key} and starting a fresh sequence"
            )
            return []

    @staticmethod
    def _parse(raw: str | None) -> list[SignatureRecord]:
        if raw is None:
            return []
        try:
            items: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Invalid JSON: {e}") from e
        if not isinstance(items, list):
            raise DecodeError(f"Expected a JSON array, got {type(items).__name__}")
        return [record_from_dict(item) for item in items]

    async def _save(self, key: str, records: list[SignatureRecord]) -> None:
        payload = json.dumps(
            [record_to_dict(r, self.byte_encoding) for r in records],
            separators=(",", ":"),
        )
        await self.kv.set(key, payload)

    def _next_timestamp(self, records: list[SignatureRecord]) -> datetime:
        """Capture time that never precedes the last stored record."""
        now = self._clock()
        if records and now < records[-1].created_at:
            return records[-1].created_at
        return now
