"""CLI command implementations for FieldSign.

Stands in for the capture UI: each command maps to a CapturePort or
RecordStore operation and returns a JSON-serializable result dict.
Domain errors are reported as ``{"status": "error", ...}`` results
rather than raised, so an interactive session survives a bad command.
"""

import logging
from pathlib import Path
from typing import Any

from fieldsign.adapters.capture.canvas import load_signature_image, render_strokes
from fieldsign.core.codec import parse_data_url
from fieldsign.core.errors import FieldSignError
from fieldsign.core.geometry import screen_to_page
from fieldsign.core.models import (
    DocumentType,
    PdfSignatureRecord,
    Placement,
    SignatureImage,
    SignatureRecord,
)
from fieldsign.core.ports import CapturePort
from fieldsign.core.record_store import RecordStore
from fieldsign.core.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


def _summarize(record: SignatureRecord) -> dict[str, Any]:
    """Render a record without its byte payloads."""
    summary: dict[str, Any] = {
        "id": record.id,
        "document_id": record.document_id,
        "document_type": record.document_type.value,
        "created_at": record.created_at.isoformat(),
        "synced": record.synced,
        "image_bytes": len(record.signature_image.data),
    }
    if isinstance(record, PdfSignatureRecord) and record.placement is not None:
        summary["placement"] = {
            "x": record.placement.x,
            "y": record.placement.y,
            "page_index": record.placement.page_index,
        }
        summary["original_bytes"] = len(record.original_document_bytes)
        summary["signed_bytes"] = len(record.signed_document_bytes)
    return summary


class CLICommandHandler:
    """Handles CLI commands by delegating to the capture service and store."""

    def __init__(
        self,
        capture: CapturePort,
        store: RecordStore,
        coordinator: SyncCoordinator,
    ):
        """Initialize the CLI command handler.

        Args:
            capture: CapturePort implementation used to save signatures.
            store: Record store used for listing and export.
            coordinator: Sync coordinator used for manual sync runs.
        """
        self.capture = capture
        self.store = store
        self.coordinator = coordinator

    @staticmethod
    def _resolve_image(args: dict[str, Any]) -> SignatureImage:
        """Build the signature image from whichever input was supplied.

        Raises:
            ValueError: If no usable image input is present.
        """
        if args.get("image_path"):
            return load_signature_image(args["image_path"])
        if args.get("data_url"):
            return parse_data_url(args["data_url"])
        if args.get("strokes"):
            return render_strokes(
                args["strokes"],
                width=int(args.get("width", 400)),
                height=int(args.get("height", 150)),
            )
        raise ValueError("Provide one of: image_path, data_url, strokes")

    async def sign(self, args: dict[str, Any]) -> dict[str, Any]:
        """Capture a standalone signature for a business document."""
        try:
            if not args.get("document_id"):
                raise ValueError("Missing required parameter: document_id")
            document_type = DocumentType(args.get("document_type", "invoice"))
            image = self._resolve_image(args)
            record = await self.capture.save_signature(
                args["document_id"], document_type, image
            )
            return {
                "status": "success",
                "operation": "sign",
                "record": _summarize(record),
            }
        except (FieldSignError, ValueError, OSError) as e:
            logger.error(f"Failed to save signature: {e}")
            return {"status": "error", "operation": "sign", "message": str(e)}

    async def sign_pdf(self, args: dict[str, Any]) -> dict[str, Any]:
        """Burn a signature into a PDF page and store the signed document.

        When ``page_height`` is given, ``y`` is read as an offset from the
        top of the page and converted to PDF page space.
        """
        try:
            for required in ("document_id", "pdf_path"):
                if not args.get(required):
                    raise ValueError(f"Missing required parameter: {required}")
            pdf_path = Path(args["pdf_path"])
            original = pdf_path.read_bytes()
            image = self._resolve_image(args)
            page_index = int(args.get("page_index", 0))
            x = float(args.get("x", 0))
            y = float(args.get("y", 0))
            if args.get("page_height") is not None:
                placement = screen_to_page(
                    x, y, page_index, float(args["page_height"])
                )
            else:
                placement = Placement(x=x, y=y, page_index=page_index)

            record = await self.capture.save_pdf_signature(
                args["document_id"],
                original,
                image,
                placement,
                DocumentType(args.get("document_type", "invoice")),
            )

            output_path = Path(
                args.get("output_path")
                or pdf_path.with_name(f"{pdf_path.stem}_signed.pdf")
            )
            output_path.write_bytes(record.signed_document_bytes)

            return {
                "status": "success",
                "operation": "sign_pdf",
                "record": _summarize(record),
                "output_path": str(output_path),
            }
        except (FieldSignError, ValueError, OSError) as e:
            logger.error(f"Failed to sign PDF: {e}")
            return {"status": "error", "operation": "sign_pdf", "message": str(e)}

    async def list_records(
        self, kind: str = "plain", unsynced_only: bool = False
    ) -> dict[str, Any]:
        """List stored records of one kind."""
        if kind == "plain":
            records: list[Any] = (
                await self.store.list_unsynced_signatures()
                if unsynced_only
                else await self.store.list_signatures()
            )
        elif kind == "pdf":
            records = (
                await self.store.list_unsynced_pdf_signatures()
                if unsynced_only
                else await self.store.list_pdf_signatures()
            )
        else:
            return {
                "status": "error",
                "operation": "list",
                "message": f"Unknown record kind: {kind}",
            }

        return {
            "status": "success",
            "operation": "list",
            "kind": kind,
            "count": len(records),
            "records": [_summarize(r) for r in records],
        }

    async def export(self, record_id: str, output_path: str) -> dict[str, Any]:
        """Write the signed PDF of a stored record to disk."""
        record = await self.store.get_pdf_signature(record_id)
        if record is None:
            return {
                "status": "error",
                "operation": "export",
                "message": f"PDF signature {record_id} not found",
            }
        try:
            Path(output_path).write_bytes(record.signed_document_bytes)
        except OSError as e:
            logger.error(f"Failed to export {record_id}: {e}")
            return {"status": "error", "operation": "export", "message": str(e)}
        return {
            "status": "success",
            "operation": "export",
            "record_id": record_id,
            "output_path": output_path,
            "bytes": len(record.signed_document_bytes),
        }

    async def sync(self) -> dict[str, Any]:
        """Run a sync attempt now and wait for its pushes to settle."""
        if not self.coordinator.connectivity.is_online():
            stats = await self.store.get_stats()
            return {
                "status": "offline",
                "operation": "sync",
                "scheduled": 0,
                "unsynced": stats.total_unsynced,
            }
        scheduled = await self.coordinator.attempt_all()
        await self.coordinator.wait_idle()
        stats = await self.store.get_stats()
        return {
            "status": "success",
            "operation": "sync",
            "scheduled": scheduled,
            "unsynced": stats.total_unsynced,
        }

    async def status(self, record_id: str) -> dict[str, Any]:
        """Report the sync state of one record."""
        state = await self.coordinator.sync_state(record_id)
        return {
            "status": "success",
            "operation": "status",
            "record_id": record_id,
            "sync_state": state.value,
        }

    async def stats(self) -> dict[str, Any]:
        """Summarize stored and unsynced record counts."""
        stats = await self.store.get_stats()
        return {
            "status": "success",
            "operation": "stats",
            "total_signatures": stats.total_signatures,
            "unsynced_signatures": stats.unsynced_signatures,
            "total_pdf_signatures": stats.total_pdf_signatures,
            "unsynced_pdf_signatures": stats.unsynced_pdf_signatures,
            "online": self.coordinator.connectivity.is_online(),
            "in_flight": self.coordinator.in_flight_count,
        }
