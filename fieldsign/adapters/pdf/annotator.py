"""PDF annotation adapter.

Implements AnnotationPort with pypdf, reportlab, and Pillow: the signature
is painted onto a one-page reportlab overlay the size of the target page,
the overlay is merged onto that page, and the whole document is written
back out. Work happens on an in-memory clone; bytes are only returned once
every step has succeeded.
"""

import asyncio
import logging
from io import BytesIO

from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from fieldsign.core.errors import (
    InvalidImageError,
    MalformedDocumentError,
    PageIndexOutOfRangeError,
)
from fieldsign.core.geometry import SIGNATURE_TARGET_WIDTH, scale_to_width
from fieldsign.core.models import Placement, SignatureImage
from fieldsign.core.ports import AnnotationPort

logger = logging.getLogger(__name__)


class PdfAnnotator(AnnotationPort):
    """Burns raster signatures into PDF pages."""

    def __init__(self, target_width: float = SIGNATURE_TARGET_WIDTH):
        """Initialize the annotator.

        Args:
            target_width: Width in points every signature is scaled to.
        """
        if target_width <= 0:
            raise ValueError("target_width must be positive")
        self.target_width = target_width

    async def annotate(
        self,
        document_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
    ) -> bytes:
        """Draw the signature on a page and return the new document bytes."""
        return await asyncio.to_thread(
            self.annotate_sync, document_bytes, image, placement
        )

    async def page_count(self, document_bytes: bytes) -> int:
        return await asyncio.to_thread(
            lambda: len(self._read(document_bytes).pages)
        )

    def annotate_sync(
        self,
        document_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
    ) -> bytes:
        """Blocking implementation of annotate.

        Raises:
            MalformedDocumentError: If the bytes are not a readable PDF.
            PageIndexOutOfRangeError: If the target page does not exist.
            InvalidImageError: If the signature image cannot be decoded.
        """
        reader = self._read(document_bytes)
        page_count = len(reader.pages)
        if placement.page_index < 0 or placement.page_index >= page_count:
            raise PageIndexOutOfRangeError(placement.page_index, page_count)

        signature = self._decode_image(image)
        width, height = scale_to_width(
            signature.width, signature.height, self.target_width
        )

        try:
            writer = PdfWriter(clone_from=reader)
            page = writer.pages[placement.page_index]
            box = page.mediabox
            overlay = self._make_overlay(
                float(box.right),
                float(box.top),
                signature,
                placement.x,
                placement.y,
                width,
                height,
            )
            page.merge_page(PdfReader(BytesIO(overlay)).pages[0])

            out = BytesIO()
            writer.write(out)
        except PyPdfError as e:
            raise MalformedDocumentError(f"Failed to rewrite document: {e}") from e
        except Exception as e:
            raise MalformedDocumentError(f"Signing page failed: {e}") from e

        logger.debug(
            f"Embedded {signature.width}x{signature.height} signature as "
            f"{width:.1f}x{height:.1f} at ({placement.x}, {placement.y}) "
            f"on page {placement.page_index}"
        )
        return out.getvalue()

    @staticmethod
    def _read(document_bytes: bytes) -> PdfReader:
        try:
            reader = PdfReader(BytesIO(document_bytes))
            # Page tree is parsed lazily; force it so broken trees fail here.
            len(reader.pages)
            return reader
        except PyPdfError as e:
            raise MalformedDocumentError(f"Not a readable PDF: {e}") from e
        except Exception as e:
            raise MalformedDocumentError(f"PDF parsing failed: {e}") from e

    @staticmethod
    def _decode_image(image: SignatureImage) -> Image.Image:
        try:
            decoded = Image.open(BytesIO(image.data))
            decoded.load()
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise InvalidImageError(
                f"Cannot decode {image.mime_type} signature image: {e}"
            ) from e
        return decoded.convert("RGBA")

    @staticmethod
    def _make_overlay(
        page_w: float,
        page_h: float,
        signature: Image.Image,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> bytes:
        """Build a single overlay page holding only the signature image."""
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(page_w, page_h))
        c.drawImage(
            ImageReader(signature), x, y, width=width, height=height, mask="auto"
        )
        c.save()
        return buf.getvalue()
