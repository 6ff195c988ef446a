"""Fake AnnotationPort implementation for testing."""

from fieldsign.core.errors import AnnotationError
from fieldsign.core.models import Placement, SignatureImage
from fieldsign.core.ports import AnnotationPort


class FakeAnnotator(AnnotationPort):
    """Annotator that returns predictable bytes without touching a PDF.

    The signed output is the original bytes followed by a marker naming
    the page, so tests can tell which call produced which document.
    """

    def __init__(self, page_count: int = 1):
        self.pages = page_count
        self.calls: list[tuple[bytes, SignatureImage, Placement]] = []
        self.error: AnnotationError | None = None

    async def annotate(
        self,
        document_bytes: bytes,
        image: SignatureImage,
        placement: Placement,
    ) -> bytes:
        self.calls.append((document_bytes, image, placement))
        if self.error is not None:
            raise self.error
        return document_bytes + f"%signed-page-{placement.page_index}".encode()

    async def page_count(self, document_bytes: bytes) -> int:
        return self.pages

    def set_error(self, error: AnnotationError | None) -> None:
        """Configure the annotator to raise on the next calls."""
        self.error = error
