"""
PDF document loading and page geometry.
"""
import logging
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from ..errors import SerializationError

logger = logging.getLogger(__name__)


def open_document(data: bytes) -> fitz.Document:
    """
    Open a PDF from bytes.

    Raises:
        SerializationError: If the bytes are not a readable PDF
    """
    if not data:
        raise SerializationError("Empty document data")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise SerializationError(f"Cannot parse document: {e}") from e

    if doc.page_count == 0:
        doc.close()
        raise SerializationError("Document has no pages")
    return doc


def document_to_bytes(doc: fitz.Document) -> bytes:
    """
    Serialize a document.

    Garbage collection and deflate keep the output compact; the file ID is
    left untouched so repeated exports of the same input are identical.

    Raises:
        SerializationError: If the writer fails or produces no output
    """
    try:
        data = doc.tobytes(garbage=3, deflate=True, no_new_id=True)
    except Exception as e:
        raise SerializationError(f"Cannot write document: {e}") from e

    if not data:
        raise SerializationError("Writer produced an empty document")
    return data


def get_page_sizes(data: bytes) -> List[Tuple[float, float]]:
    """Return (width, height) in points for every page of a PDF."""
    with PDFDocumentReader(data) as reader:
        return [reader.get_page_size(i) for i in range(reader.total_pages)]


class PDFDocumentReader:
    """Read-only access to page count and page sizes of a PDF in memory."""

    def __init__(self, data: Optional[bytes] = None):
        self.doc: Optional[fitz.Document] = None
        self.total_pages: int = 0
        if data is not None:
            self.load_bytes(data)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close_document()

    def load_bytes(self, data: bytes) -> int:
        """
        Load a PDF document.

        Returns:
            Number of pages

        Raises:
            SerializationError: If the data cannot be parsed
        """
        # Close existing document if any
        if self.doc:
            self.close_document()

        self.doc = open_document(data)
        self.total_pages = self.doc.page_count
        return self.total_pages

    def close_document(self) -> None:
        """Close the current PDF document and clear all state."""
        if self.doc:
            self.doc.close()
            self.doc = None
        self.total_pages = 0

    def get_page(self, page_index: int) -> Optional[fitz.Page]:
        """
        Get a page object for direct operations.

        Returns:
            PyMuPDF page object, or None if invalid
        """
        if not self.doc or not 0 <= page_index < self.total_pages:
            return None
        return self.doc.load_page(page_index)

    def get_page_size(self, page_index: int) -> Tuple[float, float]:
        """
        Get the size of a page in points.

        Returns:
            Tuple of (width, height) in points, (0, 0) for an invalid index
        """
        page = self.get_page(page_index)
        if page:
            rect = page.rect
            return rect.width, rect.height
        return 0.0, 0.0
