"""
Page Extractor - Build a new PDF from selected pages of an existing one

Loads the source bytes with pypdf, validates the whole selection up front,
then copies pages into a fresh writer in the normalized order.
"""

import io
import logging
from enum import Enum
from typing import List, Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from src.common.errors import (
    InvalidSelectionError,
    MalformedDocumentError,
    PageOutOfRangeError,
    SerializationError,
)

logger = logging.getLogger(__name__)

# Raised by pypdf on damaged input besides its own error hierarchy
PARSE_ERRORS = (PyPdfError, ValueError, KeyError, TypeError, IndexError)


class SelectionPolicy(Enum):
    """How the caller's page selection is ordered before building."""
    ASCENDING = "ascending"
    PRESERVE = "preserve"


class PageExtractor:
    """
    Extract an ordered subset of pages into a new PDF.

    Features:
    - Ascending-order policy by default, caller order on request
    - Duplicate page numbers yield duplicate pages
    - All-or-nothing: any out-of-range entry fails before copying starts
    """

    def __init__(self, policy: SelectionPolicy = SelectionPolicy.ASCENDING):
        self.policy = policy

    def normalize_selection(self, selection: Sequence[int], page_count: int) -> List[int]:
        """
        Turn 1-based page numbers into ordered 0-based indices.

        Args:
            selection: Page numbers as supplied by the caller
            page_count: Number of pages in the source document

        Returns:
            0-based indices in build order

        Raises:
            InvalidSelectionError: Empty selection or non-integer entries
            PageOutOfRangeError: An entry does not name an existing page
        """
        if not selection:
            raise InvalidSelectionError("No pages selected")

        for entry in selection:
            if isinstance(entry, bool) or not isinstance(entry, int):
                raise InvalidSelectionError(f"Page numbers must be integers, got: {entry!r}")

        ordered = sorted(selection) if self.policy == SelectionPolicy.ASCENDING else list(selection)

        indices = []
        for page_number in ordered:
            index = page_number - 1
            if index < 0 or index >= page_count:
                raise PageOutOfRangeError(page_number, page_count)
            indices.append(index)
        return indices

    def load(self, source_bytes: bytes) -> PdfReader:
        """
        Parse source bytes into a reader.

        Raises:
            MalformedDocumentError: Bytes are not a readable PDF
        """
        if not source_bytes:
            raise MalformedDocumentError("Source document is empty")

        try:
            reader = PdfReader(io.BytesIO(source_bytes))
            if reader.is_encrypted and not reader.decrypt(""):
                raise MalformedDocumentError("Source document is password protected")
            # Forces the page tree to be parsed
            len(reader.pages)
        except PARSE_ERRORS as e:
            raise MalformedDocumentError(f"Source is not a valid PDF: {e}") from e

        return reader

    def page_count(self, source_bytes: bytes) -> int:
        """Number of pages in a PDF."""
        return len(self.load(source_bytes).pages)

    def extract(self, source_bytes: bytes, selection: Sequence[int]) -> bytes:
        """
        Build a new PDF holding the selected pages.

        Args:
            source_bytes: Raw source PDF
            selection: 1-based page numbers

        Returns:
            Raw bytes of the generated PDF

        Raises:
            InvalidSelectionError: Empty or non-integer selection
            MalformedDocumentError: Source cannot be parsed or a page cannot be copied
            PageOutOfRangeError: Selection names a page the source lacks
            SerializationError: Generated PDF could not be written
        """
        if not selection:
            raise InvalidSelectionError("No pages selected")

        reader = self.load(source_bytes)
        indices = self.normalize_selection(selection, len(reader.pages))

        writer = PdfWriter()
        for index in indices:
            # add_page clones the page into the writer, detaching it from the reader
            try:
                writer.add_page(reader.pages[index])
            except PARSE_ERRORS as e:
                raise MalformedDocumentError(f"Failed to copy page {index + 1}: {e}") from e

        buffer = io.BytesIO()
        try:
            writer.write(buffer)
        except (PyPdfError, ValueError, TypeError, KeyError, OSError) as e:
            logger.error(f"Failed to serialize generated PDF: {e}", exc_info=True)
            raise SerializationError(f"Failed to write generated PDF: {e}") from e

        logger.debug(f"Extracted {len(indices)} page(s) from {len(reader.pages)}-page source")
        return buffer.getvalue()
