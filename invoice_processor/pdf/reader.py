"""Structural PDF access: page counts and raw content streams.

The text miner only needs bytes of content streams, not a rendering model, so
this is a thin layer over pypdf's object model.

Based on pypdf documentation:
https://pypdf.readthedocs.io/
"""

import io
import logging
from typing import Protocol

from pypdf import PdfReader
from pypdf.generic import ArrayObject

logger = logging.getLogger(__name__)


class PDFStructureReader(Protocol):
    """Protocol for structural PDF readers."""

    def page_count(self, data: bytes) -> int:
        """Return the number of pages."""
        ...

    def content_streams(self, data: bytes) -> list[bytes]:
        """Return every page content stream object, decoded, in document order.

        Raises on malformed structure so callers can fall back to page_contents.
        """
        ...

    def page_contents(self, data: bytes) -> list[bytes | None]:
        """Return one merged content stream per page (None where unreadable)."""
        ...


class PypdfStructureReader:
    """PDFStructureReader backed by pypdf.

    content_streams() uses a strict reader so structural problems surface as
    exceptions; page_contents() uses a lenient one and skips broken pages.
    """

    def page_count(self, data: bytes) -> int:
        return len(PdfReader(io.BytesIO(data), strict=False).pages)

    def content_streams(self, data: bytes) -> list[bytes]:
        reader = PdfReader(io.BytesIO(data), strict=True)
        streams: list[bytes] = []
        for page in reader.pages:
            contents = page.get("/Contents")
            if contents is None:
                continue
            contents = contents.get_object()
            if isinstance(contents, ArrayObject):
                streams.extend(ref.get_object().get_data() for ref in contents)
            else:
                streams.append(contents.get_data())
        return streams

    def page_contents(self, data: bytes) -> list[bytes | None]:
        reader = PdfReader(io.BytesIO(data), strict=False)
        pages: list[bytes | None] = []
        for page_num, page in enumerate(reader.pages, start=1):
            try:
                contents = page.get_contents()
                pages.append(contents.get_data() if contents is not None else None)
            except Exception as e:
                logger.debug(f"Skipping unreadable content stream on page {page_num}: {e}")
                pages.append(None)
        return pages
