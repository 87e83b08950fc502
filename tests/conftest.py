"""Shared fixtures for unit tests."""

from collections.abc import Callable

import pytest


def build_pdf(page_streams: list[bytes]) -> bytes:
    """Build a valid single-revision PDF with one content stream per page.

    Object layout: 1 catalog, 2 page tree, then pages, then content streams.
    Cross-reference offsets are computed from the emitted bytes.
    """
    page_count = len(page_streams)
    page_ids = [3 + i for i in range(page_count)]
    content_ids = [3 + page_count + i for i in range(page_count)]

    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode(),
    ]
    for content_id in content_ids:
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] "
            f"/Resources << >> /Contents {content_id} 0 R >>".encode()
        )
    for stream in page_streams:
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


@pytest.fixture
def pdf_builder() -> Callable[[list[bytes]], bytes]:
    """Provide the minimal PDF builder."""
    return build_pdf
