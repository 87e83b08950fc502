"""Input format detection and image MIME sniffing from magic bytes."""

from enum import StrEnum

_PNG_MAGIC = b"\x89PNG"
_JPEG_MAGIC = b"\xff\xd8\xff"
_TIFF_LE_MAGIC = b"II*\x00"
_TIFF_BE_MAGIC = b"MM\x00*"
_PDF_MAGIC = b"%PDF"


class DocumentFormat(StrEnum):
    UNKNOWN = "unknown"
    XML = "xml"
    PDF = "pdf"
    IMAGE = "image"


def detect_format(data: bytes) -> DocumentFormat:
    """Classify raw input so the caller can pick a processing path.

    XML is recognised by a leading '<' or an '<?xml' declaration within the
    first 100 bytes; PDF by '%PDF'; images by PNG, JPEG or TIFF magic bytes.

    Args:
        data: Raw document bytes

    Returns:
        Detected format (UNKNOWN for empty or unrecognised input)
    """
    if not data:
        return DocumentFormat.UNKNOWN

    if len(data) > 5 and (data[:1] == b"<" or b"<?xml" in data[:100]):
        return DocumentFormat.XML

    if data[:4] == _PDF_MAGIC:
        return DocumentFormat.PDF

    if len(data) >= 8 and (
        data.startswith(_PNG_MAGIC)
        or data.startswith(_JPEG_MAGIC)
        or data.startswith(_TIFF_LE_MAGIC)
        or data.startswith(_TIFF_BE_MAGIC)
    ):
        return DocumentFormat.IMAGE

    return DocumentFormat.UNKNOWN


def sniff_image_mime_type(data: bytes) -> str:
    """Detect the MIME type of rendered image data.

    Args:
        data: Encoded image bytes

    Returns:
        image/jpeg or image/png; image/jpeg when unrecognised, since the
        rasterizer produces JPEG by default
    """
    if data.startswith(_JPEG_MAGIC):
        return "image/jpeg"
    if data.startswith(_PNG_MAGIC):
        return "image/png"
    return "image/jpeg"
