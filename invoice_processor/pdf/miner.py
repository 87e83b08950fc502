"""Best-effort text mining from raw PDF content streams.

This is not a content-stream interpreter: it ignores text positioning and font
operators and simply recovers string operands. Literal strings are collected
before hex strings, so output order follows the scan, not the page layout.
"""

import logging
import re
from dataclasses import dataclass, field

from invoice_processor.pdf.reader import PDFStructureReader, PypdfStructureReader
from invoice_processor.shared.errors import ReadFailure

logger = logging.getLogger(__name__)

PRINTABLE_RATIO_THRESHOLD = 0.5

_LITERAL_STRING = re.compile(r"\(([^)]*)\)")
_HEX_STRING = re.compile(r"<([0-9A-Fa-f]+)>")

_PRINTABLE_PUNCTUATION = frozenset(" .,:-/")

# Field tokens that mark a line as a label rather than a value
LABEL_TOKENS = (
    "mã số thuế",
    "tax id",
    "taxid",
    "số hóa đơn",
    "invoice no",
    "invoice number",
    "ngày",
    "date",
    "tên",
    "name",
    "địa chỉ",
    "address",
)


@dataclass
class PageText:
    """Text recovered from one page (or from the whole document on the primary path)."""

    page_num: int
    text: str
    lines: list[str] = field(default_factory=list)


@dataclass
class ExtractedText:
    """All text mined from a PDF, plus lookup helpers.

    Attributes:
        raw_text: Flattened text blob, one content stream or page per line group
        pages: Per-page text (a single entry when the primary path ran)
        page_count: Number of pages reported by the structural reader
    """

    raw_text: str = ""
    pages: list[PageText] = field(default_factory=list)
    page_count: int = 0

    @property
    def lines(self) -> list[str]:
        return split_into_lines(self.raw_text)

    def find_pattern(self, pattern: str) -> list[str]:
        """Return every match of a regular expression in the raw text.

        Args:
            pattern: Regular expression

        Returns:
            All matched substrings, in order

        Raises:
            ValueError: If the pattern is not a valid regular expression
        """
        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise ValueError(f"invalid pattern: {e}") from e
        return [m.group(0) for m in regex.finditer(self.raw_text)]

    def find_near(self, label: str, max_distance: int) -> str:
        """Find the value written next to, or just below, a label.

        The first line containing the label (case-insensitive) wins if it has
        a non-empty remainder after a colon following the label. Otherwise the
        next max_distance lines are scanned for a non-blank line that is not
        itself a label.

        Args:
            label: Label text, e.g. "Mã số thuế"
            max_distance: Number of following lines to inspect

        Returns:
            The value, or an empty string if none is found
        """
        lines = self.raw_text.split("\n")
        needle = label.lower()

        for i, line in enumerate(lines):
            position = line.lower().find(needle)
            if position < 0:
                continue

            colon = line.find(":", position + len(label))
            if colon >= 0:
                value = line[colon + 1 :].strip()
                if value:
                    return value

            for candidate in lines[i + 1 : i + 1 + max_distance]:
                value = candidate.strip()
                if value and not is_label(value):
                    return value

        return ""

    def get_line(self, line_num: int) -> str:
        """Return one trimmed line of the raw text, or '' if out of range."""
        lines = self.raw_text.split("\n")
        if 0 <= line_num < len(lines):
            return lines[line_num].strip()
        return ""


def split_into_lines(text: str) -> list[str]:
    """Split text into trimmed, non-blank lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def is_label(text: str) -> bool:
    """Check whether a line looks like a field label rather than a value."""
    text = text.strip()
    if text.endswith(":"):
        return True

    lowered = text.lower()
    return len(text) < 50 and any(token in lowered for token in LABEL_TOKENS)


def is_printable_char(char: str) -> bool:
    code = ord(char)
    return (
        ("a" <= char <= "z")
        or ("A" <= char <= "Z")
        or ("0" <= char <= "9")
        or char in _PRINTABLE_PUNCTUATION
        or 0x00C0 <= code <= 0x024F  # Latin Extended
        or 0x1E00 <= code <= 0x1EFF  # Vietnamese
    )


def printable_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for char in text if is_printable_char(char)) / len(text)


def is_printable_text(text: str) -> bool:
    """Accept a decoded candidate only if more than half of it is printable."""
    return printable_ratio(text) > PRINTABLE_RATIO_THRESHOLD


def unescape_pdf_string(text: str) -> str:
    return (
        text.replace("\\n", "\n")
        .replace("\\r", "\r")
        .replace("\\t", "\t")
        .replace("\\(", "(")
        .replace("\\)", ")")
        .replace("\\\\", "\\")
    )


def hex_to_string(hex_text: str) -> str:
    # A trailing odd nibble is dropped
    raw = bytes.fromhex(hex_text[: len(hex_text) - len(hex_text) % 2])
    return raw.decode("utf-8", errors="replace")


def extract_text_from_content_stream(content: str) -> str:
    """Recover readable strings from one content stream.

    Args:
        content: Decoded content stream

    Returns:
        Kept strings joined by single spaces (literal strings first, then hex)
    """
    kept = []

    for match in _LITERAL_STRING.finditer(content):
        text = unescape_pdf_string(match.group(1))
        if is_printable_text(text):
            kept.append(text)

    for match in _HEX_STRING.finditer(content):
        text = hex_to_string(match.group(1))
        if is_printable_text(text):
            kept.append(text)

    return " ".join(kept).strip()


def _decode_stream(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class PDFTextMiner:
    """Turns raw PDF bytes into text using the content-stream heuristic."""

    def __init__(self, reader: PDFStructureReader | None = None) -> None:
        """Initialize the miner.

        Args:
            reader: Structural PDF reader (pypdf-backed by default)
        """
        self.reader = reader or PypdfStructureReader()

    def extract(self, data: bytes) -> ExtractedText:
        """Mine text from a PDF.

        The primary path flattens all content streams into one blob. If the
        structural reader cannot enumerate the streams, the fallback path
        walks pages individually and keeps per-page boundaries.

        Args:
            data: Raw PDF bytes

        Returns:
            ExtractedText (raw_text may be empty)

        Raises:
            ReadFailure: If the PDF structure cannot be read at all
        """
        try:
            page_count = self.reader.page_count(data)
        except Exception as e:
            raise ReadFailure(f"failed to get page count: {e}") from e

        try:
            streams = self.reader.content_streams(data)
        except Exception as e:
            logger.info(f"Content stream extraction failed ({e}), falling back to page walk")
            return self._extract_per_page(data, page_count)

        chunks = []
        for stream in streams:
            text = extract_text_from_content_stream(_decode_stream(stream))
            if text:
                chunks.append(text + "\n")

        raw_text = "".join(chunks)
        result = ExtractedText(raw_text=raw_text, page_count=page_count)
        if raw_text:
            result.pages.append(
                PageText(page_num=1, text=raw_text, lines=split_into_lines(raw_text))
            )
        return result

    def _extract_per_page(self, data: bytes, page_count: int) -> ExtractedText:
        try:
            page_streams = self.reader.page_contents(data)
        except Exception as e:
            raise ReadFailure(f"failed to read PDF: {e}") from e

        result = ExtractedText(page_count=page_count)
        chunks = []
        for page_num, stream in enumerate(page_streams, start=1):
            if stream is None:
                continue
            text = extract_text_from_content_stream(_decode_stream(stream))
            if text:
                result.pages.append(
                    PageText(page_num=page_num, text=text, lines=split_into_lines(text))
                )
                chunks.append(text + "\n")

        result.raw_text = "".join(chunks)
        return result
