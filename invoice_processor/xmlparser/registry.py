"""Registry of provider-specific XML invoice parsers.

Each parser recognises one e-invoice schema. The registry asks parsers in
registration order and uses the first that claims the document.
"""

import logging
from typing import Protocol

from invoice_processor.model.invoice import Invoice
from invoice_processor.shared.errors import XMLParseFailure
from invoice_processor.xmlparser.tct import TCTInvoiceParser

logger = logging.getLogger(__name__)


class XMLInvoiceParser(Protocol):
    """Protocol for XML invoice parsers."""

    @property
    def name(self) -> str:
        """Parser identifier for logging."""
        ...

    def can_parse(self, data: bytes) -> bool:
        """Check whether the document uses this parser's schema."""
        ...

    def parse(self, data: bytes) -> Invoice:
        """Parse the document, raising XMLParseFailure on malformed input."""
        ...


class ParserRegistry:
    """Ordered collection of XML parsers."""

    def __init__(self, parsers: list[XMLInvoiceParser] | None = None) -> None:
        """Initialize registry.

        Args:
            parsers: Parsers to consult, in order (defaults to the TCT parser)
        """
        self._parsers: list[XMLInvoiceParser] = (
            list(parsers) if parsers is not None else [TCTInvoiceParser()]
        )

    def register(self, parser: XMLInvoiceParser) -> None:
        self._parsers.append(parser)
        logger.info(f"Registered XML parser: {parser.name}")

    def list_parsers(self) -> list[str]:
        return [parser.name for parser in self._parsers]

    def parse(self, data: bytes) -> Invoice:
        """Parse an XML invoice with the first parser that recognises it.

        Args:
            data: Raw XML bytes

        Returns:
            Canonical invoice

        Raises:
            XMLParseFailure: If no parser recognises the document or parsing fails
        """
        for parser in self._parsers:
            if parser.can_parse(data):
                logger.debug(f"Parsing XML invoice with {parser.name}")
                return parser.parse(data)

        available = ", ".join(self.list_parsers()) or "none"
        raise XMLParseFailure(f"no parser recognised the document (tried: {available})")
