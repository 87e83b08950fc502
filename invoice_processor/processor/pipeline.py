"""Hybrid extraction pipeline.

Chooses and sequences extraction strategies per input:

- XML: parsed deterministically by the XML parser registry, no model fallback.
- PDF: text stage (mine text, OCR-correction prompt) and, only if that fails,
  vision stage (render first page, vision prompt). First success wins.
- Image: vision stage only.

Every failure is returned on the Result; process_* methods do not raise.
"""

import logging
from enum import StrEnum
from typing import BinaryIO

from pydantic import BaseModel, ConfigDict, Field, model_validator

from invoice_processor.llm.extractor import LLMExtractor
from invoice_processor.llm.factory import create_model_client
from invoice_processor.model.calculator import calculate_totals
from invoice_processor.model.invoice import Invoice
from invoice_processor.pdf.miner import PDFTextMiner
from invoice_processor.pdf.rasterizer import PDFRasterizer
from invoice_processor.processor.detection import (
    DocumentFormat,
    detect_format,
    sniff_image_mime_type,
)
from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import (
    CompositeExtractionFailure,
    ExtractionError,
    ExtractorUnavailable,
    NoExtractableText,
    ReadFailure,
    ResponseDecodeFailure,
    UnsupportedInput,
    XMLParseFailure,
)
from invoice_processor.xmlparser.registry import ParserRegistry

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


class ExtractionMethod(StrEnum):
    XML = "xml"
    LLM_TEXT = "llm_text"
    LLM_VISION = "llm_vision"


# Fixed per-method reliability, not a measured score
CONFIDENCE_BY_METHOD: dict[ExtractionMethod, float] = {
    ExtractionMethod.XML: 1.0,
    ExtractionMethod.LLM_TEXT: 0.85,
    ExtractionMethod.LLM_VISION: 0.80,
}


class Result(BaseModel):
    """Outcome of one extraction call.

    Exactly one of (invoice, method, confidence) or error is populated.

    Attributes:
        invoice: Extracted invoice, or None on failure
        method: How the invoice was extracted
        confidence: Fixed confidence for the method (0 on failure)
        warnings: Non-fatal problems, including failed stages that were recovered
        error: Failure cause (not serialized; see error_message)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    invoice: Invoice | None = None
    method: ExtractionMethod | None = None
    confidence: float = Field(0.0, ge=0, le=1)
    warnings: list[str] = Field(default_factory=list)
    error: ExtractionError | None = Field(None, exclude=True)

    @model_validator(mode="after")
    def _check_exclusive(self) -> "Result":
        if (self.invoice is None) == (self.error is None):
            raise ValueError("Result must carry exactly one of invoice or error")
        if self.invoice is not None and self.method is None:
            raise ValueError("Successful Result requires an extraction method")
        return self

    @classmethod
    def succeeded(cls, invoice: Invoice, method: ExtractionMethod) -> "Result":
        return cls(invoice=invoice, method=method, confidence=CONFIDENCE_BY_METHOD[method])

    @classmethod
    def failed(cls, error: ExtractionError, warnings: list[str] | None = None) -> "Result":
        return cls(error=error, warnings=warnings or [])

    @property
    def success(self) -> bool:
        return self.invoice is not None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None


class Pipeline:
    """Orchestrates XML, text and vision extraction.

    Collaborators are stateless after construction, so one Pipeline can
    serve concurrent callers.
    """

    def __init__(
        self,
        settings: Settings,
        llm_extractor: LLMExtractor | None = None,
        xml_registry: ParserRegistry | None = None,
        pdf_miner: PDFTextMiner | None = None,
        rasterizer: PDFRasterizer | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            settings: Application settings
            llm_extractor: Model-based extractor; PDF and image processing
                report ExtractorUnavailable without one
            xml_registry: XML parsers (TCT parser by default)
            pdf_miner: PDF text miner (pypdf-backed by default)
            rasterizer: PDF page renderer (pdftoppm/convert by default)
        """
        self.settings = settings
        self.llm_extractor = llm_extractor
        self.xml_registry = xml_registry or ParserRegistry()
        self.pdf_miner = pdf_miner or PDFTextMiner()
        self.rasterizer = rasterizer or PDFRasterizer(settings)

    def process(
        self, data: bytes, declared_mime: str | None = None, timeout: float | None = None
    ) -> Result:
        """Detect the input format and run the matching processing path.

        Args:
            data: Raw document bytes
            declared_mime: MIME type supplied by the caller, if any
            timeout: Optional deadline passed through to model and render calls

        Returns:
            Extraction result
        """
        document_format = detect_format(data)
        logger.info(f"Detected format: {document_format} ({len(data)} bytes)")

        if document_format == DocumentFormat.XML:
            return self.process_xml(data)
        if document_format == DocumentFormat.PDF:
            return self.process_pdf(data, declared_mime or PDF_MIME_TYPE, timeout=timeout)
        if document_format == DocumentFormat.IMAGE:
            mime_type = declared_mime
            if not mime_type or not mime_type.startswith("image/"):
                mime_type = sniff_image_mime_type(data)
            return self.process_image(data, mime_type, timeout=timeout)

        return Result.failed(UnsupportedInput(f"unsupported input format: {declared_mime}"))

    def process_xml_stream(self, stream: BinaryIO) -> Result:
        """Read an XML document from a binary stream and process it."""
        try:
            data = stream.read()
        except OSError as e:
            return Result.failed(ReadFailure(f"failed to read XML: {e}"))
        return self.process_xml(data)

    def process_xml(self, data: bytes) -> Result:
        """Parse a structured XML invoice.

        XML is authoritative: a parse failure is reported as-is and never
        retried through a model.

        Args:
            data: Raw XML bytes

        Returns:
            Result with method xml and confidence 1.0, or the parse error
        """
        try:
            invoice = self.xml_registry.parse(data)
        except ExtractionError as e:
            logger.warning(f"XML parsing failed: {e}")
            error = XMLParseFailure(f"XML parsing failed: {e}")
            error.__cause__ = e
            return Result.failed(error)

        return Result.succeeded(invoice, ExtractionMethod.XML)

    def process_pdf(
        self, data: bytes, declared_mime: str = PDF_MIME_TYPE, timeout: float | None = None
    ) -> Result:
        """Extract a PDF invoice: text stage first, vision stage as fallback.

        A failed or timed-out text stage always proceeds to the vision stage.

        Args:
            data: Raw PDF bytes
            declared_mime: MIME type supplied by the caller
            timeout: Optional deadline passed through to model and render calls

        Returns:
            First successful stage result, or a composite failure with the
            warnings of both stages
        """
        if self.llm_extractor is None:
            return Result.failed(
                ExtractorUnavailable("LLM extractor not configured - required for PDF processing")
            )
        if not data:
            return Result.failed(ReadFailure("no PDF data provided"))

        text_result = self._try_text_stage(data, timeout)
        if text_result.success:
            return text_result

        logger.info(f"Text stage failed ({text_result.error}), trying vision stage")
        vision_result = self._try_vision_stage(data, declared_mime, timeout)
        if vision_result.success:
            return vision_result

        causes = [cause for cause in (text_result.error, vision_result.error) if cause]
        error = CompositeExtractionFailure(
            f"PDF extraction failed (text: {text_result.error}, vision: {vision_result.error})",
            causes,
        )
        return Result.failed(error, text_result.warnings + vision_result.warnings)

    def process_image(self, data: bytes, mime_type: str, timeout: float | None = None) -> Result:
        """Extract an invoice from an image with the vision model.

        Args:
            data: Encoded image bytes
            mime_type: Image MIME type
            timeout: Optional deadline passed through to the model call

        Returns:
            Vision stage result
        """
        if self.llm_extractor is None:
            return Result.failed(ExtractorUnavailable("LLM extractor not configured"))
        if not data:
            return Result.failed(ReadFailure("no image data provided"))

        return self._try_vision_stage(data, mime_type, timeout)

    def detect_format(self, data: bytes) -> DocumentFormat:
        return detect_format(data)

    def _try_text_stage(self, data: bytes, timeout: float | None) -> Result:
        assert self.llm_extractor is not None

        try:
            extracted = self.pdf_miner.extract(data)
        except ExtractionError as e:
            return Result.failed(e, [f"PDF text extraction failed: {e}"])

        if not extracted.raw_text.strip():
            return Result.failed(
                NoExtractableText("no text extracted from PDF"),
                ["PDF contains no extractable text"],
            )

        logger.debug(f"Mined {len(extracted.raw_text)} characters from PDF")
        try:
            invoice = self.llm_extractor.extract_from_ocr_text(extracted.raw_text, timeout=timeout)
            invoice = self._finalize(invoice)
        except ExtractionError as e:
            return Result.failed(e, [f"LLM text extraction failed: {e}"])

        return Result.succeeded(invoice, ExtractionMethod.LLM_TEXT)

    def _try_vision_stage(self, data: bytes, mime_type: str, timeout: float | None) -> Result:
        assert self.llm_extractor is not None

        image_data = data
        image_mime_type = mime_type
        if mime_type == PDF_MIME_TYPE or data.startswith(b"%PDF"):
            try:
                images = self.rasterizer.convert_to_images(data, timeout=timeout)
            except ExtractionError as e:
                return Result.failed(e, [f"PDF to image conversion failed: {e}"])
            # Only the first page goes to the vision model
            image_data = images[0]
            image_mime_type = sniff_image_mime_type(image_data)

        try:
            invoice = self.llm_extractor.extract_from_image(
                image_data, image_mime_type, timeout=timeout
            )
            invoice = self._finalize(invoice)
        except ExtractionError as e:
            return Result.failed(e, [f"LLM vision extraction failed: {e}"])

        return Result.succeeded(invoice, ExtractionMethod.LLM_VISION)

    def _finalize(self, invoice: Invoice) -> Invoice:
        if not self.settings.recalculate_totals:
            return invoice
        try:
            return calculate_totals(invoice)
        except ArithmeticError as e:
            raise ResponseDecodeFailure(f"cannot recalculate totals: {e}") from e


def create_pipeline(settings: Settings) -> Pipeline:
    """Factory function to build a pipeline from configuration.

    Model-based extraction is enabled only when the configured model client
    reports itself available.

    Args:
        settings: Application settings

    Returns:
        Configured pipeline
    """
    client = create_model_client(settings)
    llm_extractor = LLMExtractor(client, settings) if client.is_available() else None
    if llm_extractor is None:
        logger.warning("Model client unavailable; PDF and image extraction are disabled")
    return Pipeline(settings, llm_extractor=llm_extractor)
