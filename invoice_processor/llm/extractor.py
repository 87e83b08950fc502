"""LLM-based invoice extraction.

Pairs each prompt variant with a model call and hands the answer to the
ResponseNormalizer. Every method makes exactly one client call; retries, if
any, live inside the client.
"""

import logging

from invoice_processor.llm import prompts
from invoice_processor.llm.base import ModelClient
from invoice_processor.llm.normalizer import ResponseNormalizer
from invoice_processor.model.invoice import Invoice
from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import ModelCallFailure

logger = logging.getLogger(__name__)


class LLMExtractor:
    """Extracts invoices from text or images through a ModelClient.

    Model identifiers come from Settings.text_model and Settings.vision_model.
    """

    def __init__(
        self,
        client: ModelClient,
        settings: Settings,
        normalizer: ResponseNormalizer | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            client: Model-call collaborator
            settings: Application settings
            normalizer: Response normalizer (a default one is created if omitted)
        """
        self.client = client
        self.settings = settings
        self.normalizer = normalizer or ResponseNormalizer()

    def extract_from_text(self, text: str, timeout: float | None = None) -> Invoice:
        """Extract from clean, machine-readable text.

        Raises:
            ModelCallFailure: If the model call fails
            ResponseDecodeFailure: If the answer cannot be decoded
        """
        prompt = prompts.build_text_extraction_prompt(text)
        return self._extract_text(prompt, timeout)

    def extract_from_ocr_text(self, ocr_text: str, timeout: float | None = None) -> Invoice:
        """Extract from noisy text, asking the model to correct OCR errors first.

        Args:
            ocr_text: Text recovered by OCR or heuristic PDF mining
            timeout: Optional per-call deadline in seconds

        Returns:
            Canonical invoice

        Raises:
            ModelCallFailure: If the model call fails
            ResponseDecodeFailure: If the answer cannot be decoded
        """
        prompt = prompts.build_ocr_correction_prompt(ocr_text)
        return self._extract_text(prompt, timeout)

    def extract_from_image(
        self, image_data: bytes, mime_type: str, timeout: float | None = None
    ) -> Invoice:
        """Extract an invoice directly from an image.

        Args:
            image_data: Encoded image bytes
            mime_type: Image MIME type
            timeout: Optional per-call deadline in seconds

        Returns:
            Canonical invoice

        Raises:
            ModelCallFailure: If the model call fails
            ResponseDecodeFailure: If the answer cannot be decoded
        """
        return self._extract_image(
            prompts.SYSTEM_PROMPT_INVOICE_EXTRACTOR,
            prompts.USER_PROMPT_IMAGE_EXTRACTION,
            image_data,
            mime_type,
            timeout,
        )

    def extract_receipt_from_image(
        self, image_data: bytes, mime_type: str, timeout: float | None = None
    ) -> Invoice:
        """Extract a retail POS receipt from an image."""
        return self._extract_image(
            prompts.SYSTEM_PROMPT_RECEIPT_EXTRACTOR,
            prompts.USER_PROMPT_RECEIPT_EXTRACTION,
            image_data,
            mime_type,
            timeout,
        )

    def extract_auto_from_image(
        self, image_data: bytes, mime_type: str, timeout: float | None = None
    ) -> Invoice:
        """Let the model decide between invoice and receipt, then extract."""
        return self._extract_image(
            prompts.SYSTEM_PROMPT_INVOICE_EXTRACTOR,
            prompts.USER_PROMPT_AUTO_DETECT_EXTRACTION,
            image_data,
            mime_type,
            timeout,
        )

    def _extract_text(self, user_prompt: str, timeout: float | None) -> Invoice:
        model = self.settings.text_model
        try:
            response = self.client.chat_text(
                model, prompts.SYSTEM_PROMPT_INVOICE_EXTRACTOR, user_prompt, timeout=timeout
            )
        except Exception as e:
            logger.error(f"{self.client.client_name} text request to {model} failed: {e}")
            raise ModelCallFailure(f"LLM request failed: {e}") from e

        return self.normalizer.parse_response(response)

    def _extract_image(
        self,
        system_prompt: str,
        user_prompt: str,
        image_data: bytes,
        mime_type: str,
        timeout: float | None,
    ) -> Invoice:
        model = self.settings.vision_model
        try:
            response = self.client.chat_with_image(
                model, system_prompt, user_prompt, image_data, mime_type, timeout=timeout
            )
        except Exception as e:
            logger.error(f"{self.client.client_name} vision request to {model} failed: {e}")
            raise ModelCallFailure(f"LLM request failed: {e}") from e

        return self.normalizer.parse_response(response)
