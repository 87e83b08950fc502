"""Render PDF pages to JPEG images with external tools.

Uses poppler's pdftoppm, falling back to ImageMagick's convert. Pages are
rendered at 100 DPI and JPEG quality 80 unless settings say otherwise.
"""

import logging
import subprocess
import tempfile
from pathlib import Path

from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import NoImagesProduced, RenderFailure

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg")


class PDFRasterizer:
    """Converts PDF bytes into one encoded image per page."""

    def __init__(self, settings: Settings) -> None:
        """Initialize rasterizer.

        Args:
            settings: Application settings (tools, DPI, JPEG quality)
        """
        self.settings = settings

    def convert_to_images(self, pdf_data: bytes, timeout: float | None = None) -> list[bytes]:
        """Render every page of a PDF.

        Args:
            pdf_data: Raw PDF bytes
            timeout: Optional deadline in seconds for each tool invocation

        Returns:
            Image bytes, one entry per page, ordered by output filename

        Raises:
            RenderFailure: If neither tool succeeds
            NoImagesProduced: If a tool succeeded but wrote no images
        """
        with tempfile.TemporaryDirectory(prefix="pdf-images-") as tmp:
            tmp_dir = Path(tmp)
            pdf_path = tmp_dir / "input.pdf"
            pdf_path.write_bytes(pdf_data)

            self._render(pdf_path, tmp_dir / "page", timeout)

            images = [
                path.read_bytes()
                for path in sorted(tmp_dir.iterdir())
                if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
            ]

        if not images:
            raise NoImagesProduced("no images generated from PDF")

        logger.debug(f"Rendered {len(images)} page image(s)")
        return images

    def _render(self, pdf_path: Path, output_prefix: Path, timeout: float | None) -> None:
        dpi = str(self.settings.pdf_render_dpi)
        quality = str(self.settings.pdf_render_quality)
        primary = self.settings.pdf_render_primary_tool
        fallback = self.settings.pdf_render_fallback_tool

        try:
            self._run(
                [
                    primary,
                    "-jpeg",
                    "-r",
                    dpi,
                    "-jpegopt",
                    f"quality={quality}",
                    str(pdf_path),
                    str(output_prefix),
                ],
                timeout,
            )
            return
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"{primary} failed ({e}), trying {fallback}")

        output_path = f"{output_prefix}.jpg"
        try:
            self._run(
                [fallback, "-density", dpi, "-quality", quality, str(pdf_path), output_path],
                timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise RenderFailure(f"{primary} and {fallback} both failed: {e}") from e

    def _run(self, command: list[str], timeout: float | None) -> None:
        subprocess.run(command, check=True, capture_output=True, timeout=timeout)
