"""
Image enhancement for OCR on aged and handwritten documents.

Scans of historical material tend to have:
- Faded ink on yellowed paper (low contrast)
- Dark or ragged page edges that OCR engines read as glyphs
- Colour casts that carry no textual information

The enhancer pads the page, flattens it onto a clean background and runs a
fixed filter chain. Output is re-encoded at a fixed JPEG quality so the same
input and profile always produce the same bytes.
"""

import io
import logging
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image, ImageEnhance, ImageOps, UnidentifiedImageError

from manuscript_digitizer.config import ProcessingMode
from manuscript_digitizer.errors import EncodingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnhanceProfile:
    """Fixed parameters of one enhancement chain."""
    name: str
    padding: int = 20
    background: tuple[int, int, int] = (255, 255, 255)
    contrast: float = 1.2
    brightness: float = 1.1
    grayscale: bool = True
    # Adaptive thresholding for faded ink
    binarize: bool = False
    threshold_block_size: int = 11
    threshold_c: int = 2
    blur_kernel: int = 3
    jpeg_quality: int = 90


STANDARD_PROFILE = EnhanceProfile(name="standard")
HISTORICAL_PROFILE = EnhanceProfile(name="historical", binarize=True)


def profile_for_mode(mode: ProcessingMode) -> EnhanceProfile:
    if mode == ProcessingMode.HISTORICAL:
        return HISTORICAL_PROFILE
    return STANDARD_PROFILE


class ImageEnhancer:
    """
    Deterministic image cleanup ahead of OCR.

    Pipeline stages:
    1. Decode (EXIF orientation applied)
    2. Canvas resize with a padding border
    3. Background fill (transparent areas included)
    4. Contrast boost
    5. Brightness boost
    6. Grayscale conversion
    7. Adaptive binarization + blur (historical profile only)
    8. JPEG re-encode at fixed quality
    """

    def enhance(self, data: bytes, profile: EnhanceProfile = STANDARD_PROFILE) -> bytes:
        """
        Run the enhancement chain on encoded image bytes.

        Args:
            data: Encoded raster image (PNG, JPEG, TIFF, ...).
            profile: Enhancement parameters.

        Returns:
            JPEG-encoded enhanced image.

        Raises:
            EncodingError: if the bytes are not a decodable raster image.
        """
        image = self._decode(data)
        logger.debug("Enhancing %dx%d image with '%s' profile", *image.size, profile.name)

        canvas = self._pad(image, profile)
        canvas = ImageEnhance.Contrast(canvas).enhance(profile.contrast)
        canvas = ImageEnhance.Brightness(canvas).enhance(profile.brightness)
        if profile.grayscale:
            canvas = canvas.convert("L")
        if profile.binarize:
            canvas = self._binarize(canvas, profile)

        encoded = self._encode(canvas, profile)
        logger.info(
            "Enhancement complete: %s profile, %d -> %d bytes",
            profile.name,
            len(data),
            len(encoded),
        )
        return encoded

    def _decode(self, data: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
            image = ImageOps.exif_transpose(image)
            return image.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise EncodingError(f"Cannot decode image: {e}") from e

    def _pad(self, image: Image.Image, profile: EnhanceProfile) -> Image.Image:
        """Place the image on a padded canvas filled with the background colour."""
        width, height = image.size
        canvas = Image.new(
            "RGB",
            (width + 2 * profile.padding, height + 2 * profile.padding),
            profile.background,
        )
        # Alpha channel as mask, so transparent pixels take the background
        canvas.paste(image, (profile.padding, profile.padding), image)
        return canvas

    def _binarize(self, image: Image.Image, profile: EnhanceProfile) -> Image.Image:
        """
        Gaussian adaptive threshold followed by a light blur.

        Lifts faded strokes out of uneven, stained backgrounds.
        """
        gray = np.asarray(image.convert("L"))
        binary = cv2.adaptiveThreshold(
            gray,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            profile.threshold_block_size,
            profile.threshold_c,
        )
        kernel = (profile.blur_kernel, profile.blur_kernel)
        smoothed = cv2.GaussianBlur(binary, kernel, 0)
        logger.debug("Applied adaptive binarization (block=%d)", profile.threshold_block_size)
        return Image.fromarray(smoothed)

    def _encode(self, image: Image.Image, profile: EnhanceProfile) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=profile.jpeg_quality)
        return buffer.getvalue()


def rasterize_pdf(data: bytes, dpi: int = 200) -> list[bytes]:
    """
    Render every page of a PDF to PNG bytes.

    Raises:
        EncodingError: if the PDF cannot be opened or has no pages.
    """
    try:
        import fitz  # PyMuPDF
    except ImportError:
        raise ImportError(
            "PyMuPDF is required for PDF input. "
            "Install with: pip install PyMuPDF"
        )

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise EncodingError(f"Cannot open PDF: {e}") from e

    try:
        if len(doc) == 0:
            raise EncodingError("PDF has no pages")

        zoom = dpi / 72  # 72 is default PDF DPI
        matrix = fitz.Matrix(zoom, zoom)
        pages = [page.get_pixmap(matrix=matrix).tobytes("png") for page in doc]
    finally:
        doc.close()

    logger.info("Rasterized PDF: %d page(s) at %d DPI", len(pages), dpi)
    return pages
