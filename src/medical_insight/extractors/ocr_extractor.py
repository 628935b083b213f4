# src/medical_insight/extractors/ocr_extractor.py
"""
OCR Extraction for Images and Scanned PDFs

Uses Tesseract (via pytesseract) on PIL images. Scanned PDF pages are
rendered with pypdfium2 first.

Both text extractors (primary and fallback) share this class; the
fallback path uses extract_text_from_bytes(..., enhance=True).
"""

from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional
import logging

import pypdfium2
import pytesseract
from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from ..utils.logging import log_performance

logger = logging.getLogger(__name__)


@dataclass
class OCRResult:
    """Result from OCR extraction."""
    text: str
    confidence: float
    method: str = "tesseract"
    page_count: int = 1


class OCRExtractor:
    """
    Tesseract OCR wrapper.

    Reported confidence is the mean Tesseract word confidence; callers
    decide whether to use it or a strategy constant.
    """

    # Longest side after downscaling very large photos
    MAX_DIMENSION = 4000

    def __init__(self, language: Optional[str] = None):
        """
        Args:
            language: Tesseract language pack (OCR_LANGUAGE setting when None)
        """
        if language is None:
            from ..config import extraction_settings
            language = extraction_settings.OCR_LANGUAGE

        self.logger = logging.getLogger(__name__)
        self.language = language

    def load_image(self, content: bytes) -> Image.Image:
        """
        Decode image bytes, applying EXIF orientation.

        Raises:
            OSError: bytes are not a readable image
        """
        image = Image.open(BytesIO(content))
        image.load()
        image = ImageOps.exif_transpose(image)

        if image.mode not in ('RGB', 'L'):
            image = image.convert('RGB')

        if max(image.size) > self.MAX_DIMENSION:
            image.thumbnail((self.MAX_DIMENSION, self.MAX_DIMENSION))

        return image

    def enhance_image(self, image: Image.Image, aggressive: bool = False) -> Image.Image:
        """
        Enhance image quality for better OCR results.

        Applies grayscale conversion, contrast boost and sharpening;
        aggressive mode adds autocontrast, unsharp mask and a median filter.
        """
        gray = image.convert('L') if image.mode != 'L' else image

        enhanced = ImageEnhance.Contrast(gray).enhance(1.5)
        enhanced = enhanced.filter(ImageFilter.SHARPEN)

        if aggressive:
            enhanced = ImageOps.autocontrast(enhanced)
            enhanced = enhanced.filter(ImageFilter.UnsharpMask(radius=2, percent=150))
            enhanced = enhanced.filter(ImageFilter.MedianFilter(size=3))

        self.logger.debug(f"Image enhanced: {image.size} mode={image.mode} -> L")
        return enhanced

    @log_performance(logger, "Tesseract OCR")
    def ocr_image(self, image: Image.Image) -> OCRResult:
        """
        OCR a single PIL image with Tesseract.

        Raises:
            pytesseract.TesseractError / TesseractNotFoundError on engine failure
        """
        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            output_type=pytesseract.Output.DICT
        )

        texts = []
        confidences = []
        for i, conf in enumerate(data['conf']):
            conf = float(conf)
            if conf > 0:
                word = data['text'][i].strip()
                if word:
                    texts.append(word)
                    confidences.append(conf / 100.0)

        avg_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OCRResult(text=" ".join(texts), confidence=avg_confidence)

    def extract_text_from_bytes(self, content: bytes, enhance: bool = False) -> OCRResult:
        """
        OCR an encoded image.

        Args:
            content: Image file bytes
            enhance: Preprocess for low-quality scans
        """
        image = self.load_image(content)
        if enhance:
            image = self.enhance_image(image, aggressive=True)

        result = self.ocr_image(image)
        result.method = "tesseract_enhanced" if enhance else "tesseract"
        self.logger.info(f"OCR extracted {len(result.text)} chars (conf={result.confidence:.2f})")
        return result

    def render_pdf_pages(self, content: bytes, scale: float = 2.0) -> List[Image.Image]:
        """Render every PDF page to a PIL image with pypdfium2."""
        pdf = pypdfium2.PdfDocument(content)
        try:
            return [pdf[i].render(scale=scale).to_pil() for i in range(len(pdf))]
        finally:
            pdf.close()

    def extract_text_from_pdf(self, content: bytes, scale: float = 2.0) -> OCRResult:
        """OCR every page of a scanned PDF."""
        pages = self.render_pdf_pages(content, scale=scale)

        texts = []
        confidences = []
        for page_num, image in enumerate(pages):
            page_result = self.ocr_image(self.enhance_image(image))
            self.logger.debug(f"OCR page {page_num}: {len(page_result.text)} chars")
            if page_result.text:
                texts.append(page_result.text)
                confidences.append(page_result.confidence)

        return OCRResult(
            text="\n\n".join(texts),
            confidence=sum(confidences) / len(confidences) if confidences else 0.0,
            method="tesseract_pdf",
            page_count=len(pages)
        )
