# src/medical_insight/extractors/text_extractor.py
"""
Text extraction from uploaded documents.

Routing is by declared MIME type:
- PDF: pypdfium2 text layer
- Image: Tesseract OCR
- Word-processor: python-docx (paragraphs + tables)
- text/*: direct decode
- anything else: literal "unable to extract" text at near-zero confidence

Unknown types never raise. Real I/O or processing failures raise
ExtractionError so DocumentAnalysisPipeline can retry with
FallbackTextExtractor.
"""

from abc import ABC, abstractmethod
from enum import Enum
from io import BytesIO
from typing import Callable, Dict, Optional
import logging

import pypdfium2
from docx import Document as DocxDocument

from .ocr_extractor import OCRExtractor
from ..core.models import ExtractionResult, RawDocument
from ..utils.exceptions import ExtractionError


class MimeFamily(str, Enum):
    """Extraction route for a declared MIME type"""
    PDF = "pdf"
    IMAGE = "image"
    WORD = "word"
    TEXT = "text"
    UNKNOWN = "unknown"


WORD_MIME_TYPES = frozenset({
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})


def classify_mime(mime_type: Optional[str]) -> MimeFamily:
    """Map a declared MIME type to its extraction route."""
    mime = (mime_type or "").lower().strip()

    if "pdf" in mime:
        return MimeFamily.PDF
    if mime.startswith("image/"):
        return MimeFamily.IMAGE
    if mime in WORD_MIME_TYPES:
        return MimeFamily.WORD
    if mime.startswith("text/"):
        return MimeFamily.TEXT
    return MimeFamily.UNKNOWN


class BaseTextExtractor(ABC):
    """
    Shared MIME dispatch for text extraction strategies.

    Subclasses implement one routine per MimeFamily (except UNKNOWN,
    which is handled here and never fails).
    """

    name = "base"

    def __init__(self, settings=None, ocr: Optional[OCRExtractor] = None):
        if settings is None:
            from ..config import extraction_settings
            settings = extraction_settings

        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self._ocr = ocr

    @property
    def ocr(self) -> OCRExtractor:
        if self._ocr is None:
            self._ocr = OCRExtractor(language=self.settings.OCR_LANGUAGE)
        return self._ocr

    def extract(self, document: RawDocument) -> ExtractionResult:
        """
        Extract text from a document.

        Raises:
            ExtractionError: on I/O or processing failure (never for unknown types)
        """
        family = classify_mime(document.mime_type)
        self.logger.debug(
            f"[{self.name}] extracting {document.filename} "
            f"({document.mime_type} -> {family.value}, {document.size} bytes)"
        )

        if family == MimeFamily.UNKNOWN:
            return self._unsupported(document)

        handlers: Dict[MimeFamily, Callable[[RawDocument], ExtractionResult]] = {
            MimeFamily.PDF: self._extract_pdf,
            MimeFamily.IMAGE: self._extract_image,
            MimeFamily.WORD: self._extract_word,
            MimeFamily.TEXT: self._extract_plain_text,
        }

        try:
            result = handlers[family](document)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(
                f"{self.name} {family.value} extraction failed for {document.filename}: {e}"
            ) from e

        self.logger.info(
            f"[{self.name}] {result.method} extracted {len(result.text)} chars "
            f"from {document.filename} (conf={result.confidence:.2f})"
        )
        return result

    def _result(self, text: str, confidence: float, method: str) -> ExtractionResult:
        return ExtractionResult(
            text=text,
            confidence=confidence,
            language=self.settings.DEFAULT_LANGUAGE,
            method=method
        )

    def _unsupported(self, document: RawDocument) -> ExtractionResult:
        self.logger.warning(f"Unsupported file type {document.mime_type!r} for {document.filename}")
        return self._result(
            self.settings.UNKNOWN_TYPE_TEXT,
            self.settings.UNKNOWN_CONFIDENCE,
            "unsupported"
        )

    @abstractmethod
    def _extract_pdf(self, document: RawDocument) -> ExtractionResult:
        pass

    @abstractmethod
    def _extract_image(self, document: RawDocument) -> ExtractionResult:
        pass

    @abstractmethod
    def _extract_word(self, document: RawDocument) -> ExtractionResult:
        pass

    @abstractmethod
    def _extract_plain_text(self, document: RawDocument) -> ExtractionResult:
        pass


class TextExtractor(BaseTextExtractor):
    """
    Primary extraction strategy.

    PDF: pypdfium2 (fast, good Unicode). Scanned PDFs without a text
    layer raise so the fallback can OCR them.
    Image: Tesseract at the image strategy confidence.
    Word: python-docx paragraphs and table cells.
    """

    name = "primary"

    def _extract_pdf(self, document: RawDocument) -> ExtractionResult:
        pdf = pypdfium2.PdfDocument(document.content)
        try:
            pages = []
            for page_num in range(len(pdf)):
                textpage = pdf[page_num].get_textpage()
                text = textpage.get_text_range() or ""
                pages.append(text.strip())
        finally:
            pdf.close()

        text = "\n\n".join(page for page in pages if page)
        if not text:
            raise ExtractionError(f"{document.filename} has no text layer ({len(pages)} pages)")

        return self._result(text, self.settings.PDF_CONFIDENCE, "pypdfium2")

    def _extract_image(self, document: RawDocument) -> ExtractionResult:
        ocr_result = self.ocr.extract_text_from_bytes(document.content)
        if not ocr_result.text.strip():
            raise ExtractionError(f"OCR found no text in {document.filename}")

        return self._result(ocr_result.text, self.settings.IMAGE_CONFIDENCE, ocr_result.method)

    def _extract_word(self, document: RawDocument) -> ExtractionResult:
        doc = DocxDocument(BytesIO(document.content))

        lines = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    lines.append(" | ".join(cells))

        return self._result("\n".join(lines), self.settings.DOCUMENT_CONFIDENCE, "python-docx")

    def _extract_plain_text(self, document: RawDocument) -> ExtractionResult:
        text = document.content.decode("utf-8-sig")
        return self._result(text, self.settings.DOCUMENT_CONFIDENCE, "utf-8")
