# src/medical_insight/extractors/fallback_extractor.py
"""
Fallback text extraction.

Used by DocumentAnalysisPipeline when the primary TextExtractor raises.

Cascade per route:
- PDF: pypdf -> pdfplumber -> OCR of pages rendered with pypdfium2
- Image: enhanced OCR (grayscale, contrast, sharpen); placeholder text when
  the image cannot be loaded or the OCR engine is unavailable
- Word: raw word/document.xml text, then printable-run salvage
- text/*: lenient decode
"""

from io import BytesIO
import html
from typing import Optional
import re
import zipfile

from pypdf import PdfReader
import pdfplumber
import pytesseract
from PIL import UnidentifiedImageError

from .text_extractor import BaseTextExtractor
from ..core.models import ExtractionResult, RawDocument
from ..utils.exceptions import ExtractionError


_XML_PARAGRAPH_END = re.compile(r'</w:p>')
_XML_TAG = re.compile(r'<[^>]+>')
_PRINTABLE_RUN = re.compile(rb'[\x20-\x7e]{4,}')


class FallbackTextExtractor(BaseTextExtractor):
    """
    Slower, more forgiving extraction strategy.
    """

    name = "fallback"

    def _extract_pdf(self, document: RawDocument) -> ExtractionResult:
        text = self._pdf_text_with_pypdf(document)
        method = "pypdf"

        if not text:
            try:
                text = self._pdf_text_with_pdfplumber(document)
                method = "pdfplumber"
            except Exception as e:
                self.logger.warning(f"pdfplumber failed on {document.filename}: {e}")
                text = ""

        if not text:
            self.logger.info(f"No text layer in {document.filename}, running OCR on rendered pages")
            ocr_result = self.ocr.extract_text_from_pdf(
                document.content, scale=self.settings.PDF_RENDER_SCALE
            )
            text = ocr_result.text.strip()
            method = ocr_result.method

        if not text:
            raise ExtractionError(f"No text could be recovered from {document.filename}")

        return self._result(text, self.settings.FALLBACK_CONFIDENCE, method)

    def _pdf_text_with_pypdf(self, document: RawDocument) -> str:
        try:
            reader = PdfReader(BytesIO(document.content))
            if reader.is_encrypted:
                reader.decrypt("")

            pages = [(page.extract_text() or "").strip() for page in reader.pages]
            return "\n\n".join(page for page in pages if page)

        except Exception as e:
            self.logger.warning(f"pypdf failed on {document.filename}: {e}")
            return ""

    def _pdf_text_with_pdfplumber(self, document: RawDocument) -> str:
        with pdfplumber.open(BytesIO(document.content)) as pdf:
            pages = [(page.extract_text() or "").strip() for page in pdf.pages]
        return "\n\n".join(page for page in pages if page)

    def _extract_image(self, document: RawDocument) -> ExtractionResult:
        try:
            ocr_result = self.ocr.extract_text_from_bytes(document.content, enhance=True)
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as e:
            self.logger.warning(f"OCR engine unavailable for {document.filename}: {e}")
            return self._result(
                self.settings.PENDING_TEXT,
                self.settings.FALLBACK_MINIMAL_CONFIDENCE,
                "placeholder"
            )
        except (UnidentifiedImageError, OSError) as e:
            self.logger.warning(f"Could not load image {document.filename}: {e}")
            return self._result(
                self.settings.PENDING_TEXT,
                self.settings.FALLBACK_DEGRADED_CONFIDENCE,
                "placeholder"
            )

        return self._result(ocr_result.text, self.settings.FALLBACK_CONFIDENCE, ocr_result.method)

    def _extract_word(self, document: RawDocument) -> ExtractionResult:
        text = self._docx_xml_text(document)
        if text:
            return self._result(text, self.settings.FALLBACK_CONFIDENCE, "docx-xml")

        # Legacy binary .doc: salvage printable runs
        runs = [run.decode("ascii") for run in _PRINTABLE_RUN.findall(document.content)]
        text = "\n".join(runs).strip()
        if not text:
            raise ExtractionError(f"No text could be recovered from {document.filename}")

        return self._result(text, self.settings.FALLBACK_MINIMAL_CONFIDENCE, "printable-runs")

    def _docx_xml_text(self, document: RawDocument) -> Optional[str]:
        try:
            with zipfile.ZipFile(BytesIO(document.content)) as archive:
                xml = archive.read("word/document.xml").decode("utf-8", errors="replace")
        except (zipfile.BadZipFile, KeyError) as e:
            self.logger.debug(f"{document.filename} is not a docx archive: {e}")
            return None

        xml = _XML_PARAGRAPH_END.sub("\n", xml)
        lines = [html.unescape(line).strip() for line in _XML_TAG.sub("", xml).splitlines()]
        return "\n".join(line for line in lines if line)

    def _extract_plain_text(self, document: RawDocument) -> ExtractionResult:
        text = document.content.decode("utf-8", errors="replace")
        return self._result(text, self.settings.FALLBACK_MINIMAL_CONFIDENCE, "lenient-decode")
