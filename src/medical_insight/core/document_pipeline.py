# ============================================================================
# src/medical_insight/core/document_pipeline.py
# ============================================================================
"""
Document Analysis Pipeline

Pipeline Flow:
    RawDocument -> extract text (primary, then fallback) -> entities
                -> category + tags -> aggregate confidence -> DocumentAnalysis

Only a double extraction failure aborts the run (PipelineError). Which
strategy succeeded is reported on PipelineResult for telemetry and is not
part of DocumentAnalysis.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import time

from .confidence import ConfidenceAggregator
from .models import DocumentAnalysis, ExtractionResult, RawDocument
from ..classifiers.document_classifier import DocumentClassifier
from ..extractors.entity_extractor import EntityExtractor
from ..extractors.fallback_extractor import FallbackTextExtractor
from ..extractors.text_extractor import BaseTextExtractor, TextExtractor
from ..utils.exceptions import PipelineError

logger = logging.getLogger(__name__)

STRATEGY_PRIMARY = "primary"
STRATEGY_FALLBACK = "fallback"


@dataclass(frozen=True)
class PipelineResult:
    """DocumentAnalysis plus run telemetry."""
    analysis: DocumentAnalysis
    extraction: ExtractionResult
    strategy: str
    processing_time: float


class DocumentAnalysisPipeline:
    """
    Composes text extraction, entity extraction, classification and
    confidence aggregation into one call.

    Holds no per-document state; one instance can serve concurrent calls.
    """

    def __init__(
        self,
        primary_extractor: Optional[BaseTextExtractor] = None,
        fallback_extractor: Optional[BaseTextExtractor] = None,
        entity_extractor: Optional[EntityExtractor] = None,
        classifier: Optional[DocumentClassifier] = None,
        aggregator: Optional[ConfidenceAggregator] = None
    ):
        self.primary_extractor = primary_extractor or TextExtractor()
        self.fallback_extractor = fallback_extractor or FallbackTextExtractor()
        self.entity_extractor = entity_extractor or EntityExtractor()
        self.classifier = classifier or DocumentClassifier(vocabulary=self.entity_extractor.vocabulary)
        self.aggregator = aggregator or ConfidenceAggregator()

    def analyze(self, document: RawDocument) -> DocumentAnalysis:
        """
        Analyze a document.

        Raises:
            PipelineError: both extraction strategies failed
        """
        return self.run(document).analysis

    def run(self, document: RawDocument) -> PipelineResult:
        """Analyze a document and report which extraction strategy was used."""
        start_time = time.perf_counter()
        logger.info(f"Analyzing {document.filename} ({document.mime_type}, {document.size} bytes)")

        extraction, strategy = self.extract_text(document)

        entities = self.entity_extractor.extract(extraction.text)
        category, tags = self.classifier.classify(document.filename, extraction.text, entities)
        confidence = self.aggregator.aggregate(extraction.confidence, entities)

        analysis = DocumentAnalysis(
            category=category,
            tags=tags,
            extracted_text=extraction.text,
            confidence=confidence,
            entities=entities
        )

        processing_time = time.perf_counter() - start_time
        logger.info(
            f"Analyzed {document.filename}: category={category}, "
            f"entities={len(entities)}, confidence={confidence:.2f}, "
            f"strategy={strategy}/{extraction.method}, time={processing_time:.3f}s"
        )

        return PipelineResult(
            analysis=analysis,
            extraction=extraction,
            strategy=strategy,
            processing_time=processing_time
        )

    def extract_text(self, document: RawDocument):
        """
        Run the primary extractor, retrying with the fallback on any error.

        Returns:
            (ExtractionResult, strategy name)
        """
        try:
            return self.primary_extractor.extract(document), STRATEGY_PRIMARY
        except Exception as primary_error:
            logger.warning(
                f"Primary extraction failed for {document.filename}, using fallback: {primary_error}"
            )

            try:
                return self.fallback_extractor.extract(document), STRATEGY_FALLBACK
            except Exception as fallback_error:
                logger.error(
                    f"Fallback extraction also failed for {document.filename}: {fallback_error}"
                )
                raise PipelineError(
                    primary_error=primary_error,
                    fallback_error=fallback_error
                ) from fallback_error
