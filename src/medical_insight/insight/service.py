# ============================================================================
# src/medical_insight/insight/service.py
# ============================================================================
"""
Insight Service

State machine for the external insight request:

    REQUESTING -> PARSED_JSON           (response holds a JSON object)
               -> PARSED_FROM_FREE_TEXT (no usable JSON; heuristic mining)
               -> SERVICE_FAILED        (the call itself raised)
               -> VALIDATED             (always reached)

One request is made, never retried. The only error surfaced to callers
is AuthError, raised before the request when no credential is configured.
Persisting the validated report is best-effort: StoreError is logged.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging
import uuid

from .base import BaseInsightClient
from .parser import InsightState, ResilientInsightParser
from ..core.document_store import AnalysisStore
from ..core.models import MedicalInsightReport, RawDocument
from ..utils.exceptions import AuthError, StoreError
from ..utils.file_utils import to_data_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsightOutcome:
    """Validated report plus the visited states (telemetry only)."""
    report: MedicalInsightReport
    path: Tuple[InsightState, ...]
    record_id: Optional[str] = None

    @property
    def state(self) -> InsightState:
        """Branch taken before validation."""
        return self.path[1]


class InsightService:
    """
    Requests, parses, validates and (optionally) stores insight reports.
    """

    def __init__(
        self,
        client: Optional[BaseInsightClient] = None,
        parser: Optional[ResilientInsightParser] = None,
        store: Optional[AnalysisStore] = None
    ):
        if client is None:
            from .client import create_client
            client = create_client()

        self.client = client
        self.parser = parser or ResilientInsightParser()
        self.store = store

    async def analyze(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None
    ) -> MedicalInsightReport:
        """
        Raises:
            AuthError: insight service not configured
        """
        outcome = await self.run(document_ref, filename, document_text)
        return outcome.report

    async def analyze_document(
        self,
        document: RawDocument,
        document_text: Optional[str] = None,
        record_id: Optional[str] = None
    ) -> InsightOutcome:
        """
        Convenience entry for RawDocuments: images go as data URLs,
        everything else as extracted text.
        """
        document_ref = None
        if document.mime_type.lower().startswith("image/"):
            document_ref = to_data_url(document)
        return await self.run(document_ref, document.filename, document_text, record_id=record_id)

    async def run(
        self,
        document_ref: Optional[str],
        filename: str,
        document_text: Optional[str] = None,
        record_id: Optional[str] = None
    ) -> InsightOutcome:
        """
        Drive the state machine to VALIDATED.

        Raises:
            AuthError: insight service not configured (before any request)
        """
        self.client.ensure_configured()

        path = [InsightState.REQUESTING]
        logger.info(f"Requesting insight for {filename} from {self.client.backend_type.value}")

        try:
            raw_text = await self.client.request(document_ref, filename, document_text)
        except AuthError:
            raise
        except Exception as e:
            logger.warning(f"Insight service failed for {filename}: {e}")
            candidate = self.parser.service_failed_report(filename)
            state = InsightState.SERVICE_FAILED
        else:
            candidate, state = self.parser.parse(raw_text, filename)

        path.append(state)
        report = self.parser.validate(candidate, filename)
        path.append(InsightState.VALIDATED)

        logger.info(
            f"Insight for {filename}: {' -> '.join(s.value for s in path)} "
            f"(category={report.category}, recommendations={len(report.recommendations)})"
        )

        record_id = self._persist(record_id, report, filename)
        return InsightOutcome(report=report, path=tuple(path), record_id=record_id)

    def _persist(
        self,
        record_id: Optional[str],
        report: MedicalInsightReport,
        filename: str
    ) -> Optional[str]:
        if self.store is None:
            return record_id

        record_id = record_id or str(uuid.uuid4())
        try:
            self.store.save(record_id, report)
        except StoreError as e:
            logger.error(f"Could not save insight report for {filename}: {e}")
        return record_id
