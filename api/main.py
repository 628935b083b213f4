# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for the Medical Insight Engine

Provides REST API for document analysis and insight reports.

Run:
    uvicorn api.main:app --reload
"""

import logging
import uuid
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from medical_insight.config import base_settings, logging_settings
from medical_insight.core.document_pipeline import DocumentAnalysisPipeline
from medical_insight.core.document_store import AnalysisStore, SQLiteAnalysisStore
from medical_insight.core.models import RawDocument
from medical_insight.insight.service import InsightService
from medical_insight.utils.exceptions import AuthError, PipelineError, StoreError
from medical_insight.utils.file_utils import guess_mime_type
from medical_insight.utils.logging import setup_logging

setup_logging(
    level=logging_settings.LOG_LEVEL,
    log_file=logging_settings.LOG_FILE,
    format_json=logging_settings.LOG_FORMAT_JSON
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Medical Insight Engine API",
    description="Document analysis and insight reports for medical documents",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

@lru_cache()
def get_pipeline() -> DocumentAnalysisPipeline:
    return DocumentAnalysisPipeline()


@lru_cache()
def get_store() -> AnalysisStore:
    base_settings.create_directories()
    return SQLiteAnalysisStore(base_settings.STORE_DB_PATH)


def get_insight_service(store: AnalysisStore = Depends(get_store)) -> InsightService:
    return InsightService(store=store)


async def read_upload(file: UploadFile) -> RawDocument:
    content = await file.read()
    filename = file.filename or "upload"
    mime_type = file.content_type
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = guess_mime_type(filename, content)
    return RawDocument(content=content, mime_type=mime_type, filename=filename)


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Medical Insight Engine API"}


@app.get("/api/health")
async def health():
    """Health check for monitoring."""
    return {"status": "healthy"}


@app.post("/api/analyze")
async def analyze_document(
    file: UploadFile = File(...),
    pipeline: DocumentAnalysisPipeline = Depends(get_pipeline),
    store: AnalysisStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Run the document analysis pipeline on an upload and save the result.

    Raises:
        HTTPException 422: document could not be processed
        HTTPException 500: result could not be saved
    """
    document = await read_upload(file)

    try:
        result = await run_in_threadpool(pipeline.run, document)
    except PipelineError as e:
        logger.error(f"Analysis failed for {document.filename}: {e.primary_error} / {e.fallback_error}")
        raise HTTPException(status_code=422, detail="could not process this document")

    record_id = str(uuid.uuid4())
    try:
        store.save(record_id, result.analysis)
    except StoreError as e:
        logger.error(f"Could not save analysis {record_id}: {e}")
        raise HTTPException(status_code=500, detail="analysis could not be saved")

    return {
        "record_id": record_id,
        "filename": document.filename,
        "analysis": result.analysis.to_dict(),
        "extraction": {
            "strategy": result.strategy,
            "method": result.extraction.method,
            "language": result.extraction.language,
        },
        "processing_time": result.processing_time,
    }


@app.post("/api/insight")
async def insight_report(
    file: UploadFile = File(...),
    pipeline: DocumentAnalysisPipeline = Depends(get_pipeline),
    service: InsightService = Depends(get_insight_service),
) -> Dict[str, Any]:
    """
    Request an insight report for an upload.

    Non-image documents are sent as extracted text when extraction works.

    Raises:
        HTTPException 503: insight service not configured
    """
    document = await read_upload(file)

    document_text: Optional[str] = None
    if not document.mime_type.lower().startswith("image/"):
        try:
            analysis = await run_in_threadpool(pipeline.analyze, document)
            document_text = analysis.extracted_text
        except PipelineError as e:
            logger.warning(f"No text for insight request on {document.filename}: {e}")

    try:
        outcome = await service.analyze_document(document, document_text=document_text)
    except AuthError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "record_id": outcome.record_id,
        "filename": document.filename,
        "report": outcome.report.to_dict(),
    }


@app.get("/api/records/{record_id}")
async def get_record(record_id: str, store: AnalysisStore = Depends(get_store)) -> Dict[str, Any]:
    """Fetch a saved analysis or insight report."""
    try:
        record = store.get(record_id)
    except StoreError as e:
        logger.error(f"Could not read record {record_id}: {e}")
        raise HTTPException(status_code=500, detail="record could not be loaded")

    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return record
