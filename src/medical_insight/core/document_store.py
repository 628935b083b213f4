# ============================================================================
# src/medical_insight/core/document_store.py
# ============================================================================
"""
Analysis Store

Persists finished DocumentAnalysis / MedicalInsightReport records.
The pipeline only relies on save(record_id, record); the read side
serves the API and CLI.

SQLiteAnalysisStore uses raw sqlite3 with the record's wire form as a JSON
column. InMemoryAnalysisStore keeps the same contract for tests and
ephemeral runs.
"""

import copy
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .models import DocumentAnalysis, MedicalInsightReport
from ..utils.exceptions import StoreError

logger = logging.getLogger(__name__)

Record = Union[DocumentAnalysis, MedicalInsightReport, Dict[str, Any]]

RECORD_TYPE_ANALYSIS = "document_analysis"
RECORD_TYPE_INSIGHT = "insight_report"


def record_type_of(record: Record) -> str:
    if isinstance(record, DocumentAnalysis):
        return RECORD_TYPE_ANALYSIS
    if isinstance(record, MedicalInsightReport):
        return RECORD_TYPE_INSIGHT
    return record.get("recordType", "record")


def record_payload(record: Record) -> Dict[str, Any]:
    """Wire-form dict for a record."""
    if hasattr(record, "to_dict"):
        return record.to_dict()
    return dict(record)


class AnalysisStore(ABC):
    """Persistence contract for finished records."""

    @abstractmethod
    def save(self, record_id: str, record: Record) -> None:
        """
        Persist a record under record_id, replacing any previous one.

        Raises:
            StoreError: on write failure
        """
        pass

    @abstractmethod
    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_all(
        self,
        record_type: Optional[str] = None,
        limit: int = 200,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def count(self, record_type: Optional[str] = None) -> int:
        pass

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        pass


class SQLiteAnalysisStore(AnalysisStore):
    """
    SQLite-backed store.

    Each row keeps the record wire form plus a few indexed columns
    (type, category, confidence, created_at).
    """

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            from ..config import base_settings
            db_path = base_settings.STORE_DB_PATH
        self.db_path = Path(db_path)
        self._init_database()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise StoreError(f"Could not open analysis store {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Analysis store operation failed: {e}") from e
        finally:
            conn.close()

    def _init_database(self):
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Could not create store directory: {e}") from e

        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("""
                CREATE TABLE IF NOT EXISTS analyses (
                    record_id    TEXT PRIMARY KEY,
                    record_type  TEXT NOT NULL,
                    category     TEXT,
                    confidence   REAL,
                    created_at   TEXT NOT NULL,
                    -- Full record wire form as JSON
                    payload      TEXT NOT NULL
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_analyses_type
                ON analyses (record_type)
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_analyses_created
                ON analyses (created_at DESC)
            """)

        logger.info(f"Analysis store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------
    def save(self, record_id: str, record: Record) -> None:
        payload = record_payload(record)

        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO analyses
                    (record_id, record_type, category, confidence, created_at, payload)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                record_id,
                record_type_of(record),
                payload.get("category"),
                payload.get("confidence"),
                datetime.now(timezone.utc).isoformat(),
                json.dumps(payload, default=str),
            ))

        logger.info(f"Saved record {record_id} to store")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT payload FROM analyses WHERE record_id = ?", (record_id,)
            ).fetchone()
        if row:
            return json.loads(row[0])
        return None

    def list_all(
        self,
        record_type: Optional[str] = None,
        limit: int = 200,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """List stored records, newest first."""
        query = "SELECT payload FROM analyses WHERE 1=1"
        params: list = []

        if record_type:
            query += " AND record_type = ?"
            params.append(record_type)

        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [json.loads(r[0]) for r in rows]

    def count(self, record_type: Optional[str] = None) -> int:
        with self._connect() as conn:
            if record_type:
                row = conn.execute(
                    "SELECT COUNT(*) FROM analyses WHERE record_type = ?", (record_type,)
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM analyses").fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------
    def delete(self, record_id: str) -> bool:
        """Returns True if a row was removed."""
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM analyses WHERE record_id = ?", (record_id,))
            return cur.rowcount > 0


class InMemoryAnalysisStore(AnalysisStore):
    """Process-local store with the same contract."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._types: Dict[str, str] = {}
        self._lock = threading.Lock()

    def save(self, record_id: str, record: Record) -> None:
        payload = json.loads(json.dumps(record_payload(record), default=str))
        with self._lock:
            # Re-saving moves the record to the newest position
            self._records.pop(record_id, None)
            self._records[record_id] = payload
            self._types[record_id] = record_type_of(record)

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._records.get(record_id))

    def list_all(
        self,
        record_type: Optional[str] = None,
        limit: int = 200,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        with self._lock:
            ids = [
                rid for rid in reversed(list(self._records))
                if record_type is None or self._types[rid] == record_type
            ]
            return [copy.deepcopy(self._records[rid]) for rid in ids[offset:offset + limit]]

    def count(self, record_type: Optional[str] = None) -> int:
        with self._lock:
            if record_type is None:
                return len(self._records)
            return sum(1 for t in self._types.values() if t == record_type)

    def delete(self, record_id: str) -> bool:
        with self._lock:
            self._types.pop(record_id, None)
            return self._records.pop(record_id, None) is not None
