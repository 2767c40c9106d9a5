# ============================================================================
# src/procurement_ingestion/core/document_store.py
# ============================================================================
"""
Procurement Document Store

SQLite reference implementation of the persistence collaborator the
extraction pipeline writes to. Raw sqlite3, JSON for the extracted payload.

The store enforces the extraction state machine itself:

    PENDING_EXTRACTION -> EXTRACTING -> EXTRACTED | FAILED

Terminal rows never change, and extracted_data is only ever written in the
same statement that moves a document to EXTRACTED. Pipeline-facing methods
are coroutines that run the blocking sqlite calls in a worker thread.
"""

import asyncio
import sqlite3
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
from datetime import datetime, timezone

from .context.enums import DocumentStatus, can_transition
from .context.extracted_data import ExtractedDocumentData
from ..utils.exceptions import DocumentNotFound, InvalidStatusTransition

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data") / "procurement.db"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProcurementDocumentStore:
    """
    SQLite-backed store for projects and procurement documents.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._init_database()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly with BEGIN IMMEDIATE
        conn = sqlite3.connect(str(self.db_path), timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        cur = conn.cursor()

        cur.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                project_id  TEXT PRIMARY KEY,
                name        TEXT NOT NULL,
                created_at  TEXT NOT NULL
            )
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS procurement_documents (
                document_id           TEXT PRIMARY KEY,
                project_id            TEXT NOT NULL,
                file_name             TEXT NOT NULL,
                file_path             TEXT,
                mime_type             TEXT,
                document_type         TEXT,
                status                TEXT NOT NULL DEFAULT 'PENDING_EXTRACTION',
                -- Written only together with EXTRACTED
                extracted_data        TEXT,
                extraction_confidence REAL,
                project_mismatch      INTEGER,
                error_message         TEXT,
                created_at            TEXT NOT NULL,
                updated_at            TEXT NOT NULL
            )
        """)

        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_procurement_documents_status
            ON procurement_documents (status)
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_procurement_documents_project
            ON procurement_documents (project_id)
        """)

        conn.close()
        logger.info(f"Procurement document store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Registration (upload side)
    # ------------------------------------------------------------------
    def register_project(self, project_id: str, name: str) -> None:
        conn = self._connect()
        conn.execute("""
            INSERT INTO projects (project_id, name, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(project_id) DO UPDATE SET name = excluded.name
        """, (project_id, name, _now()))
        conn.close()

    def register_document(
        self,
        document_id: str,
        project_id: str,
        file_path: Union[str, Path],
        mime_type: str = "",
        document_type: Optional[str] = None,
    ) -> None:
        """Create a document row in PENDING_EXTRACTION."""
        now = _now()
        conn = self._connect()
        try:
            conn.execute("""
                INSERT INTO procurement_documents
                    (document_id, project_id, file_name, file_path, mime_type,
                     document_type, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                document_id,
                project_id,
                Path(file_path).name,
                str(file_path),
                mime_type,
                document_type,
                DocumentStatus.PENDING_EXTRACTION.value,
                now,
                now,
            ))
        finally:
            conn.close()
        logger.info(f"Registered document {document_id} for project {project_id}")

    # ------------------------------------------------------------------
    # State machine writes (sync implementations)
    # ------------------------------------------------------------------
    def _transition(
        self,
        document_id: str,
        requested: DocumentStatus,
        assignments: str = "",
        params: tuple = (),
    ) -> DocumentStatus:
        """
        Validate and apply a status change in one transaction.

        Returns:
            The status the document had before the change
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT status FROM procurement_documents WHERE document_id = ?",
                (document_id,)
            ).fetchone()
            if row is None:
                conn.execute("ROLLBACK")
                raise DocumentNotFound(f"Unknown procurement document: {document_id}")

            current = DocumentStatus(row["status"])
            if not can_transition(current, requested):
                conn.execute("ROLLBACK")
                raise InvalidStatusTransition(
                    f"Document {document_id}: {current.value} -> {requested.value} is not allowed",
                    current=current.value,
                    requested=requested.value,
                )

            conn.execute(
                f"UPDATE procurement_documents SET status = ?, updated_at = ?{assignments} "
                f"WHERE document_id = ?",
                (requested.value, _now(), *params, document_id)
            )
            conn.execute("COMMIT")
            return current
        finally:
            conn.close()

    def set_status_sync(self, document_id: str, status: Union[str, DocumentStatus]) -> None:
        status = DocumentStatus(status)
        if status.is_terminal:
            raise InvalidStatusTransition(
                f"Document {document_id}: {status.value} must be written with its result",
                requested=status.value,
            )
        self._transition(document_id, status)
        logger.debug(f"Document {document_id} -> {status.value}")

    def write_extraction_result_sync(
        self,
        document_id: str,
        data: Union[ExtractedDocumentData, Dict[str, Any]],
        confidence: float,
        project_mismatch: bool,
    ) -> None:
        if not 0.0 <= confidence <= 100.0:
            raise ValueError(f"Extraction confidence out of range: {confidence}")

        payload = data.to_payload() if isinstance(data, ExtractedDocumentData) else dict(data)
        document_type = payload.get("documentType")

        self._transition(
            document_id,
            DocumentStatus.EXTRACTED,
            ", extracted_data = ?, extraction_confidence = ?, project_mismatch = ?"
            ", document_type = COALESCE(?, document_type)",
            (json.dumps(payload, default=str), confidence, 1 if project_mismatch else 0, document_type),
        )
        logger.info(f"Document {document_id} -> EXTRACTED (confidence {confidence})")

    def write_failure_sync(self, document_id: str, error_message: str) -> None:
        self._transition(
            document_id,
            DocumentStatus.FAILED,
            ", error_message = ?",
            (error_message,),
        )
        logger.info(f"Document {document_id} -> FAILED")

    def get_project_name_sync(self, project_id: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT name FROM projects WHERE project_id = ?", (project_id,)
            ).fetchone()
        finally:
            conn.close()
        return row["name"] if row else None

    # ------------------------------------------------------------------
    # Pipeline-facing coroutines
    # ------------------------------------------------------------------
    async def set_status(self, document_id: str, status: Union[str, DocumentStatus]) -> None:
        await asyncio.to_thread(self.set_status_sync, document_id, status)

    async def write_extraction_result(
        self,
        document_id: str,
        data: Union[ExtractedDocumentData, Dict[str, Any]],
        confidence: float,
        project_mismatch: bool,
    ) -> None:
        await asyncio.to_thread(
            self.write_extraction_result_sync, document_id, data, confidence, project_mismatch
        )

    async def write_failure(self, document_id: str, error_message: str) -> None:
        await asyncio.to_thread(self.write_failure_sync, document_id, error_message)

    async def get_project_name(self, project_id: str) -> Optional[str]:
        return await asyncio.to_thread(self.get_project_name_sync, project_id)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def _row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        mismatch = row["project_mismatch"]
        return {
            "documentId": row["document_id"],
            "projectId": row["project_id"],
            "fileName": row["file_name"],
            "filePath": row["file_path"],
            "mimeType": row["mime_type"],
            "documentType": row["document_type"],
            "status": row["status"],
            "extractedData": json.loads(row["extracted_data"]) if row["extracted_data"] else None,
            "extractionConfidence": row["extraction_confidence"],
            "projectMismatch": None if mismatch is None else bool(mismatch),
            "errorMessage": row["error_message"],
            "createdAt": row["created_at"],
            "updatedAt": row["updated_at"],
        }

    def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a single document by id."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM procurement_documents WHERE document_id = ?", (document_id,)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_dict(row) if row else None

    def list_documents(
        self,
        project_id: Optional[str] = None,
        status: Optional[Union[str, DocumentStatus]] = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        List documents, newest first.

        Args:
            project_id: Filter by project
            status: Filter by status
            limit: Max rows to return
            offset: Pagination offset
        """
        query = "SELECT * FROM procurement_documents WHERE 1=1"
        params: list = []

        if project_id:
            query += " AND project_id = ?"
            params.append(project_id)
        if status:
            query += " AND status = ?"
            params.append(DocumentStatus(status).value)

        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [self._row_to_dict(r) for r in rows]
