# ============================================================================
# src/procurement_ingestion/__init__.py
# ============================================================================
"""
Procurement document extraction and classification pipeline.

Uploaded quotations, invoices, purchase orders and variation orders are
normalized to a PNG, classified, read by a vision model, scored for
completeness and checked against the project they were uploaded to.
"""

__version__ = "0.1.0"

from .constants import DocumentType
from .core.context import ExtractionJob, DocumentStatus
from .core.document_store import ProcurementDocumentStore
from .core.extraction_pipeline import ExtractionPipeline, JobOutcome
from .core.job_queue import ExtractionJobQueue

__all__ = [
    "DocumentType",
    "ExtractionJob",
    "DocumentStatus",
    "ProcurementDocumentStore",
    "ExtractionPipeline",
    "JobOutcome",
    "ExtractionJobQueue",
]
