# ============================================================================
# src/procurement_ingestion/core/extraction_pipeline.py
# ============================================================================
"""
Extraction Pipeline

Drives one ExtractionJob through the document state machine:

    PENDING_EXTRACTION -> EXTRACTING -> EXTRACTED | FAILED

Stages:
1. Format Normalizer      -> bounded base64 PNG
2. Document Classifier    -> resolved document type (never fails the job)
3. Extraction Engine      -> typed payload (parse failures are not fatal)
4. Confidence Evaluator   -> confidence + project mismatch
5. Terminal write         -> write_extraction_result or write_failure

Any exception after EXTRACTING ends the job in FAILED with the raw
message. Job-scoped intermediates are removed whatever the outcome.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncio
import logging

from .config import merge_config
from .context.enums import DocumentStatus
from .context.extraction_job import ClassificationResult, ExtractionJob
from .document_store import ProcurementDocumentStore
from .evaluator import ConfidenceEvaluator, UNKNOWN_PROJECT_NAME
from ..classifiers.document_classifier import DocumentClassifier
from ..extractors.vision_extractor import VisionExtractionEngine
from ..preprocessors.format_normalizer import FormatNormalizer
from ..utils.exceptions import (
    DocumentNotFound,
    DocumentProcessingError,
    InvalidStatusTransition,
    ProcurementIngestionError,
)
from ..utils.logging import job_logger
from ..vision.base import BaseVisionClient
from ..vision.client import create_client

logger = logging.getLogger(__name__)


@dataclass
class JobOutcome:
    """What happened to a job; returned to the queue for logging only."""
    job_id: str
    document_id: str
    status: Optional[DocumentStatus]        # None when the job never started
    confidence: Optional[float] = None
    project_mismatch: Optional[bool] = None
    requires_review: bool = False
    document_type: Optional[str] = None
    classification: Optional[ClassificationResult] = None
    parse_method: Optional[str] = None
    missing_fields: List[str] = field(default_factory=list)
    error: Optional[str] = None
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "document_id": self.document_id,
            "status": self.status.value if self.status else None,
            "confidence": self.confidence,
            "project_mismatch": self.project_mismatch,
            "requires_review": self.requires_review,
            "document_type": self.document_type,
            "classification": self.classification.to_dict() if self.classification else None,
            "parse_method": self.parse_method,
            "missing_fields": self.missing_fields,
            "error": self.error,
            "duration": self.duration,
        }


class ExtractionPipeline:
    """
    Orchestrates normalizer, classifier, extraction engine and evaluator
    for one job at a time. Safe to run many jobs concurrently: no state is
    shared between runs apart from the injected collaborators.
    """

    def __init__(
        self,
        store: ProcurementDocumentStore,
        config: Optional[Dict[str, Any]] = None,
        vision_client: Optional[BaseVisionClient] = None,
        normalizer: Optional[FormatNormalizer] = None,
        classifier: Optional[DocumentClassifier] = None,
        extractor: Optional[VisionExtractionEngine] = None,
        evaluator: Optional[ConfidenceEvaluator] = None,
    ):
        self.config = merge_config(config)
        self.store = store

        if vision_client is None and (classifier is None or extractor is None):
            vision_client = create_client(self.config)

        self.normalizer = normalizer or FormatNormalizer(self.config)
        self.classifier = classifier or DocumentClassifier(self.config, vision_client=vision_client)
        self.extractor = extractor or VisionExtractionEngine(self.config, vision_client=vision_client)
        self.evaluator = evaluator or ConfidenceEvaluator()
        self.unknown_project_name = self.config.get('unknown_project_name', UNKNOWN_PROJECT_NAME)

    async def run(self, job: ExtractionJob) -> JobOutcome:
        """
        Process one job to a terminal status.

        Never raises for job-level failures: they are persisted as FAILED
        and reported in the returned outcome.
        """
        log = job_logger(__name__, job.job_id, job.document_id)
        start_time = datetime.now()

        try:
            await self.store.set_status(job.document_id, DocumentStatus.EXTRACTING)
        except (InvalidStatusTransition, DocumentNotFound) as e:
            # Already terminal or unknown: nothing of ours to finalize
            log.error(f"Job not started: {e}")
            return JobOutcome(job.job_id, job.document_id, status=None, error=str(e))

        log.info(f"Extracting {job.file_name} ({job.mime_type or 'unknown type'})")
        try:
            outcome = await self._process(job, log)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            # Expected failures get the message only; anything else gets a traceback
            log.error(
                f"Extraction failed: {message}",
                exc_info=not isinstance(e, DocumentProcessingError)
            )
            await self._record_failure(job, message, log)
            outcome = JobOutcome(
                job.job_id,
                job.document_id,
                status=DocumentStatus.FAILED,
                document_type=job.document_type.value if job.document_type else None,
                classification=job.classification,
                error=message,
            )
        finally:
            await asyncio.to_thread(self.normalizer.cleanup_job, job.job_id)

        outcome.duration = (datetime.now() - start_time).total_seconds()
        return outcome

    async def _process(self, job: ExtractionJob, log: logging.LoggerAdapter) -> JobOutcome:
        project_name = await self.store.get_project_name(job.project_id)
        if not project_name:
            log.warning(f"Project {job.project_id} not found; using '{self.unknown_project_name}'")
            project_name = self.unknown_project_name

        normalized = await self.normalizer.normalize(job.file_path, job.mime_type, job.job_id)

        classification = await self.classifier.classify(job, normalized.image_base64)
        job.resolve_document_type(classification)
        if classification.degraded:
            log.warning(
                f"Classifier fell back to {classification.method.value}: {classification.degraded_reason}"
            )

        extraction = await self.extractor.extract(
            normalized.image_base64,
            job.document_type,
            project_name,
        )
        for warning in extraction.warnings:
            log.warning(warning)

        evaluation = self.evaluator.evaluate(extraction.data, project_name)

        await self.store.write_extraction_result(
            job.document_id,
            extraction.data,
            evaluation.confidence,
            evaluation.project_mismatch,
        )

        if evaluation.project_mismatch:
            log.warning(
                f"Project mismatch: document mentions '{evaluation.extracted_project}', "
                f"uploaded to '{project_name}'"
            )
        log.info(
            f"Extracted {job.document_type.value} with confidence {evaluation.confidence}"
            + (" (needs review)" if evaluation.requires_review else "")
        )

        return JobOutcome(
            job.job_id,
            job.document_id,
            status=DocumentStatus.EXTRACTED,
            confidence=evaluation.confidence,
            project_mismatch=evaluation.project_mismatch,
            requires_review=evaluation.requires_review,
            document_type=job.document_type.value,
            classification=classification,
            parse_method=extraction.parse_method,
            missing_fields=evaluation.missing_fields,
        )

    async def _record_failure(self, job: ExtractionJob, message: str, log: logging.LoggerAdapter) -> None:
        try:
            await self.store.write_failure(job.document_id, message)
        except ProcurementIngestionError as e:
            # The document reached a terminal state some other way
            log.error(f"Could not record failure: {e}")
