# ============================================================================
# src/procurement_ingestion/core/context/extraction_job.py
# ============================================================================
"""
ExtractionJob
- One uploaded procurement document travelling through the pipeline
- Owned by the job queue until the document reaches a terminal status
- Document type may be resolved by the classifier exactly once
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import uuid

from ...constants.document_types import DocumentType, AUTO_DETECT
from ...utils.exceptions import DocumentTypeAlreadyResolved
from .enums import ClassificationMethod


@dataclass
class ClassificationResult:
    """Classifier verdict for a single job."""
    document_type: DocumentType
    confidence: float                       # 0-100
    method: ClassificationMethod
    degraded_reason: Optional[str] = None   # set when vision classification was not used

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'documentType': self.document_type.value,
            'confidence': self.confidence,
            'method': self.method.value,
            'degradedReason': self.degraded_reason,
        }


@dataclass
class ExtractionJob:
    document_id: str
    project_id: str
    file_path: Path
    mime_type: str
    document_type_hint: str = AUTO_DETECT
    job_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    classification: Optional[ClassificationResult] = None

    def __post_init__(self):
        self.file_path = Path(self.file_path)
        if isinstance(self.document_type_hint, DocumentType):
            self.document_type_hint = self.document_type_hint.value
        if not self.document_type_hint:
            self.document_type_hint = AUTO_DETECT

    @classmethod
    def from_request(cls, request: Dict[str, Any]) -> "ExtractionJob":
        """Build a job from an upload submission ({documentId, projectId, filePath, mimeType, documentTypeHint})."""
        return cls(
            document_id=request['documentId'],
            project_id=request['projectId'],
            file_path=Path(request['filePath']),
            mime_type=request.get('mimeType') or '',
            document_type_hint=request.get('documentTypeHint') or AUTO_DETECT,
        )

    @property
    def file_name(self) -> str:
        return self.file_path.name

    @property
    def hinted_type(self) -> Optional[DocumentType]:
        """Caller-declared type, or None for AUTO / unrecognised hints."""
        if self.document_type_hint.strip().upper() == AUTO_DETECT:
            return None
        return DocumentType.parse(self.document_type_hint)

    @property
    def document_type(self) -> Optional[DocumentType]:
        """Resolved type if classified, else the caller's hint."""
        if self.classification is not None:
            return self.classification.document_type
        return self.hinted_type

    def resolve_document_type(self, classification: ClassificationResult) -> DocumentType:
        """Record the classifier verdict. A job's type may only be resolved once."""
        if self.classification is not None:
            raise DocumentTypeAlreadyResolved(
                f"Document type for job {self.job_id} already resolved to "
                f"{self.classification.document_type.value}"
            )
        self.classification = classification
        return classification.document_type
