# ============================================================================
# src/procurement_ingestion/core/evaluator.py
# ============================================================================
"""
Confidence & Mismatch Evaluation

Provides:
- Field-completeness confidence (0-100) over a fixed set of required fields
- Project mismatch detection against the project a document was uploaded to
- Review thresholds
"""

from typing import Callable, List, Optional
from dataclasses import dataclass, field

from .context.extracted_data import ExtractedDocumentData, is_present
from ..config import threshold_settings


# Python attribute -> wire name
REQUIRED_FIELDS = {
    'document_number': 'documentNumber',
    'total_amount': 'totalAmount',
    'supplier_name': 'supplierName',
}

UNKNOWN_PROJECT_NAME = "Unknown Project"

# (extracted project hint, bound project name) -> True when they relate
ProjectMatcher = Callable[[str, str], bool]


def substring_containment(extracted: str, project_name: str) -> bool:
    """Case-insensitive: either string contains the other."""
    extracted = extracted.strip().lower()
    project_name = project_name.strip().lower()
    return extracted in project_name or project_name in extracted


@dataclass
class ReviewThresholds:
    """Confidence below review_below is flagged for human review (0-100 scale)."""
    review_below: float = 100.0

    def needs_review(self, confidence: float, project_mismatch: bool) -> bool:
        return project_mismatch or confidence < self.review_below


@dataclass
class EvaluationResult:
    confidence: float                       # 0-100, two decimals
    project_mismatch: bool
    missing_fields: List[str] = field(default_factory=list)
    requires_review: bool = False
    extracted_project: Optional[str] = None


class ConfidenceEvaluator:
    """
    Scores an extraction and checks its project reference.

    The score ignores document type and line items: it is the share of
    REQUIRED_FIELDS that are present, so it only takes the values
    0, 33.33, 66.67 and 100.
    """

    def __init__(
        self,
        thresholds: Optional[ReviewThresholds] = None,
        project_matcher: Optional[ProjectMatcher] = None
    ):
        self.thresholds = thresholds or ReviewThresholds(
            review_below=threshold_settings.HUMAN_REVIEW_THRESHOLD
        )
        self.project_matcher = project_matcher or substring_containment

    def missing_fields(self, data: ExtractedDocumentData) -> List[str]:
        return [
            wire_name
            for attr, wire_name in REQUIRED_FIELDS.items()
            if not is_present(getattr(data, attr, None))
        ]

    def score(self, data: ExtractedDocumentData) -> float:
        """
        Completeness confidence.

        Returns:
            (present required fields / 3) * 100, rounded to 2 decimals
        """
        present = len(REQUIRED_FIELDS) - len(self.missing_fields(data))
        return round(present / len(REQUIRED_FIELDS) * 100, 2)

    def detect_project_mismatch(self, data: ExtractedDocumentData, project_name: Optional[str]) -> bool:
        """
        True when the document names a project that does not relate to
        project_name. Documents without a project name/reference are never
        flagged.
        """
        extracted = data.project_hint
        if not is_present(extracted):
            return False
        return not self.project_matcher(extracted, project_name or UNKNOWN_PROJECT_NAME)

    def evaluate(self, data: ExtractedDocumentData, project_name: Optional[str]) -> EvaluationResult:
        confidence = self.score(data)
        mismatch = self.detect_project_mismatch(data, project_name)
        return EvaluationResult(
            confidence=confidence,
            project_mismatch=mismatch,
            missing_fields=self.missing_fields(data),
            requires_review=self.thresholds.needs_review(confidence, mismatch),
            extracted_project=data.project_hint,
        )
