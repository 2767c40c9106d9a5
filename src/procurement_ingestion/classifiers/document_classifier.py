# ============================================================================
# src/procurement_ingestion/classifiers/document_classifier.py
# ============================================================================
"""
Document Classification Agent

Two independent signals, resolved with a fixed precedence:

1. VISION CLASSIFICATION (primary)
   - Normalized image + prompt listing the allowed document types
   - Model answers {"documentType": ..., "confidence": 0-100}
   - Wins whenever the answer is parsable JSON naming a known type

2. FILENAME HEURISTIC (availability floor)
   - Prefixes (quot*, inv*, po*, vo*) then keywords ("quotation",
     "invoice", "purchase order", "variation")
   - No model call, no confidence of its own: used with a fixed
     penalty confidence when vision classification degrades

3. DEFAULT TYPE (last resort)
   - Caller's hint, or the configured default when the hint is AUTO
   - Low fixed confidence

Vision failures never fail the job; they only lower the confidence.
"""

from typing import Dict, Any, Optional
from datetime import datetime
from pathlib import Path
import re

from ..core.agent_base import Agent
from ..core.context.enums import ClassificationMethod
from ..core.context.extraction_job import ClassificationResult, ExtractionJob
from ..core.context.extracted_data import coerce_number
from ..constants import (
    DocumentType,
    CLASSIFIABLE_TYPES,
    FILENAME_PREFIXES,
    FILENAME_KEYWORDS,
)
from ..config import threshold_settings, vision_settings
from ..utils.exceptions import ClassificationDegraded
from ..vision.base import BaseVisionClient, parse_json_object
from ..vision.client import create_client
from ..vision.prompts import create_classification_prompt

_SEPARATORS = re.compile(r'[_\-.\s]+')


class DocumentClassifier(Agent):
    """
    Classifies procurement documents into a DocumentType.

    Config options:
        use_vision_classification: Ask the vision model first (default: True)
        default_document_type: Type used when the hint is AUTO (default: SUPPLIER_INVOICE)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, vision_client: Optional[BaseVisionClient] = None):
        super().__init__(config)
        self.vision = vision_client or create_client(self.config)
        self.use_vision = bool(self.config.get('use_vision_classification', True))
        self.default_type = (
            DocumentType.parse(self.config.get('default_document_type'))
            or DocumentType.SUPPLIER_INVOICE
        )

    def get_name(self) -> str:
        return "DocumentClassifier"

    # ------------------------------------------------------------------
    # Filename heuristic
    # ------------------------------------------------------------------

    def classify_by_filename(self, file_name: Optional[str]) -> Optional[DocumentType]:
        """
        Guess the type from the file name alone.

        Prefix rules are checked before keyword rules, both on the
        lower-cased base name. Returns None when nothing matches.
        """
        if not file_name:
            return None

        name = Path(file_name).name.lower()
        for prefix, doc_type in FILENAME_PREFIXES:
            if name.startswith(prefix):
                return doc_type

        # "purchase_order-12.pdf" -> "purchase order 12 pdf"
        spaced = _SEPARATORS.sub(' ', name)
        for keyword, doc_type in FILENAME_KEYWORDS:
            if keyword in spaced:
                return doc_type

        return None

    # ------------------------------------------------------------------
    # Vision classification
    # ------------------------------------------------------------------

    def parse_classification(self, response_text: str) -> ClassificationResult:
        """
        Read {"documentType", "confidence"} from the model's answer.

        Raises:
            ClassificationDegraded: no JSON object, or no known document type in it
        """
        parsed = parse_json_object(response_text)
        if parsed is None:
            raise ClassificationDegraded("Vision classifier returned no parsable JSON")

        doc_type = DocumentType.parse(parsed.get('documentType') or parsed.get('document_type'))
        if doc_type not in CLASSIFIABLE_TYPES:
            raise ClassificationDegraded(
                f"Vision classifier returned unknown document type: {parsed.get('documentType')!r}"
            )

        return ClassificationResult(
            document_type=doc_type,
            confidence=self._normalize_confidence(parsed.get('confidence')),
            method=ClassificationMethod.VISION,
        )

    def _normalize_confidence(self, value: Any) -> float:
        confidence = coerce_number(value)
        if confidence is None:
            return threshold_settings.VISION_MISSING_CONFIDENCE
        # Models sometimes answer 0.92 instead of 92
        if 0.0 < confidence <= 1.0:
            confidence *= 100.0
        return max(0.0, min(100.0, confidence))

    async def classify_with_vision(self, image_base64: str, file_name: Optional[str] = None) -> ClassificationResult:
        """
        Ask the vision model for the document type.

        Raises:
            ClassificationDegraded: the call failed or the answer was unusable
        """
        prompt = create_classification_prompt(file_name)
        try:
            result = await self.vision.generate(
                prompt,
                image_base64,
                max_tokens=vision_settings.CLASSIFICATION_MAX_TOKENS,
            )
        except Exception as e:
            raise ClassificationDegraded(f"Vision classification call failed: {e}") from e

        return self.parse_classification(result.get('text', ''))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def classify(self, job: ExtractionJob, image_base64: str) -> ClassificationResult:
        """
        Resolve the job's document type.

        Vision (when enabled and parsable) > filename heuristic (fixed
        penalty confidence) > caller/configured default (low confidence).
        """
        start_time = datetime.now()
        degraded_reason = None

        if self.use_vision:
            try:
                result = await self.classify_with_vision(image_base64, job.file_name)
                self._record_execution(start_time)
                self.logger.info(
                    f"Classified {job.file_name} as {result.document_type.value} "
                    f"by vision ({result.confidence:.0f})"
                )
                return result
            except ClassificationDegraded as e:
                degraded_reason = str(e)
                self.logger.warning(f"Classification degraded for {job.file_name}: {degraded_reason}")
        else:
            degraded_reason = "Vision classification disabled"

        heuristic_type = self.classify_by_filename(job.file_name)
        if heuristic_type is not None:
            result = ClassificationResult(
                document_type=heuristic_type,
                confidence=threshold_settings.HEURISTIC_FALLBACK_CONFIDENCE,
                method=ClassificationMethod.FILENAME,
                degraded_reason=degraded_reason,
            )
        else:
            result = ClassificationResult(
                document_type=job.hinted_type or self.default_type,
                confidence=threshold_settings.DEFAULT_TYPE_CONFIDENCE,
                method=ClassificationMethod.DEFAULT,
                degraded_reason=degraded_reason,
            )

        self._record_execution(start_time)
        self.logger.info(
            f"Classified {job.file_name} as {result.document_type.value} "
            f"by {result.method.value} ({result.confidence:.0f})"
        )
        return result
