# ============================================================================
# src/procurement_ingestion/config/thresholds_config.py
# ============================================================================
"""
Confidence Thresholds (0-100 scale)
- Classifier fallback confidences
- Human review escalation
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

class ThresholdSettings(BaseSettings):
    HEURISTIC_FALLBACK_CONFIDENCE: float = Field(
        default=55.0,
        ge=0.0, le=100.0,
        description="Confidence assigned when the filename heuristic replaces a failed vision classification"
    )
    DEFAULT_TYPE_CONFIDENCE: float = Field(
        default=30.0,
        ge=0.0, le=100.0,
        description="Confidence assigned when falling back to the caller-supplied default type"
    )
    VISION_MISSING_CONFIDENCE: float = Field(
        default=50.0,
        ge=0.0, le=100.0,
        description="Confidence used when the vision classifier names a type but omits its confidence"
    )
    HUMAN_REVIEW_THRESHOLD: float = Field(
        default=100.0,
        ge=0.0, le=100.0,
        description="Extraction confidence below this is flagged for human review"
    )

    @model_validator(mode="after")
    def check_fallback_order(self) -> "ThresholdSettings":
        if self.DEFAULT_TYPE_CONFIDENCE > self.HEURISTIC_FALLBACK_CONFIDENCE:
            raise ValueError("DEFAULT_TYPE_CONFIDENCE must not exceed HEURISTIC_FALLBACK_CONFIDENCE")
        return self

threshold_settings = ThresholdSettings()
