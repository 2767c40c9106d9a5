# ============================================================================
# src/procurement_ingestion/config/vision_config.py
# ============================================================================
"""
Vision Model Sampling Configuration
- Temperature
- Top-p
- Max tokens
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class VisionSettings(BaseSettings):
    VISION_TEMPERATURE: float = Field(
        default=0.1,
        ge=0.0, le=2.0,
        description="Sampling temperature (0.1 = near-deterministic structured output)"
    )
    VISION_TOP_P: float = Field(
        default=0.9,
        gt=0.0, le=1.0,
        description="Nucleus sampling bound"
    )
    VISION_MAX_TOKENS: int = Field(
        default=2048,
        gt=0,
        description="Maximum tokens generated per vision call"
    )
    CLASSIFICATION_MAX_TOKENS: int = Field(
        default=200,
        gt=0,
        description="Maximum tokens for the classification call"
    )

vision_settings = VisionSettings()
