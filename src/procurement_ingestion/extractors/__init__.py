# ============================================================================
# src/procurement_ingestion/extractors/__init__.py
# ============================================================================
"""
Structured data extraction from normalized document images.
"""

from .markdown_fields import parse_markdown_fields, detect_currency, to_iso_date
from .vision_extractor import VisionExtractionEngine, ExtractionOutcome

__all__ = [
    "parse_markdown_fields",
    "detect_currency",
    "to_iso_date",
    "VisionExtractionEngine",
    "ExtractionOutcome",
]
