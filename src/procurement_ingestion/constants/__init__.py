# ============================================================================
# src/procurement_ingestion/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .document_types import (
    DocumentType,
    AUTO_DETECT,
    CLASSIFIABLE_TYPES,
    DOCUMENT_TYPE_DESCRIPTIONS,
    FILENAME_PREFIXES,
    FILENAME_KEYWORDS,
)
