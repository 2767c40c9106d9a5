# ============================================================================
# src/procurement_ingestion/classifiers/__init__.py
# ============================================================================

from .document_classifier import DocumentClassifier

__all__ = ["DocumentClassifier"]
